import logging

from rich.logging import RichHandler

import config


def _level() -> int:
    if config.DEBUG:
        return logging.DEBUG
    level = logging.getLevelName(config.LOG_LEVEL)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name=None) -> logging.Logger:
    """
    Returns a logger that writes through a RichHandler.

    Handlers are attached once per logger name, so repeated calls from
    module imports are cheap.
    """
    if name is None:
        name = "storefront"
    logger = logging.getLogger(name)
    log_level = _level()
    logger.setLevel(log_level)

    if not logger.handlers:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(logging.Formatter("[%(name)s]  %(message)s"))
        handler.setLevel(log_level)
        logger.addHandler(handler)

        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized")

    return logger
