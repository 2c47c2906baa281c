import os
from typing import List


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _origins(value: str) -> List[str]:
    return [o.strip() for o in value.split(",") if o.strip()]


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "storefront")

# JWT Config
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET") or JWT_SECRET
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "15"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("JWT_REFRESH_EXPIRES_DAYS", "7"))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

CORS_ORIGINS = _origins(os.getenv("CORS_ORIGINS", "*"))

# Orders
ENFORCE_ORDER_TRANSITIONS = _flag("ENFORCE_ORDER_TRANSITIONS", False)

# Startup seeding
SEED_DEMO_DATA = _flag("SEED_DEMO_DATA", True)
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")

PORT = int(os.getenv("PORT", 8000))

DEBUG = _flag("DEBUG", False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
