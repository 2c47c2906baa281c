from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple, Union

Number = Union[int, float, str, Decimal]

CENT = Decimal("0.01")


def to_money(value: Number) -> Decimal:
    # str() first so 29.99 stays 29.99 instead of its binary expansion
    return Decimal(str(value))


def line_total(price: Number, quantity: int) -> Decimal:
    return to_money(price) * int(quantity)


def sum_lines(lines: Iterable[Tuple[Number, int]]) -> float:
    """
    Sum of price * quantity over (price, quantity) pairs, rounded to cents.
    """
    total = sum((line_total(price, qty) for price, qty in lines), Decimal("0"))
    return float(total.quantize(CENT, rounding=ROUND_HALF_UP))
