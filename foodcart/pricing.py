"""
Money helpers.

Prices are Decimal with two places. Totals are accumulated in integer
cents so long carts never drift.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Decimal with two places. Floats go through str() to avoid binary noise."""
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        amount = Decimal(value if value is not None else 0)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Any) -> int:
    return int(to_money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def sum_lines(lines: Iterable[tuple[Any, int]]) -> Decimal:
    """Total of (price, quantity) pairs."""
    return from_cents(sum(to_cents(price) * quantity for price, quantity in lines))
