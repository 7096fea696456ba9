"""
Conversions between stored minor units (cents) and wire decimals.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

TWO_PLACES = Decimal("0.01")


def cents_to_decimal(cents: int) -> Decimal:
    """4500 -> Decimal('45.00')"""
    return (Decimal(int(cents)) / 100).quantize(TWO_PLACES)


def to_cents(amount: Any) -> int:
    """
    Decimal major units -> integer minor units, half-up.

    Accepts Decimal, int, float or numeric string. Floats go through str()
    first so 19.99 does not become 1998.

    Raises:
        ValueError: amount is not a finite number
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"not a number: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"not a finite number: {amount!r}")
    try:
        return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise ValueError(f"amount out of range: {amount!r}")
