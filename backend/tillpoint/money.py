# Overview: Decimal money helpers; parsing, rounding and fixed-precision formatting.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value, field: str = "amount") -> Decimal:
    """
    Coerce a JSON/str/int value to Decimal without passing through binary float.

    Floats are converted via repr so 29.99 stays 29.99.
    Raises ValueError on garbage, NaN and infinities.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"{field} must be a number")
    else:
        raise ValueError(f"{field} must be a number")

    if not result.is_finite():
        raise ValueError(f"{field} must be a finite number")
    return result


def quantize_money(amount: Optional[Decimal]) -> Optional[Decimal]:
    """Two-decimal, half-up. Presentation boundaries only."""
    if amount is None:
        return None
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(amount: Optional[Decimal]) -> Optional[str]:
    q = quantize_money(amount)
    return None if q is None else str(q)
