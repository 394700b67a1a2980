"""
Office Nexus Ledger - Money Helpers

Decimal conversion and rounding shared by the encoder, payroll and reports.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

ZERO = Decimal("0")
CENT = Decimal("0.01")
UNIT = Decimal("1")


def to_decimal(value: Any) -> Decimal:
    """Convert numbers coming from JSON, floats or the DB to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Any) -> Decimal:
    """Round to cents, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_whole(value: Any) -> Decimal:
    """Round to whole currency units, half up (RWF has no minor unit in practice)."""
    return to_decimal(value).quantize(UNIT, rounding=ROUND_HALF_UP)


def percentage(part: Any, whole: Any, places: Optional[Decimal] = Decimal("0.0001")) -> Decimal:
    """part / whole * 100, zero when whole is zero."""
    whole = to_decimal(whole)
    if whole == 0:
        return ZERO
    result = to_decimal(part) / whole * 100
    return result.quantize(places, rounding=ROUND_HALF_UP) if places is not None else result
