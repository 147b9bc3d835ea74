"""
money.py - cent rounding helpers

All amounts are Decimal values quantized to cents. round2 rounds half away
from zero, the same result the sheet-backed app produced for stored values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value: Any) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: Any, default: Decimal = ZERO) -> Decimal:
    """Parse a cell value ("12.5", 12.5, "") into a cent-rounded Decimal."""
    text = str(value if value is not None else "").strip()
    if not text:
        return default
    try:
        return round2(Decimal(text))
    except (InvalidOperation, ValueError):
        return default


def format_money(value: Decimal) -> str:
    return f"{round2(value):.2f}"
