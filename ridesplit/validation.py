"""
validation.py - boundary checks applied before the pure components run

The month and date contracts are strict: "YYYY-MM" and "YYYY-MM-DD".
"""

import datetime
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Tuple

from ridesplit.errors import ValidationError
from ridesplit.models import TRIP_TYPES
from ridesplit.money import ZERO, round2

MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_month(month: Any) -> Tuple[int, int]:
    """Return (year, month) for a "YYYY-MM" string."""
    text = str(month or "")
    if not MONTH_RE.match(text):
        raise ValidationError("month required as YYYY-MM")
    year, mon = int(text[:4]), int(text[5:7])
    if not 1 <= mon <= 12:
        raise ValidationError(f"month out of range: {text}")
    return year, mon


def validate_date(date: Any) -> datetime.date:
    text = str(date or "")
    if not DATE_RE.match(text):
        raise ValidationError("date required as YYYY-MM-DD")
    try:
        return datetime.date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"date is not a calendar date: {text}")


def validate_trip_type(value: Any, field_name: str = "trip_type") -> str:
    if value not in TRIP_TYPES:
        raise ValidationError(f"{field_name} must be one_way or two_way")
    return value


def validate_riders(riders: Any) -> List[Dict[str, str]]:
    """
    Normalize the riders payload to a list of {member_id, trip_type} dicts.
    Accepts dicts or objects exposing member_id/trip_type attributes.
    """
    if not isinstance(riders, (list, tuple)) or not riders:
        raise ValidationError("riders must be a non-empty list")
    out = []
    seen = set()
    for r in riders:
        if isinstance(r, dict):
            member_id = r.get("member_id")
            trip_type = r.get("trip_type")
        else:
            member_id = getattr(r, "member_id", None)
            trip_type = getattr(r, "trip_type", None)
        member_id = str(member_id or "").strip()
        if not member_id:
            raise ValidationError("Missing member_id in riders")
        if member_id in seen:
            raise ValidationError(f"Rider {member_id} listed more than once")
        seen.add(member_id)
        validate_trip_type(trip_type, "riders.trip_type")
        out.append({"member_id": member_id, "trip_type": trip_type})
    return out


def validate_rate(value: Any, field_name: str, allow_unset: bool = False) -> Decimal:
    """Rates are cents-rounded and positive; with allow_unset, blank or 0 means "not set"."""
    if allow_unset and (value is None or str(value).strip() == ""):
        return ZERO
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a positive number")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a positive number")
    amount = round2(amount)
    if allow_unset and amount == ZERO:
        return ZERO
    if amount <= 0:
        raise ValidationError(f"{field_name} must be a positive number")
    return amount


def validate_rates(one_way_total: Any, two_way_total: Any, allow_unset: bool = False) -> Tuple[Decimal, Decimal]:
    one = validate_rate(one_way_total, "one_way_total", allow_unset)
    two = validate_rate(two_way_total, "two_way_total", allow_unset)
    # the ordering rule applies only once both rates are set
    if one and two and two < one:
        raise ValidationError("two_way_total should be >= one_way_total")
    return one, two
