"""
splitting.py - weighted split of a driver's day total across riders

Each rider pays in proportion to trip units (one_way = 1, two_way = 2).
Shares are rounded to cents independently, so their sum can miss the day
total by a few cents; that drift is added to the driver's own charge so the
charges always add up to the day total exactly.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Sequence

from ridesplit.errors import PreconditionError, ValidationError
from ridesplit.models import ONE_WAY, TWO_WAY, RiderCharge
from ridesplit.money import CENT, round2

TRIP_UNITS = {ONE_WAY: 1, TWO_WAY: 2}


@dataclass
class SplitResult:
    riders: List[RiderCharge]
    total_amount: Decimal


def units_for_trip(trip_type: str) -> int:
    return TRIP_UNITS.get(trip_type, 0)


def split_day(day_total, riders: Sequence[Dict[str, str]], driver_id: str) -> SplitResult:
    """
    Split day_total across riders.

    riders: ordered list of {"member_id", "trip_type"}; the driver must be one
    of them. The returned charges keep the input order.
    """
    if not riders:
        raise ValidationError("riders must be a non-empty list")
    if not any(r.get("member_id") == driver_id for r in riders):
        raise ValidationError("Driver must be included in riders")
    for r in riders:
        if r.get("trip_type") not in TRIP_UNITS:
            raise ValidationError("riders.trip_type must be one_way or two_way")

    day_total = round2(day_total)
    if day_total <= 0:
        raise PreconditionError("Day total must be positive; driver rates not set")

    units = [units_for_trip(r["trip_type"]) for r in riders]
    total_units = sum(units)
    if total_units <= 0:
        raise PreconditionError("No valid riders/units")

    charges = [
        RiderCharge(
            member_id=r["member_id"],
            trip_type=r["trip_type"],
            units=u,
            charge=round2(day_total * u / total_units),
        )
        for r, u in zip(riders, units)
    ]

    drift = round2(day_total - sum(c.charge for c in charges))
    if abs(drift) >= CENT:
        driver = next(c for c in charges if c.member_id == driver_id)
        driver.charge = round2(driver.charge + drift)

    total_amount = round2(sum(c.charge for c in charges))
    return SplitResult(riders=charges, total_amount=total_amount)
