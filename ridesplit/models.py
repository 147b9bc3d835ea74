"""
models.py - Data model definitions

Members, day entries and rider charges are persisted as rows in the sheet
tables described in ridesplit.storage. Each record converts to a row in header
order (to_row) and back from a header-keyed record (from_record). from_record
uses defaults for missing or malformed cells so older sheets, written before a
column existed, are still readable.

Derived values (balances, transfers, holidays) are never persisted.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ridesplit.money import ZERO, format_money, to_money

ONE_WAY = "one_way"
TWO_WAY = "two_way"
TRIP_TYPES = (ONE_WAY, TWO_WAY)

MEMBER_HEADERS = ["member_id", "name", "phone", "active", "one_way_total", "two_way_total"]
ENTRY_HEADERS = [
    "entry_id",
    "date",
    "driver_id",
    "day_type",
    "day_total_used",
    "total_amount",
    "notes",
    "created_at",
    "version",
]
RIDER_HEADERS = ["entry_id", "member_id", "trip_type", "units", "charge"]
SETTINGS_HEADERS = ["key", "value"]


def _text(value: Any) -> str:
    return str(value if value is not None else "").strip()


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(float(_text(value)))
    except (ValueError, OverflowError):
        return default


def _to_bool(value: Any, default: bool = True) -> bool:
    text = _text(value).upper()
    if not text:
        return default
    return text in ("TRUE", "1", "YES", "Y")


@dataclass
class Member:
    """
    A group member. Rates are the member's fixed cost for driving a one-way or
    round-trip day; 0 means the rate has not been set yet.
    """
    member_id: str
    name: str
    phone: str = ""
    active: bool = True
    one_way_total: Decimal = ZERO
    two_way_total: Decimal = ZERO

    def rate_for(self, day_type: str) -> Decimal:
        return self.one_way_total if day_type == ONE_WAY else self.two_way_total

    def to_row(self) -> List[str]:
        return [
            self.member_id,
            self.name,
            self.phone,
            "TRUE" if self.active else "FALSE",
            format_money(self.one_way_total),
            format_money(self.two_way_total),
        ]

    @staticmethod
    def from_record(record: Dict[str, Any]) -> "Member":
        return Member(
            member_id=_text(record.get("member_id")),
            name=_text(record.get("name")),
            phone=_text(record.get("phone")),
            active=_to_bool(record.get("active"), True),
            one_way_total=to_money(record.get("one_way_total")),
            two_way_total=to_money(record.get("two_way_total")),
        )


@dataclass
class RiderCharge:
    member_id: str
    trip_type: str
    units: int
    charge: Decimal

    def to_row(self, entry_id: str) -> List[str]:
        return [entry_id, self.member_id, self.trip_type, str(self.units), format_money(self.charge)]

    @staticmethod
    def from_record(record: Dict[str, Any]) -> "RiderCharge":
        return RiderCharge(
            member_id=_text(record.get("member_id")),
            trip_type=_text(record.get("trip_type")),
            units=_to_int(record.get("units"), 0),
            charge=to_money(record.get("charge")),
        )


@dataclass
class DayEntry:
    """
    One recorded commute day. entry_id equals date: a group has at most one
    entry per date, and saving again replaces it together with its riders.
    """
    date: str
    driver_id: str
    day_type: str
    day_total_used: Decimal
    total_amount: Decimal
    notes: str = ""
    created_at: str = ""
    version: int = 1
    riders: List[RiderCharge] = field(default_factory=list)

    @property
    def entry_id(self) -> str:
        return self.date

    def same_content(self, other: Optional["DayEntry"]) -> bool:
        """True when other would store exactly the same values, ignoring created_at/version."""
        if other is None:
            return False
        return (
            self.date == other.date
            and self.driver_id == other.driver_id
            and self.day_type == other.day_type
            and self.day_total_used == other.day_total_used
            and self.total_amount == other.total_amount
            and self.notes == other.notes
            and self.riders == other.riders
        )

    def with_version(self, version: int) -> "DayEntry":
        return replace(self, version=version)

    def to_row(self) -> List[str]:
        return [
            self.entry_id,
            self.date,
            self.driver_id,
            self.day_type,
            format_money(self.day_total_used),
            format_money(self.total_amount),
            self.notes,
            self.created_at,
            str(self.version),
        ]

    def rider_rows(self) -> List[List[str]]:
        return [r.to_row(self.entry_id) for r in self.riders]

    @staticmethod
    def from_record(record: Dict[str, Any]) -> "DayEntry":
        # rows written before the version column existed count as version 1
        return DayEntry(
            date=_text(record.get("date")) or _text(record.get("entry_id")),
            driver_id=_text(record.get("driver_id")),
            day_type=_text(record.get("day_type")),
            day_total_used=to_money(record.get("day_total_used")),
            total_amount=to_money(record.get("total_amount")),
            notes=str(record.get("notes") or ""),
            created_at=_text(record.get("created_at")),
            version=max(1, _to_int(record.get("version"), 1)),
        )


@dataclass(frozen=True)
class Transfer:
    from_member: str
    to_member: str
    amount: Decimal


@dataclass(frozen=True)
class Holiday:
    date: str  # "YYYY-MM-DD"
    name: str
