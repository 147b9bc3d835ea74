"""
tracker.py - application logic over an injected row store

Responsibilities:
 - keep the sheet tables (members, day_entries, day_riders, settings) in the
   current layout, backfilling columns added since a sheet was created
 - member management: add, update rates, deactivate (members are never deleted)
 - upsert_entry: validate a day, split the driver's rate across riders and
   replace whatever was stored for that date
 - month views consumed by the UI: entries, holidays, balances, transfers

The store is read-modify-write without transactions. Inside this process,
whole-table rewrites are serialized by one write lock and saves for one date
by a per-date lock. Callers may pass expected_version to detect a concurrent
save from another session.
"""

import datetime
import logging
import re
import threading
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ridesplit.errors import ConflictError, PreconditionError, ValidationError
from ridesplit.holidays import holidays_for_month
from ridesplit.models import (
    ENTRY_HEADERS,
    MEMBER_HEADERS,
    RIDER_HEADERS,
    SETTINGS_HEADERS,
    DayEntry,
    Holiday,
    Member,
    RiderCharge,
    Transfer,
)
from ridesplit.money import ZERO
from ridesplit.settlement import compute_balances, describe_transfers, suggest_transfers
from ridesplit.splitting import split_day
from ridesplit.storage import RowStore, Table
from ridesplit.validation import (
    validate_date,
    validate_month,
    validate_rates,
    validate_riders,
    validate_trip_type,
)

logger = logging.getLogger(__name__)

TAB_MEMBERS = "members"
TAB_SETTINGS = "settings"
TAB_DAY_ENTRIES = "day_entries"
TAB_DAY_RIDERS = "day_riders"

# 1: initial columns; 2: members.phone, day_entries.version
SCHEMA_VERSION = 2


@dataclass
class MonthSummary:
    month: str
    entries: List[DayEntry]
    holidays: List[Holiday]
    balances: Dict[str, Decimal]
    transfers: List[Transfer]


class _DateLocks:
    """One lock per entry date, created on demand."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)

    def get(self, date: str) -> threading.Lock:
        with self._guard:
            return self._locks[date]


class RideTracker:
    """
    The UI creates one RideTracker per store and calls its methods to read and
    write data. All money values are Decimal.
    """

    def __init__(self, store: RowStore, now=None):
        self.store = store
        self._now = now or (lambda: datetime.datetime.now(datetime.timezone.utc))
        self._members = Table(store, TAB_MEMBERS, MEMBER_HEADERS)
        self._entries = Table(store, TAB_DAY_ENTRIES, ENTRY_HEADERS)
        self._riders = Table(store, TAB_DAY_RIDERS, RIDER_HEADERS)
        self._settings = Table(store, TAB_SETTINGS, SETTINGS_HEADERS)
        self._date_locks = _DateLocks()
        # every whole-table read-modify-write holds this; per-date locks are taken first
        self._write_lock = threading.RLock()
        self.migrate()

    def storage_status(self) -> Tuple[str, str]:
        """Current backend name and a short message for the UI."""
        if self.store.name == "google_sheets":
            return self.store.name, "Persistent storage active (Google Sheets)."
        if self.store.name == "local_json":
            return self.store.name, f"Using local file storage: {self.store.path}."
        return self.store.name, "Using temporary in-memory storage."

    # -----------------------
    # Schema
    # -----------------------
    def migrate(self):
        """Backfill missing columns in every table and record the schema version."""
        with self._write_lock:
            for table in (self._members, self._entries, self._riders, self._settings):
                table.ensure_columns()
            settings = self.get_settings()
            try:
                current = int(settings.get("schema_version", "1") or 1)
            except ValueError:
                current = 1
            if current < SCHEMA_VERSION:
                logger.info("Migrating sheet layout from version %d to %d", current, SCHEMA_VERSION)
                self.set_setting("schema_version", str(SCHEMA_VERSION))

    def get_settings(self) -> Dict[str, str]:
        out = {}
        for rec in self._settings.records():
            key = str(rec.get("key", "")).strip()
            if key:
                out[key] = str(rec.get("value", "")).strip()
        return out

    def set_setting(self, key: str, value: str):
        with self._write_lock:
            records = self._settings.records()
            for rec in records:
                if str(rec.get("key", "")).strip() == key:
                    rec["value"] = value
                    break
            else:
                records.append({"key": key, "value": value})
            self._settings.rewrite(records)

    # -----------------------
    # Members
    # -----------------------
    def list_members(self, include_inactive: bool = True) -> List[Member]:
        members = [Member.from_record(r) for r in self._members.records()]
        members = [m for m in members if m.member_id and m.name]
        if not include_inactive:
            members = [m for m in members if m.active]
        return members

    def get_member(self, member_id: str) -> Optional[Member]:
        return next((m for m in self.list_members() if m.member_id == member_id), None)

    @staticmethod
    def _next_member_id(members: Sequence[Member]) -> str:
        max_num = 0
        pattern = re.compile(r"^M(\d+)$")
        for m in members:
            match = pattern.match(m.member_id)
            if match:
                max_num = max(max_num, int(match.group(1)))
        return f"M{max_num + 1:03d}"

    def add_member(self, name: str, phone: str = "", one_way_total: Any = 0, two_way_total: Any = 0) -> Member:
        name = (name or "").strip()
        if not name:
            raise ValidationError("name is required")
        # either rate may be left unset at creation and filled in later
        one, two = validate_rates(one_way_total, two_way_total, allow_unset=True)

        with self._write_lock:
            members = self.list_members()
            if any(m.name.lower() == name.lower() and m.active for m in members):
                raise ValidationError(f"A member named {name} already exists")
            member = Member(
                member_id=self._next_member_id(members),
                name=name,
                phone=(phone or "").strip(),
                active=True,
                one_way_total=one,
                two_way_total=two,
            )
            self._members.append([self._members.record(member.to_row())])
        logger.info("Added member %s (%s)", member.member_id, member.name)
        return member

    def _update_member(self, member_id: str, **changes) -> Member:
        with self._write_lock:
            records = self._members.records()
            for rec in records:
                if str(rec.get("member_id", "")).strip() == member_id:
                    member = Member.from_record(rec)
                    for key, value in changes.items():
                        setattr(member, key, value)
                    rec.update(self._members.record(member.to_row()))
                    self._members.rewrite(records)
                    return member
        raise ValidationError(f"Unknown member: {member_id}")

    def update_member_rates(self, member_id: str, one_way_total: Any, two_way_total: Any) -> Member:
        """Set a driver's rates. Applies to entries saved from now on; stored entries keep their snapshot."""
        one, two = validate_rates(one_way_total, two_way_total)
        member = self._update_member(member_id, one_way_total=one, two_way_total=two)
        logger.info("Updated rates for %s: one_way=%s two_way=%s", member_id, one, two)
        return member

    def deactivate_member(self, member_id: str) -> Member:
        member = self._update_member(member_id, active=False)
        logger.info("Deactivated member %s", member_id)
        return member

    # -----------------------
    # Entries
    # -----------------------
    def _load_entries(self, prefix: str = "") -> List[DayEntry]:
        entries = [DayEntry.from_record(r) for r in self._entries.records()]
        entries = [e for e in entries if e.date and e.date.startswith(prefix)]
        by_id = {e.entry_id: e for e in entries}
        for rec in self._riders.records():
            entry = by_id.get(str(rec.get("entry_id", "")).strip())
            if entry is not None:
                entry.riders.append(RiderCharge.from_record(rec))
        return sorted(by_id.values(), key=lambda e: e.date)

    def entries_for_month(self, month: str) -> List[DayEntry]:
        validate_month(month)
        return self._load_entries(prefix=month)

    def get_entry(self, date: str) -> Optional[DayEntry]:
        validate_date(date)
        return next((e for e in self._load_entries(prefix=date) if e.date == date), None)

    def upsert_entry(
        self,
        date: str,
        driver_id: str,
        day_type: str,
        riders: List[Dict[str, str]],
        notes: str = "",
        expected_version: Optional[int] = None,
    ) -> DayEntry:
        """
        Save the entry for date, replacing any previous entry and its riders.

        expected_version: version the caller last saw (0 for "no entry yet").
        Re-saving identical content returns the stored entry untouched, so a
        retried save succeeds whatever version it carries. Otherwise, when
        expected_version is given and does not match, ConflictError is raised.
        """
        validate_date(date)
        driver_id = str(driver_id or "").strip()
        if not driver_id:
            raise ValidationError("driver_id required")
        validate_trip_type(day_type, "day_type")
        riders = validate_riders(riders)
        if not any(r["member_id"] == driver_id for r in riders):
            raise ValidationError("Driver must be included in riders")

        members = {m.member_id: m for m in self.list_members(include_inactive=False)}
        driver = members.get(driver_id)
        if driver is None:
            raise ValidationError(f"Driver {driver_id} is not an active member")
        for r in riders:
            if r["member_id"] not in members:
                raise ValidationError(f"Rider {r['member_id']} is not an active member")

        day_total = driver.rate_for(day_type)
        if not day_total or day_total <= ZERO:
            raise PreconditionError(f"Driver rates not set for {driver.name} ({day_type})")

        result = split_day(day_total, riders, driver_id)
        entry = DayEntry(
            date=date,
            driver_id=driver_id,
            day_type=day_type,
            day_total_used=day_total,
            total_amount=result.total_amount,
            notes=(notes or "").strip(),
            created_at=self._now().isoformat(),
            riders=result.riders,
        )

        with self._date_locks.get(date):
            existing = self.get_entry(date)
            if entry.same_content(existing):
                logger.info("Entry for %s unchanged", date)
                return existing
            stored_version = existing.version if existing else 0
            if expected_version is not None and expected_version != stored_version:
                raise ConflictError(date, expected_version, stored_version)
            entry = entry.with_version(stored_version + 1)
            self._replace_entry(date, entry)

        logger.info(
            "Saved entry %s (driver=%s, %s, total=%s, riders=%d, version=%d)",
            date, driver_id, day_type, entry.total_amount, len(entry.riders), entry.version,
        )
        return entry

    def _rewrite_riders(self, date: str, entry: Optional[DayEntry]):
        rider_records = [r for r in self._riders.records() if str(r.get("entry_id", "")).strip() != date]
        if entry is not None:
            rider_records += [self._riders.record(row) for row in entry.rider_rows()]
        self._riders.rewrite(rider_records)

    def _rewrite_entries(self, date: str, entry: Optional[DayEntry]):
        entry_records = [r for r in self._entries.records() if str(r.get("date", "")).strip() != date]
        if entry is not None:
            entry_records.append(self._entries.record(entry.to_row()))
            entry_records.sort(key=lambda r: str(r.get("date", "")))
        self._entries.rewrite(entry_records)

    def _replace_entry(self, date: str, entry: Optional[DayEntry]):
        # The entry row goes in last and comes out first. Rider rows without an
        # entry row are ignored on load, so a failed second write never leaves
        # an entry that is missing its riders.
        with self._write_lock:
            if entry is not None:
                self._rewrite_riders(date, entry)
                self._rewrite_entries(date, entry)
            else:
                self._rewrite_entries(date, None)
                self._rewrite_riders(date, None)

    def delete_entry(self, date: str) -> bool:
        """Remove the entry for date and its riders. Returns False when nothing was stored."""
        validate_date(date)
        with self._date_locks.get(date):
            if self.get_entry(date) is None:
                logger.info("No entry for %s to delete", date)
                return False
            self._replace_entry(date, None)
        logger.info("Deleted entry %s", date)
        return True

    # -----------------------
    # Month views
    # -----------------------
    def holidays_for_month(self, month: str) -> List[Holiday]:
        return holidays_for_month(month)

    def balances_for_month(self, month: str) -> Dict[str, Decimal]:
        return compute_balances(self.list_members(), self.entries_for_month(month))

    def month_summary(self, month: str) -> MonthSummary:
        entries = self.entries_for_month(month)
        balances = compute_balances(self.list_members(), entries)
        return MonthSummary(
            month=month,
            entries=entries,
            holidays=holidays_for_month(month),
            balances=balances,
            transfers=suggest_transfers(balances),
        )

    def settle_suggestions(self, month: str) -> List[str]:
        names = {m.member_id: m.name for m in self.list_members()}
        return describe_transfers(self.month_summary(month).transfers, names)
