"""
holidays.py - observed US federal holidays

holidays_observed_for_year(year) returns the 11 federal holidays in the order
they are computed (fixed-date first, then weekday-based). Callers that need a
month's view use holidays_for_month, which filters and sorts.

Rules:
 - fixed-date holidays falling on Saturday are observed the Friday before,
   on Sunday the Monday after
 - nth-weekday holidays never fall on a weekend, so no shift applies
 - Memorial Day is the last Monday of May
Inauguration Day is not included; it is not a holiday nationwide.
"""

import calendar
import datetime
from typing import List

from ridesplit.models import Holiday
from ridesplit.validation import validate_month

MONDAY = 0
THURSDAY = 3
SATURDAY = 5
SUNDAY = 6

FIXED_DATE_HOLIDAYS = [
    (1, 1, "New Year's Day"),
    (6, 19, "Juneteenth National Independence Day"),
    (7, 4, "Independence Day"),
    (11, 11, "Veterans Day"),
    (12, 25, "Christmas Day"),
]

# (month, weekday, nth)
NTH_WEEKDAY_HOLIDAYS = [
    (1, MONDAY, 3, "Birthday of Martin Luther King, Jr."),
    (2, MONDAY, 3, "Washington's Birthday"),
    (9, MONDAY, 1, "Labor Day"),
    (10, MONDAY, 2, "Columbus Day"),
    (11, THURSDAY, 4, "Thanksgiving Day"),
]


def nth_weekday_of_month(year: int, month: int, weekday: int, nth: int) -> datetime.date:
    """Date of the nth (1-based) occurrence of weekday (Monday=0) in the month."""
    first = datetime.date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + datetime.timedelta(days=offset + (nth - 1) * 7)


def last_weekday_of_month(year: int, month: int, weekday: int) -> datetime.date:
    last = datetime.date(year, month, calendar.monthrange(year, month)[1])
    offset = (last.weekday() - weekday) % 7
    return last - datetime.timedelta(days=offset)


def observed_date(day: datetime.date) -> datetime.date:
    if day.weekday() == SATURDAY:
        return day - datetime.timedelta(days=1)
    if day.weekday() == SUNDAY:
        return day + datetime.timedelta(days=1)
    return day


def holidays_observed_for_year(year: int) -> List[Holiday]:
    holidays = []
    for month, day, name in FIXED_DATE_HOLIDAYS:
        holidays.append((observed_date(datetime.date(year, month, day)), name))

    # Memorial Day sits between Washington's Birthday and Labor Day
    for month, weekday, nth, name in NTH_WEEKDAY_HOLIDAYS[:2]:
        holidays.append((nth_weekday_of_month(year, month, weekday, nth), name))
    holidays.append((last_weekday_of_month(year, 5, MONDAY), "Memorial Day"))
    for month, weekday, nth, name in NTH_WEEKDAY_HOLIDAYS[2:]:
        holidays.append((nth_weekday_of_month(year, month, weekday, nth), name))

    return [Holiday(date=d.isoformat(), name=name) for d, name in holidays]


def holidays_for_month(month: str) -> List[Holiday]:
    """
    Observed holidays whose date falls in month ("YYYY-MM"), sorted by date.

    December also consults the following year, since New Year's Day on a
    Saturday is observed on December 31 of the year before.
    """
    year, mon = validate_month(month)
    candidates = holidays_observed_for_year(year)
    if mon == 12:
        candidates += holidays_observed_for_year(year + 1)
    found = [h for h in candidates if h.date.startswith(month)]
    return sorted(found, key=lambda h: h.date)
