import pytest
from ridesplit.errors import ValidationError
from ridesplit.holidays import (
    holidays_for_month,
    holidays_observed_for_year,
    last_weekday_of_month,
    nth_weekday_of_month,
)


def _by_name(year):
    return {h.name: h.date for h in holidays_observed_for_year(year)}


def test_2025_has_eleven_holidays():
    holidays = holidays_observed_for_year(2025)
    assert len(holidays) == 11
    assert _by_name(2025) == {
        "New Year's Day": "2025-01-01",
        "Juneteenth National Independence Day": "2025-06-19",
        "Independence Day": "2025-07-04",
        "Veterans Day": "2025-11-11",
        "Christmas Day": "2025-12-25",
        "Birthday of Martin Luther King, Jr.": "2025-01-20",
        "Washington's Birthday": "2025-02-17",
        "Memorial Day": "2025-05-26",
        "Labor Day": "2025-09-01",
        "Columbus Day": "2025-10-13",
        "Thanksgiving Day": "2025-11-27",
    }


def test_no_inauguration_day():
    assert all("Inauguration" not in h.name for h in holidays_observed_for_year(2025))


def test_saturday_holiday_observed_on_friday():
    holidays = _by_name(2027)
    assert holidays["Juneteenth National Independence Day"] == "2027-06-18"
    assert holidays["Christmas Day"] == "2027-12-24"


def test_sunday_holiday_observed_on_monday():
    assert _by_name(2027)["Independence Day"] == "2027-07-05"


def test_new_years_day_can_move_into_previous_year():
    holidays = holidays_observed_for_year(2028)
    assert len(holidays) == 11
    assert _by_name(2028)["New Year's Day"] == "2027-12-31"


def test_memorial_day_is_last_monday():
    assert _by_name(2026)["Memorial Day"] == "2026-05-25"
    # May 31, 2027 is itself a Monday
    assert _by_name(2027)["Memorial Day"] == "2027-05-31"


def test_weekday_helpers():
    assert nth_weekday_of_month(2026, 11, 3, 4).isoformat() == "2026-11-26"
    assert last_weekday_of_month(2025, 5, 0).isoformat() == "2025-05-26"


def test_holidays_for_month_filters_and_sorts():
    july = holidays_for_month("2025-07")
    assert [(h.date, h.name) for h in july] == [("2025-07-04", "Independence Day")]
    assert holidays_for_month("2025-08") == []
    november = holidays_for_month("2025-11")
    assert [h.date for h in november] == ["2025-11-11", "2025-11-27"]


def test_december_includes_next_years_observed_new_year():
    december = holidays_for_month("2027-12")
    assert [(h.date, h.name) for h in december] == [
        ("2027-12-24", "Christmas Day"),
        ("2027-12-31", "New Year's Day"),
    ]
    january = holidays_for_month("2028-01")
    assert [h.date for h in january] == ["2028-01-17"]


def test_holidays_for_month_rejects_bad_month():
    for bad in ("2025-7", "2025/07", "", None, "2025-13"):
        with pytest.raises(ValidationError):
            holidays_for_month(bad)
