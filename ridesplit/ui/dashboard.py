"""
dashboard.py - Streamlit UI entrypoint and orchestration

This module wires the UI components (ridesplit.ui.components) with the
business logic (ridesplit.tracker). main() builds the sidebar menu and routes
actions to components and tracker methods.

Design notes:
 - Keep the dashboard responsible only for UI orchestration and presentation.
 - All persistence and business rules live in ridesplit.tracker.
 - One RideTracker per server process (st.cache_resource) so its write
   locks are shared between browser sessions.
"""

import datetime
import logging

import streamlit as st

from ridesplit.config import Settings, configure_logging
from ridesplit.errors import RideSplitError
from ridesplit.storage import open_store
from ridesplit.tracker import RideTracker
from ridesplit.ui import components

logger = logging.getLogger(__name__)


@st.cache_resource
def _get_tracker() -> RideTracker:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return RideTracker(open_store(settings))


def _select_month() -> str:
    today = datetime.date.today()
    col1, col2 = st.sidebar.columns(2)
    with col1:
        year = st.number_input("Year", min_value=2000, max_value=2100, value=today.year, step=1)
    with col2:
        month = st.selectbox("Month", options=list(range(1, 13)), index=today.month - 1)
    return f"{int(year):04d}-{int(month):02d}"


def _days_in_month(month: str):
    year, mon = int(month[:4]), int(month[5:7])
    day = datetime.date(year, mon, 1)
    while day.month == mon:
        yield day
        day += datetime.timedelta(days=1)


def main():
    """
    Streamlit page: sidebar menu controls which view is shown.
    Actions:
      - Month: entries table, balances and settle-up suggestions for the month
      - Record Day: pick a day, enter driver and riders, save (replaces that day)
      - Delete Day: remove a stored day
      - Members: add members, set rates, deactivate
    """
    st.title("Ride Split")
    try:
        tracker = _get_tracker()
    except RideSplitError as exc:
        components.show_error(exc)
        return

    backend_name, backend_msg = tracker.storage_status()
    if backend_name == "google_sheets":
        st.sidebar.success(backend_msg)
    else:
        st.sidebar.warning(backend_msg)
        st.sidebar.caption("For cloud persistence, set GOOGLE_SHEET_ID and GOOGLE_SERVICE_ACCOUNT_JSON in app Secrets.")

    month = _select_month()
    menu = ["Month", "Record Day", "Delete Day", "Members"]
    choice = st.sidebar.selectbox("Select an option", menu)

    try:
        if choice == "Month":
            summary = tracker.month_summary(month)
            names = {m.member_id: m.name for m in tracker.list_members()}
            components.display_month_entries(summary.entries, summary.holidays, names, month)
            components.display_balances(summary.balances, names)
            components.display_transfers(tracker.settle_suggestions(month))

        elif choice == "Record Day":
            days = list(_days_in_month(month))
            holidays = {h.date: h for h in tracker.holidays_for_month(month)}
            today = datetime.date.today()
            default_idx = days.index(today) if today in days else 0
            day = st.selectbox(
                "Day",
                options=days,
                index=default_idx,
                format_func=lambda d: d.strftime("%a %d") + (" (holiday)" if d.isoformat() in holidays else ""),
            )

            def on_submit(entry_input: components.EntryInput):
                try:
                    entry = tracker.upsert_entry(
                        date=entry_input.date,
                        driver_id=entry_input.driver_id,
                        day_type=entry_input.day_type,
                        riders=entry_input.riders,
                        notes=entry_input.notes,
                        expected_version=entry_input.expected_version,
                    )
                    st.success(f"Saved {entry.date}: total {entry.total_amount:.2f}.")
                except RideSplitError as exc:
                    logger.warning("Save rejected for %s: %s", entry_input.date, exc)
                    components.show_error(exc)

            components.display_entry_form(
                tracker.list_members(),
                on_submit,
                day=day,
                existing=tracker.get_entry(day.isoformat()),
                holiday=holidays.get(day.isoformat()),
            )

        elif choice == "Delete Day":
            entries = tracker.entries_for_month(month)
            if not entries:
                st.info("No rides recorded this month.")
            else:
                date = st.selectbox("Day", options=[e.date for e in entries])
                confirm = st.checkbox("I confirm I want to delete this day")
                if st.button("Delete day") and confirm:
                    if tracker.delete_entry(date):
                        st.success(f"Deleted {date}.")
                    else:
                        st.error("Day not found.")

        elif choice == "Members":
            components.display_members(tracker)

    except RideSplitError as exc:
        components.show_error(exc)


if __name__ == "__main__":
    main()
