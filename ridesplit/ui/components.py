"""
components.py - reusable Streamlit components / forms / displays

This module contains pure-UI helpers used by the dashboard:
 - display_entry_form(members, on_submit, existing): record who drove and who rode on a day
 - display_month_entries: month table with holidays flagged, plus XLSX export
 - display_balances / display_transfers: month settlement view
 - display_members: add members, set driver rates, deactivate

The entry form enforces the same rules the tracker does (driver among the
riders, at least one rider, driver rates set) and shows a live split preview,
but the tracker remains the authority: its errors are shown by show_error.
"""

from dataclasses import dataclass
from decimal import Decimal
from io import BytesIO
from typing import Callable, Dict, List, Optional
import datetime
import logging
import time

import altair as alt
import pandas as pd
import streamlit as st

from ridesplit.errors import ConflictError, PreconditionError, RideSplitError, StoreError, ValidationError
from ridesplit.models import ONE_WAY, TRIP_TYPES, TWO_WAY, DayEntry, Holiday, Member
from ridesplit.splitting import split_day

logger = logging.getLogger(__name__)

TRIP_LABELS = {ONE_WAY: "One way", TWO_WAY: "Round trip"}


def _trigger_rerun():
    # st.rerun replaced experimental_rerun in newer Streamlit releases
    if hasattr(st, "rerun"):
        st.rerun()
    elif hasattr(st, "experimental_rerun"):
        st.experimental_rerun()
    else:
        st.query_params["_rerun"] = str(int(time.time()))


def show_error(exc: RideSplitError):
    """Render a tracker error according to its kind."""
    if isinstance(exc, PreconditionError):
        st.warning(f"{exc} Set the driver's rates under Members.")
    elif isinstance(exc, ConflictError):
        st.warning(str(exc))
    elif isinstance(exc, StoreError):
        st.error("Operation failed while talking to storage. Please try again.")
    elif isinstance(exc, ValidationError):
        st.error(str(exc))
    else:
        st.error(str(exc))


@dataclass
class EntryInput:
    """Lightweight container passed to the on_submit callback."""
    date: str  # ISO date string
    driver_id: str
    day_type: str
    riders: List[Dict[str, str]]
    notes: str
    expected_version: int


def display_entry_form(
    members: List[Member],
    on_submit: Callable[[EntryInput], None],
    day: datetime.date,
    existing: Optional[DayEntry] = None,
    holiday: Optional[Holiday] = None,
):
    """
    Display the form for one day.

    existing: the stored entry for that day, used to prefill the form and as
    the expected version when saving.
    """
    st.subheader(f"Ride for {day.strftime('%A %d %B %Y')}")
    if holiday:
        st.info(f"{holiday.name} (observed federal holiday)")
    active = [m for m in members if m.active]
    if not active:
        st.info("Add members first.")
        return
    by_id = {m.member_id: m for m in active}
    ids = list(by_id.keys())

    driver_default = ids.index(existing.driver_id) if existing and existing.driver_id in by_id else 0
    driver_id = st.selectbox(
        "Driver",
        options=ids,
        index=driver_default,
        format_func=lambda mid: by_id[mid].name,
        key=f"driver_{day}",
    )
    day_type = st.radio(
        "Day type",
        options=list(TRIP_TYPES),
        index=TRIP_TYPES.index(existing.day_type) if existing and existing.day_type in TRIP_TYPES else 1,
        format_func=TRIP_LABELS.get,
        horizontal=True,
        key=f"day_type_{day}",
    )

    prior = {r.member_id: r.trip_type for r in existing.riders} if existing else {}
    st.write("Riders (the driver must ride too)")
    riders: List[Dict[str, str]] = []
    for m in active:
        options = ["none"] + list(TRIP_TYPES)
        default = prior.get(m.member_id, day_type if m.member_id == driver_id else "none")
        choice = st.radio(
            m.name,
            options=options,
            index=options.index(default) if default in options else 0,
            format_func=lambda v: "Not riding" if v == "none" else TRIP_LABELS[v],
            horizontal=True,
            key=f"rider_{day}_{m.member_id}",
        )
        if choice != "none":
            riders.append({"member_id": m.member_id, "trip_type": choice})

    notes = st.text_input("Notes (optional)", value=existing.notes if existing else "", key=f"notes_{day}")

    # live preview using the same split the tracker applies
    rate = by_id[driver_id].rate_for(day_type)
    if rate <= 0:
        st.warning(f"{by_id[driver_id].name} has no {TRIP_LABELS[day_type].lower()} rate set.")
    elif riders and any(r["member_id"] == driver_id for r in riders):
        preview = split_day(rate, riders, driver_id)
        rows = [
            {"member": by_id[c.member_id].name, "trip": TRIP_LABELS[c.trip_type], "units": c.units, "charge": float(c.charge)}
            for c in preview.riders
        ]
        st.dataframe(pd.DataFrame(rows).style.format({"charge": "{:.2f}"}), use_container_width=True)
        st.caption(f"Day total {rate:.2f}, charged {preview.total_amount:.2f}")

    if st.button("Save day", key=f"save_{day}"):
        if not riders:
            st.error("Select at least 1 rider.")
            return
        if not any(r["member_id"] == driver_id for r in riders):
            st.error("Driver must be included as a rider.")
            return
        on_submit(
            EntryInput(
                date=day.isoformat(),
                driver_id=driver_id,
                day_type=day_type,
                riders=riders,
                notes=notes.strip(),
                expected_version=existing.version if existing else 0,
            )
        )


def display_month_entries(entries: List[DayEntry], holidays: List[Holiday], names: Dict[str, str], month: str):
    """
    Render the month's entries as a table and offer an XLSX export.
    Holidays without an entry are listed too so the month reads like a calendar.
    """
    st.header(f"Rides in {month}")
    holiday_by_date = {h.date: h.name for h in holidays}
    rows = []
    for e in entries:
        rows.append({
            "date": e.date,
            "holiday": holiday_by_date.get(e.date, ""),
            "driver": names.get(e.driver_id, e.driver_id),
            "day_type": TRIP_LABELS.get(e.day_type, e.day_type),
            "riders": ", ".join(
                f"{names.get(r.member_id, r.member_id)} ({r.charge:.2f})" for r in e.riders
            ),
            "total": float(e.total_amount),
            "notes": e.notes,
        })
    for date, name in holiday_by_date.items():
        if not any(e.date == date for e in entries):
            rows.append({"date": date, "holiday": name, "driver": "", "day_type": "", "riders": "", "total": 0.0, "notes": ""})

    if not rows:
        st.write("No rides recorded.")
        return
    df = pd.DataFrame(rows, columns=["date", "holiday", "driver", "day_type", "riders", "total", "notes"])
    df = df.sort_values("date").reset_index(drop=True)
    st.dataframe(df.style.format({"total": "{:.2f}"}), use_container_width=True)
    st.markdown(f"**Month total: {df['total'].sum():.2f}**")

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="rides")
    buffer.seek(0)
    st.download_button(
        label="Download as XLSX",
        data=buffer.getvalue(),
        file_name=f"rides_{month}.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def display_balances(balances: Dict[str, Decimal], names: Dict[str, str]):
    """Show each member's net balance for the month, with a bar chart."""
    st.header("Balances")
    if not balances:
        st.write("No balances to display.")
        return
    rows = [{"member": names.get(mid, mid), "balance": float(v)} for mid, v in balances.items()]
    for r in rows:
        st.write(f"  {r['member']}: {r['balance']:.2f}")
    df = pd.DataFrame(rows)
    chart = alt.Chart(df).mark_bar().encode(
        x=alt.X("member:N", title="Member", sort=None),
        y=alt.Y("balance:Q", title="Balance"),
        color=alt.condition(alt.datum.balance >= 0, alt.value("#22c55e"), alt.value("#ef4444")),
        tooltip=[alt.Tooltip("member:N"), alt.Tooltip("balance:Q", format=".2f")],
    ).properties(height=250)
    st.altair_chart(chart, use_container_width=True)


def display_transfers(suggestions: List[str]):
    """Show settle-up suggestions."""
    st.header("Settle Up")
    if suggestions:
        for s in suggestions:
            st.write(f"  {s}")
    else:
        st.write("No transfers needed.")


def display_members(tracker):
    """
    Member admin: list members, add a member, update a driver's rates and
    deactivate members. Expects a ridesplit.tracker.RideTracker.
    """
    st.header("Members")
    members = tracker.list_members()
    if members:
        df = pd.DataFrame([
            {
                "id": m.member_id,
                "name": m.name,
                "phone": m.phone,
                "active": m.active,
                "one_way_total": float(m.one_way_total),
                "two_way_total": float(m.two_way_total),
            }
            for m in members
        ])
        st.dataframe(df.style.format({"one_way_total": "{:.2f}", "two_way_total": "{:.2f}"}), use_container_width=True)
    else:
        st.write("No members yet.")

    with st.form(key="add_member_form"):
        st.subheader("Add member")
        name = st.text_input("Name")
        phone = st.text_input("Phone (optional)")
        if st.form_submit_button("Add member"):
            try:
                member = tracker.add_member(name=name, phone=phone)
                st.success(f"Added {member.name}.")
                _trigger_rerun()
            except RideSplitError as exc:
                logger.warning("Add member rejected: %s", exc)
                show_error(exc)

    active = [m for m in members if m.active]
    if not active:
        return
    by_id = {m.member_id: m for m in active}

    st.subheader("Driver rates")
    st.caption("Rates apply to days saved from now on.")
    # outside the form so picking a driver reruns and refreshes the prefilled rates
    mid = st.selectbox("Driver", options=list(by_id.keys()), format_func=lambda x: by_id[x].name, key="rates_driver")
    with st.form(key="rates_form"):
        one = st.number_input(
            "One-way day total", min_value=0.0, format="%.2f",
            value=float(by_id[mid].one_way_total), key=f"one_way_{mid}",
        )
        two = st.number_input(
            "Round-trip day total", min_value=0.0, format="%.2f",
            value=float(by_id[mid].two_way_total), key=f"two_way_{mid}",
        )
        if st.form_submit_button("Update rates"):
            try:
                tracker.update_member_rates(mid, round(one, 2), round(two, 2))
                st.success("Rates updated.")
                _trigger_rerun()
            except RideSplitError as exc:
                logger.warning("Rate update rejected: %s", exc)
                show_error(exc)

    st.markdown("---")
    st.subheader("Deactivate member")
    target = st.selectbox(
        "Member", options=list(by_id.keys()), format_func=lambda x: by_id[x].name, key="deactivate_member"
    )
    confirm = st.checkbox("I confirm this member no longer rides")
    if st.button("Deactivate") and confirm:
        try:
            tracker.deactivate_member(target)
            st.success(f"{by_id[target].name} deactivated.")
            _trigger_rerun()
        except RideSplitError as exc:
            show_error(exc)
