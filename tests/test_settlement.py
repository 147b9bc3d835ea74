from decimal import Decimal

from ridesplit.models import DayEntry, Member, RiderCharge, Transfer
from ridesplit.settlement import compute_balances, describe_transfers, suggest_transfers

D = Decimal


def _members(*ids, inactive=()):
    return [Member(member_id=i, name=i.title(), active=i not in inactive) for i in ids]


def _entry(date, driver, total, charges):
    return DayEntry(
        date=date,
        driver_id=driver,
        day_type="two_way",
        day_total_used=D(total),
        total_amount=D(total),
        riders=[RiderCharge(member_id=m, trip_type="one_way", units=1, charge=D(c)) for m, c in charges],
    )


def _replay(balances, transfers):
    remaining = dict(balances)
    for t in transfers:
        remaining[t.from_member] += t.amount
        remaining[t.to_member] -= t.amount
    return remaining


def test_balances_for_single_day():
    entries = [_entry("2025-03-03", "a", "30.00", [("a", "15.00"), ("b", "7.50"), ("c", "7.50")])]
    balances = compute_balances(_members("a", "b", "c"), entries)
    assert balances == {"a": D("15.00"), "b": D("-7.50"), "c": D("-7.50")}


def test_balances_start_with_every_active_member():
    balances = compute_balances(_members("a", "b", "z", inactive=("z",)), [])
    assert balances == {"a": D("0.00"), "b": D("0.00")}


def test_balances_include_riders_missing_from_member_list():
    entries = [_entry("2025-03-03", "a", "10.00", [("a", "5.00"), ("gone", "5.00")])]
    balances = compute_balances(_members("a"), entries)
    assert balances == {"a": D("5.00"), "gone": D("-5.00")}


def test_zero_total_entries_are_skipped():
    entries = [_entry("2025-03-03", "a", "0", [("a", "0"), ("b", "0")])]
    assert compute_balances(_members("a", "b"), entries) == {"a": D("0.00"), "b": D("0.00")}


def test_balances_sum_to_zero():
    entries = [
        _entry("2025-03-03", "a", "10.00", [("a", "3.34"), ("b", "3.33"), ("c", "3.33")]),
        _entry("2025-03-04", "b", "30.00", [("b", "15.00"), ("a", "7.50"), ("d", "7.50")]),
        _entry("2025-03-05", "d", "12.00", [("d", "4.00"), ("c", "8.00")]),
    ]
    balances = compute_balances(_members("a", "b", "c", "d"), entries)
    assert sum(balances.values()) == D("0.00")


def test_single_creditor_transfers():
    transfers = suggest_transfers({"a": D("15.00"), "b": D("-7.50"), "c": D("-7.50")})
    # equal debts keep balance order
    assert transfers == [
        Transfer(from_member="b", to_member="a", amount=D("7.50")),
        Transfer(from_member="c", to_member="a", amount=D("7.50")),
    ]


def test_greedy_matching_replays_to_zero():
    balances = {"a": D("10.00"), "b": D("5.00"), "c": D("-3.00"), "d": D("-12.00")}
    transfers = suggest_transfers(balances)
    assert transfers == [
        Transfer(from_member="d", to_member="a", amount=D("10.00")),
        Transfer(from_member="d", to_member="b", amount=D("2.00")),
        Transfer(from_member="c", to_member="b", amount=D("3.00")),
    ]
    assert all(abs(v) <= D("0.01") for v in _replay(balances, transfers).values())
    assert len(transfers) <= len(balances) - 1


def test_settlement_of_generated_month():
    entries = [
        _entry("2025-03-03", "a", "10.00", [("a", "3.34"), ("b", "3.33"), ("c", "3.33")]),
        _entry("2025-03-04", "b", "30.00", [("b", "15.00"), ("a", "7.50"), ("d", "7.50")]),
        _entry("2025-03-05", "d", "12.00", [("d", "4.00"), ("c", "8.00")]),
        _entry("2025-03-06", "c", "25.00", [("c", "8.34"), ("a", "8.33"), ("e", "8.33")]),
    ]
    balances = compute_balances(_members("a", "b", "c", "d", "e"), entries)
    transfers = suggest_transfers(balances)
    nonzero = [v for v in balances.values() if abs(v) > D("0.01")]
    assert len(transfers) <= len(nonzero) - 1
    assert all(t.amount > 0 for t in transfers)
    assert all(abs(v) <= D("0.01") for v in _replay(balances, transfers).values())


def test_near_zero_balances_need_no_transfer():
    assert suggest_transfers({"a": D("0.01"), "b": D("-0.01"), "c": D("0")}) == []
    assert suggest_transfers({}) == []


def test_describe_transfers_uses_names():
    transfers = [Transfer(from_member="b", to_member="a", amount=D("7.5"))]
    assert describe_transfers(transfers, {"a": "Ann", "b": "Bob"}) == ["Bob pays Ann 7.50"]
    assert describe_transfers(transfers) == ["b pays a 7.50"]
