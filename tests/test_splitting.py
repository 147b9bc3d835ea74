from decimal import Decimal

import pytest
from ridesplit.errors import PreconditionError, ValidationError
from ridesplit.splitting import split_day, units_for_trip


def _charges(result):
    return [c.charge for c in result.riders]


def test_weighted_split_without_drift():
    riders = [
        {"member_id": "A", "trip_type": "two_way"},
        {"member_id": "B", "trip_type": "one_way"},
        {"member_id": "C", "trip_type": "one_way"},
    ]
    result = split_day(Decimal("30"), riders, "A")
    assert [c.units for c in result.riders] == [2, 1, 1]
    assert _charges(result) == [Decimal("15.00"), Decimal("7.50"), Decimal("7.50")]
    assert result.total_amount == Decimal("30.00")


def test_positive_drift_goes_to_driver():
    riders = [{"member_id": m, "trip_type": "one_way"} for m in ("A", "B", "C")]
    result = split_day(10, riders, "B")
    assert _charges(result) == [Decimal("3.33"), Decimal("3.34"), Decimal("3.33")]
    assert result.total_amount == Decimal("10.00")


def test_negative_drift_goes_to_driver():
    riders = [{"member_id": m, "trip_type": "one_way"} for m in ("A", "B", "C")]
    result = split_day(20, riders, "A")
    assert _charges(result) == [Decimal("6.66"), Decimal("6.67"), Decimal("6.67")]
    assert result.total_amount == Decimal("20.00")


def test_rounding_is_half_up():
    riders = [{"member_id": "A", "trip_type": "one_way"}, {"member_id": "B", "trip_type": "one_way"}]
    result = split_day(Decimal("0.05"), riders, "A")
    # 0.025 rounds up for the passenger; the driver absorbs the extra cent
    assert _charges(result) == [Decimal("0.02"), Decimal("0.03")]


def test_order_is_preserved():
    riders = [
        {"member_id": "C", "trip_type": "one_way"},
        {"member_id": "A", "trip_type": "two_way"},
    ]
    result = split_day(9, riders, "A")
    assert [c.member_id for c in result.riders] == ["C", "A"]
    assert _charges(result) == [Decimal("3.00"), Decimal("6.00")]


def test_conservation_and_drift_bound():
    totals = ["0.01", "1", "7.77", "10", "33.33", "99.99", "12.34"]
    combos = [
        ["one_way"],
        ["one_way", "one_way", "one_way"],
        ["two_way", "one_way", "one_way", "one_way", "one_way", "one_way", "one_way"],
        ["two_way", "two_way", "one_way"],
    ]
    for total in totals:
        for trips in combos:
            riders = [{"member_id": f"M{i}", "trip_type": t} for i, t in enumerate(trips)]
            result = split_day(Decimal(total), riders, "M0")
            assert sum(_charges(result)) == Decimal(total)
            assert result.total_amount == Decimal(total)

            total_units = sum(units_for_trip(t) for t in trips)
            passengers = result.riders[1:]
            for c in passengers:
                exact = Decimal(total) * c.units / total_units
                assert abs(c.charge - exact) <= Decimal("0.005")
            exact_driver = Decimal(total) * result.riders[0].units / total_units
            assert abs(result.riders[0].charge - exact_driver) < Decimal("0.01") * len(trips)


def test_rejects_empty_riders():
    with pytest.raises(ValidationError):
        split_day(10, [], "A")


def test_rejects_driver_not_riding():
    with pytest.raises(ValidationError):
        split_day(10, [{"member_id": "B", "trip_type": "one_way"}], "A")


def test_rejects_unknown_trip_type():
    riders = [{"member_id": "A", "trip_type": "three_way"}]
    with pytest.raises(ValidationError):
        split_day(10, riders, "A")


def test_rejects_non_positive_day_total():
    riders = [{"member_id": "A", "trip_type": "one_way"}]
    with pytest.raises(PreconditionError):
        split_day(0, riders, "A")


def test_units_for_trip():
    assert units_for_trip("one_way") == 1
    assert units_for_trip("two_way") == 2
    assert units_for_trip("bogus") == 0
