"""Tests for the hourly projections of a basal schedule."""

from decimal import Decimal

from basal_tracker.core.schedule import BasalSchedule
from basal_tracker.core.schedule.projection import hourly_rates, hourly_units


def test_hourly_units_follow_change_points():
    s = BasalSchedule(
        [(0, 4), (360, 8), (1080, 2)], name="Weekday", accuracy="0.05"
    )
    assert hourly_units(s) == [4] * 6 + [8] * 12 + [2] * 6


def test_half_hour_points_only_count_from_the_next_hour():
    s = BasalSchedule([(0, 4), (390, 8)], name="Weekday", accuracy="0.05")
    units = hourly_units(s)
    assert units[6] == 4
    assert units[7] == 8


def test_hourly_rates_are_exact():
    s = BasalSchedule([(0, 11), (720, 7)], name="Weekend", accuracy="0.1")
    rates = hourly_rates(s)
    assert len(rates) == 24
    assert rates[0] == Decimal("1.1")
    assert rates[12] == Decimal("0.7")


def test_projection_round_trips_through_apply_hourly_rates():
    s = BasalSchedule([(0, 4), (360, 8), (1080, 2)], name="A", accuracy="0.05")
    copy = BasalSchedule.empty(name="B", accuracy="0.05")
    copy.apply_hourly_rates(hourly_rates(s))
    assert copy.points == s.points
