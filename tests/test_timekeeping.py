"""Tests for wall-clock arithmetic."""

from datetime import time, timedelta

import pytest

from conftest import local
from lecture_reminders.timekeeping import (
    next_daily_time,
    next_midnight,
    next_weekly_time,
    seconds_until,
    week_window,
)


class TestNextDailyTime:
    def test_later_today(self):
        now = local(2026, 10, 14, 6, 0)
        assert next_daily_time(time(7, 30), now) == local(2026, 10, 14, 7, 30)

    def test_already_passed_rolls_to_tomorrow(self):
        now = local(2026, 10, 14, 10, 30)
        assert next_daily_time(time(7, 30), now) == local(2026, 10, 15, 7, 30)

    def test_exactly_now_rolls_to_tomorrow(self):
        now = local(2026, 10, 14, 7, 30)
        assert next_daily_time(time(7, 30), now) == local(2026, 10, 15, 7, 30)


class TestNextWeeklyTime:
    def test_later_this_week(self):
        # Wednesday -> Sunday
        now = local(2026, 10, 14, 10, 30)
        assert next_weekly_time(time(18, 0), 7, now) == local(2026, 10, 18, 18, 0)

    def test_same_day_before_time(self):
        now = local(2026, 10, 18, 9, 0)
        assert next_weekly_time(time(18, 0), 7, now) == local(2026, 10, 18, 18, 0)

    def test_same_day_after_time_rolls_a_week(self):
        now = local(2026, 10, 18, 19, 0)
        assert next_weekly_time(time(18, 0), 7, now) == local(2026, 10, 25, 18, 0)

    def test_earlier_weekday_wraps_to_next_week(self):
        # Wednesday -> Monday
        now = local(2026, 10, 14, 10, 30)
        assert next_weekly_time(time(8, 0), 1, now) == local(2026, 10, 19, 8, 0)


def test_next_midnight_is_one_second_past():
    now = local(2026, 10, 14, 23, 59, 59)
    assert next_midnight(now) == local(2026, 10, 15, 0, 0, 1)


def test_next_midnight_from_just_after_midnight():
    now = local(2026, 10, 15, 0, 0, 1)
    assert next_midnight(now) == local(2026, 10, 16, 0, 0, 1)


@pytest.mark.parametrize(
    "now, monday, friday",
    [
        # Wednesday: same week
        (local(2026, 10, 14, 10, 30), (2026, 10, 12), (2026, 10, 16)),
        # Monday: same week
        (local(2026, 10, 12, 0, 0), (2026, 10, 12), (2026, 10, 16)),
        # Friday evening: same week
        (local(2026, 10, 16, 23, 0), (2026, 10, 12), (2026, 10, 16)),
        # Saturday: next week
        (local(2026, 10, 17, 9, 0), (2026, 10, 19), (2026, 10, 23)),
        # Sunday: next week
        (local(2026, 10, 18, 18, 0), (2026, 10, 19), (2026, 10, 23)),
    ],
)
def test_week_window(now, monday, friday):
    start, end = week_window(now)

    assert start == local(*monday)
    assert end == local(*friday, 23, 59, 59)
    assert start.isoweekday() == 1
    assert end.isoweekday() == 5


class TestDaylightSaving:
    def test_autumn_day_is_twenty_five_hours(self):
        now = local(2026, 10, 24, 12, 0)
        target = next_daily_time(time(12, 0), now)

        assert target == local(2026, 10, 25, 12, 0)
        assert seconds_until(target, now) == 25 * 3600

    def test_spring_day_is_twenty_three_hours(self):
        now = local(2026, 3, 28, 12, 0)
        target = next_daily_time(time(12, 0), now)

        assert seconds_until(target, now) == 23 * 3600

    def test_midnight_before_clocks_go_back(self):
        now = local(2026, 10, 24, 22, 0)
        target = next_midnight(now)

        assert target == local(2026, 10, 25, 0, 0, 1)
        assert seconds_until(target, now) == 2 * 3600 + 1


class TestRepeatedAutumnHour:
    # 25 Oct 2026: 01:00-02:00 happens twice, first BST (fold=0) then GMT (fold=1)

    def test_daily_time_already_passed_in_first_pass_rolls_to_tomorrow(self):
        now = local(2026, 10, 25, 1, 15).replace(fold=1)
        target = next_daily_time(time(1, 30), now)

        assert target == local(2026, 10, 26, 1, 30)
        assert seconds_until(target, now) == 24 * 3600 + 15 * 60

    def test_weekly_time_already_passed_in_first_pass_rolls_a_week(self):
        now = local(2026, 10, 25, 1, 15).replace(fold=1)
        target = next_weekly_time(time(1, 30), 7, now)

        assert target == local(2026, 11, 1, 1, 30)
        assert seconds_until(target, now) == 7 * 86400 + 15 * 60

    def test_daily_time_still_ahead_in_first_pass(self):
        now = local(2026, 10, 25, 1, 15)
        target = next_daily_time(time(1, 30), now)

        assert target == local(2026, 10, 25, 1, 30)
        assert seconds_until(target, now) == 15 * 60


def test_seconds_until_never_negative():
    now = local(2026, 10, 14, 10, 30)
    assert seconds_until(now - timedelta(minutes=5), now) == 0
