"""Unit tests for recurrence rules."""

from datetime import date, datetime, time, timedelta

import pytest

from notifyhub.domain.models import ScheduleType
from notifyhub.engine.recurrence import (
    add_months,
    is_due_today,
    next_execution,
    parse_schedule_time,
    start_of_day,
)

TODAY = date(2025, 3, 12)


def at(day: date, hour: int = 9, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))


class TestIsDueToday:
    """Tests for is_due_today."""

    @pytest.mark.parametrize("schedule_type", ["once", "daily", "weekly", "monthly"])
    def test_never_executed_and_started_is_due(self, schedule_type):
        assert is_due_today(schedule_type, TODAY - timedelta(days=1), None, TODAY)

    @pytest.mark.parametrize("schedule_type", ["once", "daily", "weekly", "monthly"])
    def test_start_date_in_future_is_not_due(self, schedule_type):
        assert not is_due_today(schedule_type, TODAY + timedelta(days=1), None, TODAY)

    @pytest.mark.parametrize("schedule_type", ["once", "daily", "weekly", "monthly"])
    def test_executed_earlier_today_is_never_due(self, schedule_type):
        assert not is_due_today(schedule_type, date(2024, 1, 1), at(TODAY, 0, 1), TODAY)

    def test_start_date_today_is_due(self):
        assert is_due_today(ScheduleType.DAILY, TODAY, None, TODAY)

    def test_once_never_fires_again(self):
        """After one run a once schedule stays done, whatever day it is."""
        ran = at(TODAY)
        for offset in (1, 7, 31, 400):
            assert not is_due_today("once", TODAY, ran, TODAY + timedelta(days=offset))

    def test_daily_due_next_day(self):
        ran = at(TODAY)
        assert not is_due_today("daily", TODAY, ran, TODAY)
        assert is_due_today("daily", TODAY, ran, TODAY + timedelta(days=1))

    def test_weekly_waits_seven_days(self):
        ran = at(TODAY, 23, 59)
        for offset in range(1, 7):
            assert not is_due_today("weekly", TODAY, ran, TODAY + timedelta(days=offset))
        assert is_due_today("weekly", TODAY, ran, TODAY + timedelta(days=7))
        assert is_due_today("weekly", TODAY, ran, TODAY + timedelta(days=10))

    def test_monthly_waits_for_month_change(self):
        ran = at(date(2025, 3, 1))
        assert not is_due_today("monthly", date(2025, 1, 1), ran, date(2025, 3, 31))
        assert is_due_today("monthly", date(2025, 1, 1), ran, date(2025, 4, 1))

    def test_monthly_same_month_different_year_is_due(self):
        ran = at(date(2024, 3, 20))
        assert is_due_today("monthly", date(2024, 1, 1), ran, date(2025, 3, 5))

    def test_unknown_type_is_never_due(self):
        assert not is_due_today("hourly", TODAY - timedelta(days=3), None, TODAY)


class TestNextExecution:
    """Tests for next_execution."""

    def test_once_has_no_next_run(self):
        assert next_execution("once", TODAY, "09:00", at(TODAY, 9, 5)) is None

    def test_daily_is_tomorrow_at_schedule_time(self):
        result = next_execution("daily", TODAY, "09:00", at(TODAY, 9, 5))
        assert result == datetime(2025, 3, 13, 9, 0)

    def test_weekly_is_seven_days_later(self):
        result = next_execution(ScheduleType.WEEKLY, TODAY, "18:30", at(TODAY, 18, 31))
        assert result == datetime(2025, 3, 19, 18, 30)

    def test_monthly_is_same_day_next_month(self):
        result = next_execution("monthly", TODAY, "07:15", at(TODAY, 8))
        assert result == datetime(2025, 4, 12, 7, 15)

    def test_monthly_clamps_to_last_day_of_month(self):
        result = next_execution("monthly", date(2025, 1, 1), "09:00", at(date(2025, 1, 31)))
        assert result == datetime(2025, 2, 28, 9, 0)

    def test_monthly_december_rolls_into_next_year(self):
        result = next_execution("monthly", date(2025, 1, 1), "09:00", at(date(2025, 12, 15)))
        assert result == datetime(2026, 1, 15, 9, 0)

    def test_never_earlier_than_start_date(self):
        start = TODAY + timedelta(days=30)
        result = next_execution("daily", start, "09:00", at(TODAY))
        assert result == datetime.combine(start, time(9, 0))

    def test_unknown_type_has_no_next_run(self):
        assert next_execution("yearly", TODAY, "09:00", at(TODAY)) is None


class TestHelpers:
    """Tests for the small date helpers."""

    def test_add_months_leap_year(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_parse_schedule_time_drops_seconds(self):
        assert parse_schedule_time("09:05:30") == time(9, 5)

    def test_parse_schedule_time_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_schedule_time("25:00")

    def test_start_of_day(self):
        assert start_of_day(datetime(2025, 3, 12, 17, 45, 3)) == datetime(2025, 3, 12)
