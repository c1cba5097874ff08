"""Tests for splitting one attendance day into hour categories."""

from datetime import date, datetime, time
from decimal import Decimal

from hris_payroll.calculators.daily_breakdown import (
    WorkSchedule,
    compute_daily_breakdown,
    night_overlap,
)
from hris_payroll.calculators.types import DailyBreakdown, DayType, PayCategory

DAY = date(2025, 3, 3)
DAY_SHIFT = WorkSchedule(time(8, 0), time(17, 0), time(12, 0), time(13, 0))
NIGHT_SHIFT = WorkSchedule(time(22, 0), time(7, 0), time(2, 0), time(3, 0))


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


class TestWorkSchedule:
    def test_scheduled_hours_exclude_break(self):
        assert DAY_SHIFT.scheduled_hours(DAY) == Decimal("8")
        assert NIGHT_SHIFT.scheduled_hours(DAY) == Decimal("8")

    def test_no_schedule_uses_default(self):
        assert WorkSchedule().scheduled_hours(DAY, Decimal("8")) == Decimal("8")

    def test_overnight_break_after_midnight(self):
        start, end = NIGHT_SHIFT.break_window(DAY)
        assert start == at(2, day=date(2025, 3, 4))
        assert end == at(3, day=date(2025, 3, 4))


class TestNightOverlap:
    def test_counts_window_across_midnight(self):
        hours = night_overlap((at(20), at(8, day=date(2025, 3, 4))))
        assert hours.total_seconds() / 3600 == 8


class TestComputeDailyBreakdown:
    """Every worked hour lands in exactly one bucket."""

    def test_regular_day(self):
        result = compute_daily_breakdown(DAY, at(8), at(17), DAY_SHIFT, DayType.REGULAR)

        assert result.total_hours == Decimal("8")
        assert result.hours == {PayCategory.REGULAR: Decimal("8")}
        assert result.overtime_hours == 0
        assert not result.is_late
        assert not result.flags.has_multiple_premiums

    def test_overtime_is_tail_beyond_schedule(self):
        result = compute_daily_breakdown(DAY, at(8), at(19), DAY_SHIFT, DayType.REGULAR)

        assert result.total_hours == Decimal("10")
        assert result.hours[PayCategory.REGULAR] == Decimal("8")
        assert result.hours[PayCategory.REGULAR_OVERTIME] == Decimal("2")
        assert result.flags.has_overtime

    def test_overtime_into_night(self):
        result = compute_daily_breakdown(DAY, at(8), at(23), DAY_SHIFT, DayType.REGULAR)

        assert result.total_hours == Decimal("14")
        assert result.hours[PayCategory.REGULAR] == Decimal("8")
        assert result.hours[PayCategory.REGULAR_OVERTIME] == Decimal("5")
        assert result.hours[PayCategory.NIGHT_DIFF_OVERTIME] == Decimal("1")
        assert PayCategory.NIGHT_DIFF not in result.hours

    def test_night_shift_crosses_midnight(self):
        # Time-out earlier than time-in rolls to the next day
        result = compute_daily_breakdown(DAY, at(22), at(7), NIGHT_SHIFT, DayType.REGULAR)

        assert result.total_hours == Decimal("8")
        assert result.night_diff_hours == Decimal("7")
        assert result.hours[PayCategory.NIGHT_DIFF] == Decimal("7")
        assert result.hours[PayCategory.REGULAR] == Decimal("1")

    def test_regular_holiday_on_rest_day(self):
        result = compute_daily_breakdown(
            DAY, at(8), at(17), DAY_SHIFT, DayType.REGULAR_HOLIDAY_REST_DAY
        )

        assert result.hours == {PayCategory.REGULAR_HOLIDAY_REST_DAY: Decimal("8")}
        assert result.flags.is_day_off_and_regular_holiday
        assert result.flags.has_multiple_premiums

    def test_buckets_sum_to_total(self):
        result = compute_daily_breakdown(
            DAY, at(13), at(6, day=date(2025, 3, 4)), DAY_SHIFT, DayType.SPECIAL_HOLIDAY
        )

        assert sum(result.hours.values()) == result.total_hours
        assert all(c.day_type is DayType.SPECIAL_HOLIDAY for c in result.hours)

    def test_late_and_undertime(self):
        result = compute_daily_breakdown(DAY, at(9, 30), at(16), DAY_SHIFT, DayType.REGULAR)

        assert result.late_minutes == 90
        assert result.undertime_minutes == 60
        assert result.is_late
        assert result.is_undertime
        assert not result.is_halfday

    def test_halfday(self):
        result = compute_daily_breakdown(DAY, at(8), at(11), DAY_SHIFT, DayType.REGULAR)

        assert result.total_hours == Decimal("3")
        assert result.is_halfday

    def test_rest_day_ignores_lateness(self):
        result = compute_daily_breakdown(DAY, at(10), at(15), DAY_SHIFT, DayType.REST_DAY)

        assert result.late_minutes == 0
        assert result.undertime_minutes == 0
        assert not result.is_undertime

    def test_blob_round_trip(self):
        result = compute_daily_breakdown(DAY, at(8), at(23), DAY_SHIFT, DayType.REGULAR)

        restored = DailyBreakdown.from_json(result.to_json())

        assert restored.hours == result.hours
        assert restored.flags == result.flags
