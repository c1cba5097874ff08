"""Tests for period attendance aggregation."""

from datetime import date, datetime, time
from decimal import Decimal

from hris_payroll.calculators.aggregator import AttendanceAggregator, aggregate_many
from hris_payroll.calculators.daily_breakdown import WorkSchedule, compute_daily_breakdown
from hris_payroll.calculators.types import DayType, PayCategory
from hris_payroll.models import AttendanceRecord, LeaveType

START = date(2025, 3, 1)
END = date(2025, 3, 15)


def _leave_types() -> dict[int, LeaveType]:
    return {
        1: LeaveType(leave_type_id=1, name="Vacation", is_paid=True, pay_percentage=Decimal("100")),
        2: LeaveType(leave_type_id=2, name="Half-paid", is_paid=True, pay_percentage=Decimal("50")),
        3: LeaveType(leave_type_id=3, name="Unpaid", is_paid=False, pay_percentage=Decimal("0")),
    }


class TestAttendanceAggregator:
    """Test reduction of daily records into period totals."""

    def test_present_days_use_time_pairs(self, attendance_factory):
        records = [
            attendance_factory("E001", date(2025, 3, 3)),
            attendance_factory("E001", date(2025, 3, 4), end=time(19, 0)),
        ]

        agg = AttendanceAggregator().aggregate("E001", START, END, records)

        assert agg.days_worked == 2
        assert agg.hours[PayCategory.REGULAR] == Decimal("16")
        assert agg.hours[PayCategory.REGULAR_OVERTIME] == Decimal("2")
        assert agg.total_hours == Decimal("18")
        assert agg.flags.has_overtime

    def test_leave_absence_and_unworked_holiday(self):
        records = [
            AttendanceRecord(employee_id="E001", work_date=date(2025, 3, 5), is_absent=True),
            AttendanceRecord(
                employee_id="E001", work_date=date(2025, 3, 6), on_leave=True, leave_type_id=1
            ),
            AttendanceRecord(
                employee_id="E001", work_date=date(2025, 3, 7), on_leave=True, leave_type_id=2
            ),
            AttendanceRecord(
                employee_id="E001", work_date=date(2025, 3, 10), on_leave=True, leave_type_id=3
            ),
            AttendanceRecord(
                employee_id="E001", work_date=date(2025, 3, 11), is_regular_holiday=True
            ),
            AttendanceRecord(
                employee_id="E001",
                work_date=date(2025, 3, 9),
                is_regular_holiday=True,
                is_dayoff=True,
            ),
        ]

        agg = AttendanceAggregator(_leave_types()).aggregate("E001", START, END, records)

        assert agg.days_absent == 1
        assert agg.paid_leave_days == 2
        assert agg.paid_leave_units == Decimal("1.5")
        assert agg.unpaid_leave_days == 1
        assert agg.unworked_regular_holidays == 1
        assert agg.days_worked == 0

    def test_ignores_other_employees_and_dates(self, attendance_factory):
        records = [
            attendance_factory("E002", date(2025, 3, 3)),
            attendance_factory("E001", date(2025, 2, 28)),
            attendance_factory("E001", date(2025, 3, 16)),
        ]

        agg = AttendanceAggregator().aggregate("E001", START, END, records)

        assert agg.days_worked == 0
        assert agg.total_hours == 0

    def test_stored_breakdown_takes_precedence(self, attendance_factory):
        record = attendance_factory("E001", date(2025, 3, 3))
        stored = compute_daily_breakdown(
            record.work_date,
            datetime(2025, 3, 3, 8),
            datetime(2025, 3, 3, 20),
            WorkSchedule(time(8, 0), time(17, 0), time(12, 0), time(13, 0)),
            DayType.REGULAR,
        )
        record.payroll_breakdown = stored.to_json()

        agg = AttendanceAggregator().aggregate("E001", START, END, [record])

        assert agg.hours[PayCategory.REGULAR_OVERTIME] == Decimal("3")

    def test_stored_totals_without_time_pair(self, attendance_factory):
        record = attendance_factory(
            "E001",
            date(2025, 3, 8),
            start=None,
            end=None,
            is_dayoff=True,
            total_hours=Decimal("9"),
            overtime_hours=Decimal("1"),
        )

        agg = AttendanceAggregator().aggregate("E001", START, END, [record])

        assert agg.hours[PayCategory.REST_DAY] == Decimal("8")
        assert agg.hours[PayCategory.REST_DAY_OVERTIME] == Decimal("1")

    def test_lateness_is_counted(self, attendance_factory):
        records = [
            attendance_factory("E001", date(2025, 3, 3), start=time(8, 20)),
            attendance_factory("E001", date(2025, 3, 4), start=time(8, 10)),
        ]

        agg = AttendanceAggregator().aggregate("E001", START, END, records)

        assert agg.late_days == 2
        assert agg.late_minutes == 30

    def test_aggregation_is_repeatable(self, attendance_factory):
        records = [attendance_factory("E001", date(2025, 3, 3))]
        aggregator = AttendanceAggregator()

        first = aggregator.aggregate("E001", START, END, records)
        second = aggregator.aggregate("E001", START, END, records)

        assert first == second

    def test_aggregate_many(self, attendance_factory):
        records = [
            attendance_factory("E001", date(2025, 3, 3)),
            attendance_factory("E002", date(2025, 3, 3)),
            attendance_factory("E002", date(2025, 3, 4)),
        ]

        result = aggregate_many(AttendanceAggregator(), ["E001", "E002", "E003"], START, END, records)

        assert result["E001"].days_worked == 1
        assert result["E002"].days_worked == 2
        assert result["E003"].days_worked == 0
