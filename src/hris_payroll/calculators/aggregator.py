"""Reduce daily attendance into period totals per hour category."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Protocol

from hris_payroll.calculators.daily_breakdown import (
    DEFAULT_DAILY_HOURS,
    breakdown_for_record,
    day_type_of,
)
from hris_payroll.calculators.types import (
    ZERO,
    AttendanceAggregate,
    DailyBreakdown,
    PayCategory,
)
from hris_payroll.models import AttendanceRecord

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class LeaveTypeLike(Protocol):
    is_paid: bool
    pay_percentage: Decimal


class AttendanceAggregator:
    """Builds an AttendanceAggregate from one employee's records.

    Holds no state between calls: aggregating the same records twice gives
    identical totals.
    """

    def __init__(
        self,
        leave_types: Mapping[int, LeaveTypeLike] | None = None,
        standard_daily_hours: Decimal = DEFAULT_DAILY_HOURS,
    ):
        self.leave_types = leave_types or {}
        self.standard_daily_hours = standard_daily_hours

    def aggregate(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
        records: Iterable[AttendanceRecord],
    ) -> AttendanceAggregate:
        agg = AttendanceAggregate(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
        )
        for record in records:
            if record.employee_id != employee_id:
                continue
            if not period_start <= record.work_date <= period_end:
                continue
            self._add_record(agg, record)
        return agg

    def _add_record(self, agg: AttendanceAggregate, record: AttendanceRecord) -> None:
        if record.is_present:
            breakdown = self.day_breakdown(record)
            agg.days_worked += 1
            for category, hours in breakdown.hours.items():
                agg.hours[category] += hours
            agg.flags = agg.flags.merge(breakdown.flags)
            if record.is_late or breakdown.is_late:
                agg.late_days += 1
            agg.late_minutes += record.late_minutes or breakdown.late_minutes
            agg.undertime_minutes += record.undertime_minutes or breakdown.undertime_minutes
            return

        if record.is_absent:
            agg.days_absent += 1
        elif record.on_leave:
            leave_type = self.leave_types.get(record.leave_type_id)
            if leave_type is not None and leave_type.is_paid:
                agg.paid_leave_days += 1
                agg.paid_leave_units += Decimal(leave_type.pay_percentage) / HUNDRED
            else:
                agg.unpaid_leave_days += 1
        elif record.is_regular_holiday and not record.is_dayoff:
            agg.unworked_regular_holidays += 1

    def day_breakdown(self, record: AttendanceRecord) -> DailyBreakdown:
        """The stored breakdown blob, or one derived from the record.

        Records with no time pair fall back to their stored hour totals,
        split into base and overtime hours of the day type.
        """
        if record.payroll_breakdown:
            return DailyBreakdown.from_json(record.payroll_breakdown)

        computed = breakdown_for_record(record, self.standard_daily_hours)
        if computed is not None:
            return computed

        day_type = day_type_of(record)
        total = Decimal(record.total_hours or ZERO)
        overtime = min(Decimal(record.overtime_hours or ZERO), total)
        hours = {}
        if total - overtime > 0:
            hours[PayCategory.for_bucket(day_type, night=False, overtime=False)] = total - overtime
        if overtime > 0:
            hours[PayCategory.for_bucket(day_type, night=False, overtime=True)] = overtime
        logger.debug(
            "Attendance %s has no time pair; using stored totals",
            record.attendance_id,
        )
        return DailyBreakdown(
            work_date=record.work_date,
            day_type=day_type,
            hours=hours,
            total_hours=total,
            overtime_hours=overtime,
        )


def aggregate_many(
    aggregator: AttendanceAggregator,
    employee_ids: Iterable[str],
    period_start: date,
    period_end: date,
    records: Iterable[AttendanceRecord],
) -> dict[str, AttendanceAggregate]:
    """Aggregate a batch of records fetched for many employees at once."""
    by_employee: dict[str, list[AttendanceRecord]] = {e: [] for e in employee_ids}
    for record in records:
        if record.employee_id in by_employee:
            by_employee[record.employee_id].append(record)
    return {
        employee_id: aggregator.aggregate(employee_id, period_start, period_end, rows)
        for employee_id, rows in by_employee.items()
    }
