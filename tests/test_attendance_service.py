"""Tests for attendance preview and submit."""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from hris_payroll.calculators.aggregator import AttendanceAggregator
from hris_payroll.models import AttendanceRecord
from hris_payroll.services.attendance_service import AttendanceService


def _row(employee_id="E001", day="2025-03-03", start="08:00:00", end="17:00:00", **extra):
    row = {
        "employee_id": employee_id,
        "date": day,
        "time_in": f"{day}T{start}",
        "time_out": f"{day}T{end}",
        "is_present": True,
        "scheduled_start": "08:00",
        "scheduled_end": "17:00",
        "break_start": "12:00",
        "break_end": "13:00",
    }
    row.update(extra)
    return row


async def _count(session) -> int:
    result = await session.execute(select(func.count(AttendanceRecord.attendance_id)))
    return result.scalar_one()


class TestAttendanceService:
    """Test the two-phase ingestion flow."""

    async def test_submit_creates_records_with_breakdown(self, session, test_employees):
        outcome = await AttendanceService(session).submit(
            [_row(), _row(day="2025-03-04", end="19:00:00")]
        )

        assert not outcome.rejected
        assert len(outcome.created) == 2

        record = await session.get(AttendanceRecord, outcome.created[1])
        assert record.total_hours == Decimal("10")
        assert record.overtime_hours == Decimal("2")
        assert record.payroll_breakdown["hours"] == {
            "regular": "8.00",
            "regular_overtime": "2.00",
        }

    async def test_invalid_rows_are_reported_not_written(self, session, test_employees):
        outcome = await AttendanceService(session).submit(
            [_row(), _row(day="2025-03-04", is_absent=True)], first_row=2
        )

        assert len(outcome.created) == 1
        assert len(outcome.errors) == 1
        assert outcome.errors[0].startswith("Row 3: ")
        assert await _count(session) == 1

    async def test_file_duplicates_reject_whole_batch(self, session, test_employees):
        service = AttendanceService(session)

        preview = await service.preview([_row(), _row(employee_id="E002"), _row()])
        outcome = await service.submit([_row(), _row(employee_id="E002"), _row()])

        assert preview.rejected
        assert preview.conflicts[0].reason == "duplicate attendance in rows 1, 3"
        assert outcome.rejected
        assert outcome.created == []
        assert await _count(session) == 0

    async def test_preview_warns_about_persisted_days(self, session, test_employees):
        service = AttendanceService(session)
        await service.submit([_row()])

        preview = await service.preview([_row(), _row(day="2025-03-04")])

        assert not preview.rejected
        assert len(preview.clean) == 2
        assert [w.work_date for w in preview.warnings] == [date(2025, 3, 3)]

    async def test_existing_days_skipped_without_overwrite(self, session, test_employees):
        service = AttendanceService(session)
        first = await service.submit([_row()])

        outcome = await service.submit([_row(end="20:00:00")])

        assert outcome.created == []
        assert outcome.updated == []
        assert outcome.skipped[0].attendance_id == first.created[0]
        record = await session.get(AttendanceRecord, first.created[0])
        assert record.overtime_hours == Decimal("0")

    async def test_overwrite_updates_and_recomputes(self, session, test_employees):
        service = AttendanceService(session)
        first = await service.submit([_row()])

        outcome = await service.submit([_row(end="20:00:00")], overwrite=True)

        assert outcome.updated == first.created
        record = await session.get(AttendanceRecord, first.created[0])
        assert record.overtime_hours == Decimal("3")
        assert await _count(session) == 1

    async def test_overwrite_without_times_clears_derived_minutes(self, session, test_employees):
        service = AttendanceService(session)
        first = await service.submit([_row(start="09:30:00")])
        record = await session.get(AttendanceRecord, first.created[0])
        assert record.late_minutes == 90

        replacement = _row(total_hours="8")
        del replacement["time_in"], replacement["time_out"]
        await service.submit([replacement], overwrite=True)

        assert record.late_minutes == 0
        assert record.undertime_minutes == 0
        assert record.night_differential_hours == 0
        assert not record.is_late
        agg = AttendanceAggregator().aggregate(
            "E001", date(2025, 3, 1), date(2025, 3, 15), [record]
        )
        assert agg.late_minutes == 0
        assert agg.late_days == 0
