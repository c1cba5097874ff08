"""Two-phase attendance ingestion: preview, then submit."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.attendance_validator import (
    AttendanceRecordValidator,
    CleanAttendanceRow,
    DuplicateWarning,
    ValidationResult,
    find_file_duplicates,
    find_persisted_duplicates,
)
from hris_payroll.calculators.daily_breakdown import (
    DEFAULT_DAILY_HOURS,
    apply_breakdown,
    breakdown_for_record,
)
from hris_payroll.calculators.rate_config import RateConfigurationStore
from hris_payroll.exceptions import ConflictError
from hris_payroll.models import AttendanceRecord, LeaveRequest

logger = logging.getLogger(__name__)


@dataclass
class AttendancePreview:
    """Outcome of validating a batch without writing it."""

    clean: list[CleanAttendanceRow] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    conflicts: list[ConflictError] = field(default_factory=list)
    warnings: list[DuplicateWarning] = field(default_factory=list)

    @property
    def rejected(self) -> bool:
        """File-internal duplicates reject the whole batch."""
        return bool(self.conflicts)


@dataclass
class AttendanceSubmitResult:
    created: list[int] = field(default_factory=list)
    updated: list[int] = field(default_factory=list)
    skipped: list[DuplicateWarning] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    conflicts: list[ConflictError] = field(default_factory=list)

    @property
    def rejected(self) -> bool:
        return bool(self.conflicts)


class AttendanceService:
    """Validates attendance batches and persists them on confirmation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def preview(
        self, rows: Sequence[Mapping[str, Any]], first_row: int = 1
    ) -> AttendancePreview:
        """Validate a batch and detect duplicates; nothing is persisted."""
        result = await self._validate(rows, first_row)
        preview = AttendancePreview(
            clean=result.clean,
            errors=result.messages,
            conflicts=find_file_duplicates(result.clean),
        )
        if not preview.rejected:
            existing = await self._existing_keys(result.clean)
            preview.warnings = find_persisted_duplicates(result.clean, existing)
        return preview

    async def submit(
        self,
        rows: Sequence[Mapping[str, Any]],
        overwrite: bool = False,
        first_row: int = 1,
    ) -> AttendanceSubmitResult:
        """Persist a batch.

        Persisted duplicates are re-checked here since the preview may be
        stale; they are updated only with `overwrite`, otherwise skipped.
        Invalid rows are reported and never written.
        """
        validated = await self._validate(rows, first_row)
        outcome = AttendanceSubmitResult(
            errors=validated.messages,
            conflicts=find_file_duplicates(validated.clean),
        )
        if outcome.rejected:
            logger.warning(
                "Attendance batch rejected: %d duplicate key(s) in file",
                len(outcome.conflicts),
            )
            return outcome

        existing = await self._existing_records(validated.clean)
        daily_hours = await self._standard_daily_hours(validated.clean)

        for row in validated.clean:
            record = existing.get(row.key)
            if record is not None and not overwrite:
                outcome.skipped.append(
                    DuplicateWarning(row.row_number, row.employee_id, row.work_date, record.attendance_id)
                )
                continue
            if record is None:
                record = AttendanceRecord(**row.record_values())
                self.session.add(record)
                created = True
            else:
                for name, value in row.record_values().items():
                    setattr(record, name, value)
                # Derived from the replaced times
                record.night_differential_hours = Decimal("0")
                record.late_minutes = 0
                record.undertime_minutes = 0
                record.payroll_breakdown = None
                created = False

            breakdown = breakdown_for_record(record, daily_hours) if row.is_present else None
            if breakdown is not None:
                apply_breakdown(record, breakdown)

            await self.session.flush()
            (outcome.created if created else outcome.updated).append(record.attendance_id)

        logger.info(
            "Attendance submitted: %d created, %d updated, %d skipped, %d invalid",
            len(outcome.created),
            len(outcome.updated),
            len(outcome.skipped),
            len(outcome.errors),
        )
        return outcome

    async def _validate(
        self, rows: Sequence[Mapping[str, Any]], first_row: int
    ) -> ValidationResult:
        ids = set()
        for raw in rows:
            value = raw.get("leave_request_id")
            if value not in (None, ""):
                try:
                    ids.add(int(value))
                except (TypeError, ValueError):
                    continue
        requests: dict[int, LeaveRequest] = {}
        if ids:
            result = await self.session.execute(
                select(LeaveRequest).where(LeaveRequest.leave_request_id.in_(ids))
            )
            requests = {r.leave_request_id: r for r in result.scalars().all()}
        return AttendanceRecordValidator(requests).validate(rows, first_row)

    async def _existing_records(
        self, rows: Sequence[CleanAttendanceRow]
    ) -> dict[tuple[str, date], AttendanceRecord]:
        if not rows:
            return {}
        keys = {row.key for row in rows}
        result = await self.session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.employee_id.in_({key[0] for key in keys}),
                AttendanceRecord.work_date >= min(key[1] for key in keys),
                AttendanceRecord.work_date <= max(key[1] for key in keys),
            )
        )
        records = {(r.employee_id, r.work_date): r for r in result.scalars().all()}
        return {key: record for key, record in records.items() if key in keys}

    async def _existing_keys(
        self, rows: Sequence[CleanAttendanceRow]
    ) -> dict[tuple[str, date], int | None]:
        records = await self._existing_records(rows)
        return {key: record.attendance_id for key, record in records.items()}

    async def _standard_daily_hours(self, rows: Sequence[CleanAttendanceRow]) -> Decimal:
        if not rows:
            return DEFAULT_DAILY_HOURS
        store = await RateConfigurationStore.load(self.session)
        as_of = max(row.work_date for row in rows)
        return store.snapshot(as_of).decimal(
            "payroll", "standard_daily_hours", DEFAULT_DAILY_HOURS
        )
