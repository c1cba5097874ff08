"""Validation of raw attendance rows before they are persisted.

Rows arrive from bulk imports or manual entry as loosely typed mappings.
Each row is validated independently; a failing row is reported with its row
number and excluded, never partially applied.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Protocol, Sequence

from hris_payroll.calculators.types import ZERO
from hris_payroll.exceptions import ConflictError, ValidationError

BOOLEAN_FIELDS = (
    "is_present",
    "is_absent",
    "on_leave",
    "is_late",
    "is_undertime",
    "is_halfday",
    "is_dayoff",
    "is_regular_holiday",
    "is_special_holiday",
)
PRIMARY_STATES = ("is_present", "is_absent", "on_leave")
SECONDARY_STATES = ("is_late", "is_undertime", "is_halfday")

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no", ""}


class LeaveRequestLike(Protocol):
    employee_id: str
    leave_type_id: int
    status: str
    start_date: date
    end_date: date


@dataclass
class CleanAttendanceRow:
    """A validated attendance row, typed and ready to persist."""

    row_number: int
    employee_id: str
    work_date: date
    time_in: datetime | None = None
    time_out: datetime | None = None
    is_present: bool = False
    is_absent: bool = False
    on_leave: bool = False
    is_late: bool = False
    is_undertime: bool = False
    is_halfday: bool = False
    is_dayoff: bool = False
    is_regular_holiday: bool = False
    is_special_holiday: bool = False
    total_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    leave_type_id: int | None = None
    leave_request_id: int | None = None
    scheduled_start: time | None = None
    scheduled_end: time | None = None
    break_start: time | None = None
    break_end: time | None = None

    @property
    def key(self) -> tuple[str, date]:
        return self.employee_id, self.work_date

    def record_values(self) -> dict[str, Any]:
        """Column values for an AttendanceRecord."""
        values = {
            name: getattr(self, name)
            for name in self.__dataclass_fields__
            if name != "row_number"
        }
        return values


@dataclass(frozen=True)
class DuplicateWarning:
    """A clean row whose (employee, date) is already persisted."""

    row_number: int
    employee_id: str
    work_date: date
    attendance_id: int | None = None

    @property
    def message(self) -> str:
        return (
            f"Row {self.row_number}: attendance for employee {self.employee_id}"
            f" on {self.work_date} already exists"
        )


@dataclass
class ValidationResult:
    clean: list[CleanAttendanceRow] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [str(e) for e in self.errors]


def _parse_bool(name: str, value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise ValueError(f"'{name}' must be true or false, got {value!r}")


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        raise ValueError(f"'date' must be a calendar date, got a timestamp {value!r}")
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValueError(f"'date' is not a valid date: {value!r}")


def _parse_timestamp(name: str, value: Any) -> datetime | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and len(value.strip()) > 10:
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValueError(f"'{name}' is not a full date-time: {value!r}") from None
    else:
        raise ValueError(f"'{name}' is not a full date-time: {value!r}")
    # Stored as local wall-clock time
    return parsed.replace(tzinfo=None)


def _parse_time(name: str, value: Any) -> time | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        try:
            return time.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValueError(f"'{name}' is not a valid time of day: {value!r}")


def _parse_decimal(name: str, value: Any) -> Decimal:
    if value is None or (isinstance(value, str) and not value.strip()):
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"'{name}' must be a number, got {value!r}")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"'{name}' must be a number, got {value!r}") from None
    if not number.is_finite() or number < 0:
        raise ValueError(f"'{name}' must be a non-negative number, got {value!r}")
    return number


def _parse_id(name: str, value: Any) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError(f"'{name}' must be an integer id, got {value!r}")
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValueError(f"'{name}' must be an integer id, got {value!r}") from None
    if number < 0:
        raise ValueError(f"'{name}' must be non-negative, got {value!r}")
    return number


def _label(name: str) -> str:
    return name.removeprefix("is_").replace("_", "-")


class AttendanceRecordValidator:
    """Validates batches of raw attendance rows.

    Validation is pure: the same rows and leave-request lookup always
    produce the same clean and error sets.
    """

    def __init__(self, leave_requests: Mapping[int, LeaveRequestLike] | None = None):
        self.leave_requests = leave_requests or {}

    def validate(self, rows: Sequence[Mapping[str, Any]], first_row: int = 1) -> ValidationResult:
        """Validate every row; errors carry the row number."""
        result = ValidationResult()
        for offset, raw in enumerate(rows):
            row_number = first_row + offset
            try:
                result.clean.append(self.validate_row(raw, row_number))
            except ValidationError as exc:
                result.errors.append(exc)
        return result

    def validate_row(self, raw: Mapping[str, Any], row_number: int) -> CleanAttendanceRow:
        """Validate one row.

        Raises:
            ValidationError: On the first rule the row breaks
        """
        row = self._parse(raw, row_number)
        self._check_states(row)
        self._check_times(row)
        self._check_holidays(row)
        self._check_leave(row)
        return row

    def _parse(self, raw: Mapping[str, Any], row_number: int) -> CleanAttendanceRow:
        employee_id = raw.get("employee_id")
        if employee_id is None or not str(employee_id).strip():
            raise ValidationError(row_number, "'employee_id' is required")
        if raw.get("date") in (None, ""):
            raise ValidationError(row_number, "'date' is required")

        try:
            work_date = _parse_date(raw.get("date"))
            time_in = _parse_timestamp("time_in", raw.get("time_in"))
            time_out = _parse_timestamp("time_out", raw.get("time_out"))
            schedule = {
                name: _parse_time(name, raw.get(name))
                for name in ("scheduled_start", "scheduled_end", "break_start", "break_end")
            }
            total_hours = _parse_decimal("total_hours", raw.get("total_hours"))
            overtime_hours = _parse_decimal("overtime_hours", raw.get("overtime_hours"))
            leave_type_id = _parse_id("leave_type_id", raw.get("leave_type_id"))
            leave_request_id = _parse_id("leave_request_id", raw.get("leave_request_id"))
            flags = {name: _parse_bool(name, raw.get(name)) for name in BOOLEAN_FIELDS}
        except ValueError as exc:
            raise ValidationError(row_number, str(exc)) from None

        return CleanAttendanceRow(
            row_number=row_number,
            employee_id=str(employee_id).strip(),
            work_date=work_date,
            time_in=time_in,
            time_out=time_out,
            total_hours=total_hours,
            overtime_hours=overtime_hours,
            leave_type_id=leave_type_id,
            leave_request_id=leave_request_id,
            **schedule,
            **flags,
        )

    def _check_states(self, row: CleanAttendanceRow) -> None:
        n = row.row_number
        active = [name for name in PRIMARY_STATES if getattr(row, name)]
        if len(active) > 1:
            raise ValidationError(
                n,
                "conflicting states "
                + " and ".join(_label(name) for name in active)
                + "; only one of present, absent or on-leave may be set",
            )

        secondary = [name for name in SECONDARY_STATES if getattr(row, name)]
        if secondary and (row.is_absent or row.on_leave):
            state = "absent" if row.is_absent else "on-leave"
            raise ValidationError(
                n,
                f"{state} record cannot be marked "
                + ", ".join(_label(name) for name in secondary),
            )
        if not row.is_present:
            needs_present = [_label(name) for name in secondary]
            if row.overtime_hours > 0:
                needs_present.append("overtime hours")
            if row.total_hours > 0:
                needs_present.append("total hours")
            if needs_present:
                raise ValidationError(
                    n, ", ".join(needs_present) + " require the record to be present"
                )

        if row.is_dayoff and row.is_absent:
            raise ValidationError(n, "day-off cannot be marked absent")
        if row.is_dayoff and row.is_present and (row.time_in is None or row.time_out is None):
            raise ValidationError(
                n, "work on a day-off requires both time-in and time-out"
            )

    def _check_times(self, row: CleanAttendanceRow) -> None:
        if not row.is_present or row.time_in is None or row.time_out is None:
            return
        if row.time_out <= row.time_in:
            raise ValidationError(
                row.row_number,
                f"time-out {row.time_out.isoformat(sep=' ')} must be after"
                f" time-in {row.time_in.isoformat(sep=' ')}",
            )

    def _check_holidays(self, row: CleanAttendanceRow) -> None:
        if row.is_regular_holiday and row.is_special_holiday:
            raise ValidationError(
                row.row_number, "regular-holiday and special-holiday cannot both be set"
            )

    def _check_leave(self, row: CleanAttendanceRow) -> None:
        n = row.row_number
        if not row.on_leave:
            return
        if row.leave_type_id is None:
            raise ValidationError(n, "on-leave record requires a leave type")
        if row.leave_request_id is None:
            return

        request = self.leave_requests.get(row.leave_request_id)
        if request is None:
            raise ValidationError(n, f"leave request {row.leave_request_id} does not exist")
        if request.employee_id != row.employee_id:
            raise ValidationError(
                n,
                f"leave request {row.leave_request_id} belongs to employee"
                f" {request.employee_id}, not {row.employee_id}",
            )
        if request.status != "approved":
            raise ValidationError(
                n, f"leave request {row.leave_request_id} is {request.status}, not approved"
            )
        if not request.start_date <= row.work_date <= request.end_date:
            raise ValidationError(
                n,
                f"{row.work_date} is outside leave request {row.leave_request_id}"
                f" ({request.start_date} to {request.end_date})",
            )
        if request.leave_type_id != row.leave_type_id:
            raise ValidationError(
                n,
                f"leave type {row.leave_type_id} does not match leave request"
                f" {row.leave_request_id} (type {request.leave_type_id})",
            )


def find_file_duplicates(rows: Sequence[CleanAttendanceRow]) -> list[ConflictError]:
    """(employee, date) pairs appearing more than once in one batch."""
    seen: dict[tuple[str, date], list[int]] = defaultdict(list)
    for row in rows:
        seen[row.key].append(row.row_number)
    return [
        ConflictError(
            employee_id,
            "duplicate attendance in rows " + ", ".join(str(n) for n in numbers),
            start_date=work_date,
        )
        for (employee_id, work_date), numbers in seen.items()
        if len(numbers) > 1
    ]


def find_persisted_duplicates(
    rows: Sequence[CleanAttendanceRow],
    existing: Mapping[tuple[str, date], int | None],
) -> list[DuplicateWarning]:
    """Rows whose (employee, date) already has a persisted record."""
    return [
        DuplicateWarning(row.row_number, row.employee_id, row.work_date, existing[row.key])
        for row in rows
        if row.key in existing
    ]
