"""Split one attendance day into mutually exclusive hour categories."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from hris_payroll.calculators.amounts import round_hours, round_payroll_hours
from hris_payroll.calculators.types import (
    ZERO,
    DailyBreakdown,
    DayType,
    EdgeCaseFlags,
    PayCategory,
)

if TYPE_CHECKING:
    from hris_payroll.models import AttendanceRecord

NIGHT_START = time(22, 0)
NIGHT_END = time(6, 0)
UNDERTIME_TOLERANCE = Decimal("0.5")
DEFAULT_DAILY_HOURS = Decimal("8")

Interval = tuple[datetime, datetime]


def _hours(delta: timedelta) -> Decimal:
    return Decimal(int(delta.total_seconds())) / Decimal(3600)


def _overlap(a: Interval, b: Interval) -> timedelta:
    start = max(a[0], b[0])
    end = min(a[1], b[1])
    return end - start if end > start else timedelta(0)


def _subtract(interval: Interval, cut: Interval | None) -> list[Interval]:
    """Remove one window from an interval, leaving up to two pieces."""
    if cut is None or _overlap(interval, cut) == timedelta(0):
        return [interval]
    pieces = []
    if cut[0] > interval[0]:
        pieces.append((interval[0], cut[0]))
    if cut[1] < interval[1]:
        pieces.append((cut[1], interval[1]))
    return pieces


def night_overlap(interval: Interval) -> timedelta:
    """Time inside the 22:00-06:00 window, across any number of midnights."""
    total = timedelta(0)
    day = interval[0].date() - timedelta(days=1)
    while day <= interval[1].date():
        window = (
            datetime.combine(day, NIGHT_START),
            datetime.combine(day + timedelta(days=1), NIGHT_END),
        )
        total += _overlap(interval, window)
        day += timedelta(days=1)
    return total


def _tail(segments: list[Interval], length: timedelta) -> list[Interval]:
    """The last `length` of worked time, walking back from the shift end."""
    tail: list[Interval] = []
    remaining = length
    for start, end in reversed(segments):
        if remaining <= timedelta(0):
            break
        take = min(end - start, remaining)
        tail.append((end - take, end))
        remaining -= take
    return tail


@dataclass(frozen=True)
class WorkSchedule:
    """Shift schedule in force on a day; times are local wall clock."""

    start: time | None = None
    end: time | None = None
    break_start: time | None = None
    break_end: time | None = None

    @property
    def is_overnight(self) -> bool:
        return self.start is not None and self.end is not None and self.end <= self.start

    def shift_window(self, work_date: date) -> Interval | None:
        if self.start is None or self.end is None:
            return None
        start = datetime.combine(work_date, self.start)
        end = datetime.combine(work_date, self.end)
        if end <= start:
            end += timedelta(days=1)
        return start, end

    def break_window(self, anchor: date) -> Interval | None:
        """Break window anchored on the shift's start date.

        On an overnight schedule a break earlier than the shift start falls
        after midnight.
        """
        if self.break_start is None or self.break_end is None:
            return None
        start = datetime.combine(anchor, self.break_start)
        if self.is_overnight and self.break_start < self.start:
            start += timedelta(days=1)
        end = datetime.combine(start.date(), self.break_end)
        if end <= start:
            end += timedelta(days=1)
        return start, end

    def scheduled_hours(self, work_date: date, default: Decimal = DEFAULT_DAILY_HOURS) -> Decimal:
        """Scheduled work hours, break excluded; `default` without a schedule."""
        shift = self.shift_window(work_date)
        if shift is None:
            return default
        hours = _hours(shift[1] - shift[0])
        brk = self.break_window(work_date)
        if brk is not None:
            hours -= round_payroll_hours(_hours(brk[1] - brk[0]))
        return max(hours, ZERO)


def compute_daily_breakdown(
    work_date: date,
    time_in: datetime,
    time_out: datetime,
    schedule: WorkSchedule,
    day_type: DayType,
    standard_daily_hours: Decimal = DEFAULT_DAILY_HOURS,
) -> DailyBreakdown:
    """Compute the categorized hours of one worked day.

    Overtime is the tail of the shift beyond the day's threshold (scheduled
    hours, or the standard daily hours on a plain rest day). Night hours are
    measured on the actual worked segments, so the overtime tail carries its
    own night portion. The four buckets always sum to total_hours.
    """
    if time_out <= time_in:
        time_out += timedelta(days=1)
    shift: Interval = (time_in, time_out)

    brk = schedule.break_window(time_in.date())
    break_taken = _overlap(shift, brk) if brk is not None else timedelta(0)
    segments = _subtract(shift, brk)

    total = round_hours(
        max(_hours(time_out - time_in) - round_payroll_hours(_hours(break_taken)), ZERO)
    )

    scheduled = schedule.scheduled_hours(work_date, standard_daily_hours)
    threshold = standard_daily_hours if day_type is DayType.REST_DAY else scheduled
    overtime = max(total - threshold, ZERO)
    base = total - overtime

    night = round_hours(_hours(sum((night_overlap(s) for s in segments), timedelta(0))))
    tail = _tail(segments, timedelta(seconds=int(overtime * 3600)))
    night_overtime = min(
        round_hours(_hours(sum((night_overlap(s) for s in tail), timedelta(0)))),
        overtime,
    )
    night_base = min(max(night - night_overtime, ZERO), base)

    hours = {
        PayCategory.for_bucket(day_type, night=False, overtime=False): base - night_base,
        PayCategory.for_bucket(day_type, night=True, overtime=False): night_base,
        PayCategory.for_bucket(day_type, night=False, overtime=True): overtime - night_overtime,
        PayCategory.for_bucket(day_type, night=True, overtime=True): night_overtime,
    }
    hours = {category: h for category, h in hours.items() if h > 0}

    late_minutes = 0
    undertime_minutes = 0
    window = schedule.shift_window(work_date)
    is_day_off = day_type in (
        DayType.REST_DAY,
        DayType.REGULAR_HOLIDAY_REST_DAY,
        DayType.SPECIAL_HOLIDAY_REST_DAY,
    )
    # Work on a day off is voluntary; lateness and undertime do not apply
    if window is not None and not is_day_off:
        if time_in > window[0]:
            late_minutes = int((time_in - window[0]).total_seconds() // 60)
        if time_out < window[1]:
            undertime_minutes = int((window[1] - time_out).total_seconds() // 60)
    is_undertime = not is_day_off and total < scheduled - UNDERTIME_TOLERANCE
    is_halfday = not is_day_off and total < scheduled / 2

    is_regular_holiday = day_type in (DayType.REGULAR_HOLIDAY, DayType.REGULAR_HOLIDAY_REST_DAY)
    is_special_holiday = day_type in (DayType.SPECIAL_HOLIDAY, DayType.SPECIAL_HOLIDAY_REST_DAY)
    premiums = [night > 0, is_day_off and total > 0, is_regular_holiday, is_special_holiday]
    flags = EdgeCaseFlags(
        is_day_off=is_day_off,
        is_regular_holiday=is_regular_holiday,
        is_special_holiday=is_special_holiday,
        is_day_off_and_regular_holiday=day_type is DayType.REGULAR_HOLIDAY_REST_DAY,
        is_day_off_and_special_holiday=day_type is DayType.SPECIAL_HOLIDAY_REST_DAY,
        has_night_differential=night > 0,
        has_overtime=overtime > 0,
        has_multiple_premiums=sum(premiums) > 1,
    )

    return DailyBreakdown(
        work_date=work_date,
        day_type=day_type,
        hours=hours,
        total_hours=total,
        overtime_hours=overtime,
        night_diff_hours=night,
        late_minutes=late_minutes,
        undertime_minutes=undertime_minutes,
        is_late=late_minutes > 0,
        is_undertime=is_undertime,
        is_halfday=is_halfday,
        flags=flags,
    )


def schedule_of(record: AttendanceRecord) -> WorkSchedule:
    return WorkSchedule(
        start=record.scheduled_start,
        end=record.scheduled_end,
        break_start=record.break_start,
        break_end=record.break_end,
    )


def day_type_of(record: AttendanceRecord) -> DayType:
    return DayType.from_flags(
        bool(record.is_dayoff),
        bool(record.is_regular_holiday),
        bool(record.is_special_holiday),
    )


def breakdown_for_record(
    record: AttendanceRecord,
    standard_daily_hours: Decimal = DEFAULT_DAILY_HOURS,
) -> DailyBreakdown | None:
    """Breakdown of a persisted record, or None when it has no time pair."""
    if record.time_in is None or record.time_out is None:
        return None
    return compute_daily_breakdown(
        record.work_date,
        record.time_in,
        record.time_out,
        schedule_of(record),
        day_type_of(record),
        standard_daily_hours,
    )


def apply_breakdown(record: AttendanceRecord, breakdown: DailyBreakdown) -> None:
    """Copy derived totals and the breakdown blob onto a record."""
    record.total_hours = breakdown.total_hours
    record.overtime_hours = breakdown.overtime_hours
    record.night_differential_hours = breakdown.night_diff_hours
    record.late_minutes = breakdown.late_minutes
    record.undertime_minutes = breakdown.undertime_minutes
    record.is_late = breakdown.is_late
    record.is_undertime = breakdown.is_undertime
    record.is_halfday = breakdown.is_halfday
    record.payroll_breakdown = breakdown.to_json()
