"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

ZERO = Decimal("0")


class RateType(str, Enum):
    """Basis of an employee's contract rate."""

    HOURLY = "hourly"
    DAILY = "daily"
    MONTHLY = "monthly"


class DayType(str, Enum):
    """Premium condition of a calendar day for one employee."""

    REGULAR = "regular"
    REST_DAY = "rest_day"
    SPECIAL_HOLIDAY = "special_holiday"
    REGULAR_HOLIDAY = "regular_holiday"
    SPECIAL_HOLIDAY_REST_DAY = "special_holiday_rest_day"
    REGULAR_HOLIDAY_REST_DAY = "regular_holiday_rest_day"

    @classmethod
    def from_flags(
        cls,
        is_dayoff: bool,
        is_regular_holiday: bool,
        is_special_holiday: bool,
    ) -> DayType:
        if is_regular_holiday:
            return cls.REGULAR_HOLIDAY_REST_DAY if is_dayoff else cls.REGULAR_HOLIDAY
        if is_special_holiday:
            return cls.SPECIAL_HOLIDAY_REST_DAY if is_dayoff else cls.SPECIAL_HOLIDAY
        if is_dayoff:
            return cls.REST_DAY
        return cls.REGULAR

    @property
    def is_premium_day(self) -> bool:
        return self is not DayType.REGULAR


class PayCategory(str, Enum):
    """Closed set of worked-hour categories.

    Every worked hour falls in exactly one category: a day type crossed with
    night (22:00-06:00) or not, and overtime or not.
    """

    REGULAR = "regular"
    REGULAR_OVERTIME = "regular_overtime"
    NIGHT_DIFF = "night_diff"
    NIGHT_DIFF_OVERTIME = "night_diff_overtime"

    REST_DAY = "rest_day"
    REST_DAY_OVERTIME = "rest_day_overtime"
    NIGHT_DIFF_REST_DAY = "night_diff_rest_day"
    NIGHT_DIFF_REST_DAY_OVERTIME = "night_diff_rest_day_overtime"

    SPECIAL_HOLIDAY = "special_holiday"
    SPECIAL_HOLIDAY_OVERTIME = "special_holiday_overtime"
    NIGHT_DIFF_SPECIAL_HOLIDAY = "night_diff_special_holiday"
    NIGHT_DIFF_SPECIAL_HOLIDAY_OVERTIME = "night_diff_special_holiday_overtime"

    REGULAR_HOLIDAY = "regular_holiday"
    REGULAR_HOLIDAY_OVERTIME = "regular_holiday_overtime"
    NIGHT_DIFF_REGULAR_HOLIDAY = "night_diff_regular_holiday"
    NIGHT_DIFF_REGULAR_HOLIDAY_OVERTIME = "night_diff_regular_holiday_overtime"

    SPECIAL_HOLIDAY_REST_DAY = "special_holiday_rest_day"
    SPECIAL_HOLIDAY_REST_DAY_OVERTIME = "special_holiday_rest_day_overtime"
    NIGHT_DIFF_SPECIAL_HOLIDAY_REST_DAY = "night_diff_special_holiday_rest_day"
    NIGHT_DIFF_SPECIAL_HOLIDAY_REST_DAY_OVERTIME = "night_diff_special_holiday_rest_day_overtime"

    REGULAR_HOLIDAY_REST_DAY = "regular_holiday_rest_day"
    REGULAR_HOLIDAY_REST_DAY_OVERTIME = "regular_holiday_rest_day_overtime"
    NIGHT_DIFF_REGULAR_HOLIDAY_REST_DAY = "night_diff_regular_holiday_rest_day"
    NIGHT_DIFF_REGULAR_HOLIDAY_REST_DAY_OVERTIME = "night_diff_regular_holiday_rest_day_overtime"

    @property
    def is_overtime(self) -> bool:
        return self.value.endswith("_overtime")

    @property
    def is_night(self) -> bool:
        return self.value.startswith("night_diff")

    @property
    def day_type(self) -> DayType:
        name = self.value.removeprefix("night_diff").removesuffix("_overtime").lstrip("_")
        if name in ("", "regular"):
            return DayType.REGULAR
        return DayType(name)

    @classmethod
    def for_bucket(cls, day_type: DayType, night: bool, overtime: bool) -> PayCategory:
        """Resolve the category for a (day type, night, overtime) bucket."""
        if day_type is DayType.REGULAR:
            name = "night_diff" if night else "regular"
        else:
            name = f"night_diff_{day_type.value}" if night else day_type.value
        if overtime:
            name += "_overtime"
        return cls(name)


def empty_hours() -> dict[PayCategory, Decimal]:
    """Zero hours for every category."""
    return {category: ZERO for category in PayCategory}


@dataclass
class EdgeCaseFlags:
    """Premium combinations observed on a day (or any day of a period)."""

    is_day_off: bool = False
    is_regular_holiday: bool = False
    is_special_holiday: bool = False
    is_day_off_and_regular_holiday: bool = False
    is_day_off_and_special_holiday: bool = False
    has_night_differential: bool = False
    has_overtime: bool = False
    has_multiple_premiums: bool = False

    def merge(self, other: EdgeCaseFlags) -> EdgeCaseFlags:
        """OR two flag sets together."""
        return EdgeCaseFlags(
            **{f.name: getattr(self, f.name) or getattr(other, f.name) for f in fields(self)}
        )

    def to_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> EdgeCaseFlags:
        data = data or {}
        return cls(**{f.name: bool(data.get(f.name, False)) for f in fields(cls)})


@dataclass
class DailyBreakdown:
    """Hour categories earned on one attendance day.

    Persisted on the attendance record as its payroll breakdown blob.
    """

    work_date: date
    day_type: DayType
    hours: dict[PayCategory, Decimal] = field(default_factory=dict)
    total_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    night_diff_hours: Decimal = ZERO
    late_minutes: int = 0
    undertime_minutes: int = 0
    is_late: bool = False
    is_undertime: bool = False
    is_halfday: bool = False
    flags: EdgeCaseFlags = field(default_factory=EdgeCaseFlags)

    def to_json(self) -> dict[str, Any]:
        return {
            "work_date": self.work_date.isoformat(),
            "day_type": self.day_type.value,
            "hours": {c.value: str(h) for c, h in self.hours.items() if h},
            "total_hours": str(self.total_hours),
            "overtime_hours": str(self.overtime_hours),
            "night_diff_hours": str(self.night_diff_hours),
            "late_minutes": self.late_minutes,
            "undertime_minutes": self.undertime_minutes,
            "is_late": self.is_late,
            "is_undertime": self.is_undertime,
            "is_halfday": self.is_halfday,
            "flags": self.flags.to_dict(),
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> DailyBreakdown:
        return cls(
            work_date=date.fromisoformat(data["work_date"]),
            day_type=DayType(data["day_type"]),
            hours={PayCategory(k): Decimal(v) for k, v in data.get("hours", {}).items()},
            total_hours=Decimal(data.get("total_hours", "0")),
            overtime_hours=Decimal(data.get("overtime_hours", "0")),
            night_diff_hours=Decimal(data.get("night_diff_hours", "0")),
            late_minutes=int(data.get("late_minutes", 0)),
            undertime_minutes=int(data.get("undertime_minutes", 0)),
            is_late=bool(data.get("is_late", False)),
            is_undertime=bool(data.get("is_undertime", False)),
            is_halfday=bool(data.get("is_halfday", False)),
            flags=EdgeCaseFlags.from_dict(data.get("flags")),
        )


@dataclass
class AttendanceAggregate:
    """Period totals for one employee; recomputed on every run."""

    employee_id: str
    period_start: date
    period_end: date
    hours: dict[PayCategory, Decimal] = field(default_factory=empty_hours)
    days_worked: int = 0
    days_absent: int = 0
    paid_leave_days: int = 0
    unpaid_leave_days: int = 0
    paid_leave_units: Decimal = ZERO  # paid leave days weighted by pay percentage
    late_days: int = 0
    late_minutes: int = 0
    undertime_minutes: int = 0
    unworked_regular_holidays: int = 0
    flags: EdgeCaseFlags = field(default_factory=EdgeCaseFlags)

    @property
    def total_hours(self) -> Decimal:
        return sum(self.hours.values(), ZERO)

    @property
    def overtime_hours(self) -> Decimal:
        return sum((h for c, h in self.hours.items() if c.is_overtime), ZERO)

    @property
    def night_diff_hours(self) -> Decimal:
        return sum((h for c, h in self.hours.items() if c.is_night), ZERO)

    def hours_for_day_type(self, day_type: DayType) -> Decimal:
        return sum((h for c, h in self.hours.items() if c.day_type is day_type), ZERO)


@dataclass(frozen=True)
class RateBasis:
    """An employee's contract rate and how to read it."""

    rate: Decimal
    rate_type: RateType

    def hourly_rate(self, daily_hours: Decimal, working_days: Decimal) -> Decimal:
        if self.rate_type is RateType.HOURLY:
            return self.rate
        if self.rate_type is RateType.DAILY:
            return self.rate / daily_hours
        return self.rate / (working_days * daily_hours)

    def daily_rate(self, daily_hours: Decimal, working_days: Decimal) -> Decimal:
        if self.rate_type is RateType.DAILY:
            return self.rate
        if self.rate_type is RateType.HOURLY:
            return self.rate * daily_hours
        return self.rate / working_days


@dataclass(frozen=True)
class CategoryLine:
    """Earnings for one hour category."""

    category: PayCategory
    hours: Decimal
    multiplier: Decimal
    amount: Decimal


@dataclass(frozen=True)
class DayPayLine:
    """Earnings paid per day rather than per hour (paid leave, unworked holiday)."""

    days: Decimal
    daily_rate: Decimal
    multiplier: Decimal
    amount: Decimal


@dataclass
class EarningsBreakdown:
    """Gross pay itemized by category."""

    hourly_rate: Decimal
    daily_rate: Decimal
    lines: dict[PayCategory, CategoryLine] = field(default_factory=dict)
    leave: DayPayLine | None = None
    unworked_holiday: DayPayLine | None = None

    def _sum(self, predicate) -> Decimal:
        return sum((line.amount for line in self.lines.values() if predicate(line.category)), ZERO)

    @property
    def basic_pay(self) -> Decimal:
        return self._sum(lambda c: c is PayCategory.REGULAR)

    @property
    def overtime_pay(self) -> Decimal:
        return self._sum(lambda c: c.is_overtime)

    @property
    def night_diff_pay(self) -> Decimal:
        return self._sum(lambda c: c.is_night and not c.is_overtime)

    @property
    def rest_day_pay(self) -> Decimal:
        return self._sum(lambda c: c is PayCategory.REST_DAY)

    @property
    def holiday_pay(self) -> Decimal:
        worked = self._sum(
            lambda c: not c.is_overtime
            and not c.is_night
            and c.day_type not in (DayType.REGULAR, DayType.REST_DAY)
        )
        unworked = self.unworked_holiday.amount if self.unworked_holiday else ZERO
        return worked + unworked

    @property
    def leave_pay(self) -> Decimal:
        return self.leave.amount if self.leave else ZERO

    @property
    def gross_pay(self) -> Decimal:
        total = sum((line.amount for line in self.lines.values()), ZERO)
        return total + self.leave_pay + (
            self.unworked_holiday.amount if self.unworked_holiday else ZERO
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "hourly_rate": str(self.hourly_rate),
            "daily_rate": str(self.daily_rate),
            "categories": {
                c.value: {
                    "hours": str(line.hours),
                    "multiplier": str(line.multiplier),
                    "amount": str(line.amount),
                }
                for c, line in self.lines.items()
            },
        }
        for name, line in (("leave", self.leave), ("unworked_holiday", self.unworked_holiday)):
            if line is not None:
                data[name] = {
                    "days": str(line.days),
                    "daily_rate": str(line.daily_rate),
                    "multiplier": str(line.multiplier),
                    "amount": str(line.amount),
                }
        return data


@dataclass
class StatutoryDeductions:
    """Government contributions and withholding tax for one pay period."""

    sss: Decimal = ZERO
    philhealth: Decimal = ZERO
    pagibig: Decimal = ZERO
    withholding_tax: Decimal = ZERO
    employer_sss: Decimal = ZERO
    employer_philhealth: Decimal = ZERO
    employer_pagibig: Decimal = ZERO
    monthly_gross: Decimal = ZERO
    monthly_taxable_income: Decimal = ZERO
    applied: bool = False

    @property
    def total_employee(self) -> Decimal:
        return self.sss + self.philhealth + self.pagibig + self.withholding_tax

    @property
    def total_employer(self) -> Decimal:
        return self.employer_sss + self.employer_philhealth + self.employer_pagibig

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = str(value) if isinstance(value, Decimal) else value
        return data


@dataclass(frozen=True)
class LoanDeductionLine:
    """Planned withholding against one loan for one period."""

    deduction_id: int
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    next_deduction_date: date | None
    deactivates: bool
