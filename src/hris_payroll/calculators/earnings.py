"""Gross pay from aggregated hours, a rate basis and premium multipliers."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from hris_payroll.calculators.amounts import rounder
from hris_payroll.calculators.rate_config import ConfigSnapshot
from hris_payroll.calculators.types import (
    ZERO,
    AttendanceAggregate,
    CategoryLine,
    DayPayLine,
    DayType,
    EarningsBreakdown,
    PayCategory,
    RateBasis,
)

ONE = Decimal("1")
MINUTES_PER_HOUR = Decimal("60")


@dataclass(frozen=True)
class PremiumPolicy:
    """Stacked multipliers for every pay category.

    A category's multiplier is its day-type base, times the overtime factor
    for overtime hours, times (1 + night rate) for night hours. Explicit
    per-category values replace the derived one.
    """

    day_bases: dict[DayType, Decimal]
    overtime_regular_day: Decimal
    overtime_premium_day: Decimal
    night_diff_rate: Decimal
    regular_holiday_not_worked: Decimal
    overrides: dict[PayCategory, Decimal] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: ConfigSnapshot) -> PremiumPolicy:
        overrides = {}
        for category in PayCategory:
            # Base categories share their key with the day-type base
            if category.is_overtime or category.is_night:
                if config.has("premium", category.value):
                    overrides[category] = config.decimal("premium", category.value)
        return cls(
            day_bases={d: config.decimal("premium", d.value) for d in DayType},
            overtime_regular_day=config.decimal("premium", "overtime_regular_day"),
            overtime_premium_day=config.decimal("premium", "overtime_premium_day"),
            night_diff_rate=config.decimal("premium", "night_diff_rate"),
            regular_holiday_not_worked=config.decimal("premium", "regular_holiday_not_worked"),
            overrides=overrides,
        )

    def multiplier(self, category: PayCategory) -> Decimal:
        if category in self.overrides:
            return self.overrides[category]
        day_type = category.day_type
        value = self.day_bases[day_type]
        if category.is_overtime:
            value *= (
                self.overtime_premium_day if day_type.is_premium_day else self.overtime_regular_day
            )
        if category.is_night:
            value *= ONE + self.night_diff_rate
        return value

    def table(self) -> dict[str, Decimal]:
        """Resolved multiplier of every category, for display."""
        return {c.value: self.multiplier(c) for c in PayCategory}


class EarningsEngine:
    """Converts an attendance aggregate into itemized gross pay.

    Each category is paid as hours x hourly rate x multiplier and rounded
    once, so the itemized components always sum to gross pay.
    """

    def __init__(self, config: ConfigSnapshot):
        self.config = config
        self.daily_hours = config.decimal("payroll", "standard_daily_hours")
        self.working_days = config.decimal("payroll", "standard_working_days")
        self.policy = PremiumPolicy.from_config(config)
        self.round = rounder(config.get("payroll", "rounding", None))

    def calculate(self, aggregate: AttendanceAggregate, basis: RateBasis) -> EarningsBreakdown:
        hourly_rate = basis.hourly_rate(self.daily_hours, self.working_days)
        daily_rate = basis.daily_rate(self.daily_hours, self.working_days)
        breakdown = EarningsBreakdown(hourly_rate=hourly_rate, daily_rate=daily_rate)

        for category in PayCategory:
            hours = aggregate.hours.get(category, ZERO)
            if hours <= 0:
                continue
            multiplier = self.policy.multiplier(category)
            breakdown.lines[category] = CategoryLine(
                category=category,
                hours=hours,
                multiplier=multiplier,
                amount=self.round(hours * hourly_rate * multiplier),
            )

        if aggregate.paid_leave_units > 0:
            breakdown.leave = DayPayLine(
                days=aggregate.paid_leave_units,
                daily_rate=daily_rate,
                multiplier=ONE,
                amount=self.round(aggregate.paid_leave_units * daily_rate),
            )

        if aggregate.unworked_regular_holidays > 0:
            days = Decimal(aggregate.unworked_regular_holidays)
            multiplier = self.policy.regular_holiday_not_worked
            breakdown.unworked_holiday = DayPayLine(
                days=days,
                daily_rate=daily_rate,
                multiplier=multiplier,
                amount=self.round(days * daily_rate * multiplier),
            )

        return breakdown

    def attendance_deduction(self, aggregate: AttendanceAggregate, hourly_rate: Decimal) -> Decimal:
        """Pay withheld for late and undertime minutes, when enabled."""
        minutes = 0
        if self.config.get("payroll", "late_deduction_enabled", False):
            minutes += aggregate.late_minutes
        if self.config.get("payroll", "undertime_deduction_enabled", False):
            minutes += aggregate.undertime_minutes
        if minutes <= 0:
            return ZERO
        return self.round(Decimal(minutes) / MINUTES_PER_HOUR * hourly_rate)
