"""Tests for gross pay calculation."""

from datetime import date
from decimal import Decimal

import pytest

from hris_payroll.calculators.defaults import default_configuration
from hris_payroll.calculators.earnings import EarningsEngine, PremiumPolicy
from hris_payroll.calculators.rate_config import ConfigEntry, RateConfigurationStore
from hris_payroll.calculators.types import (
    AttendanceAggregate,
    PayCategory,
    RateBasis,
    RateType,
)
from hris_payroll.exceptions import ConfigurationMissingError

MONTHLY = RateBasis(Decimal("22000"), RateType.MONTHLY)


def _aggregate(**hours) -> AttendanceAggregate:
    agg = AttendanceAggregate("E001", date(2025, 3, 1), date(2025, 3, 15))
    for name, value in hours.items():
        agg.hours[PayCategory(name)] = Decimal(value)
    return agg


class TestPremiumPolicy:
    """Multipliers stack day base, overtime and night rate."""

    def test_stacked_multipliers(self, config):
        policy = PremiumPolicy.from_config(config)

        assert policy.multiplier(PayCategory.REGULAR) == Decimal("1.00")
        assert policy.multiplier(PayCategory.REGULAR_OVERTIME) == Decimal("1.25")
        assert policy.multiplier(PayCategory.NIGHT_DIFF) == Decimal("1.10")
        assert policy.multiplier(PayCategory.REGULAR_HOLIDAY_REST_DAY) == Decimal("2.60")
        assert policy.multiplier(PayCategory.REST_DAY_OVERTIME) == Decimal("1.69")
        assert policy.multiplier(
            PayCategory.NIGHT_DIFF_REGULAR_HOLIDAY_OVERTIME
        ) == Decimal("2.86")

    def test_explicit_category_overrides_derived(self, config_store):
        config_store.add(
            ConfigEntry("premium", "night_diff_overtime", "1.50", date(2025, 1, 1))
        )
        policy = PremiumPolicy.from_config(config_store.snapshot(date(2025, 3, 15)))

        assert policy.multiplier(PayCategory.NIGHT_DIFF_OVERTIME) == Decimal("1.50")
        assert policy.multiplier(PayCategory.REGULAR_OVERTIME) == Decimal("1.25")

    def test_table_covers_every_category(self, config):
        table = PremiumPolicy.from_config(config).table()
        assert set(table) == {c.value for c in PayCategory}


class TestEarningsEngine:
    def test_rates_from_monthly_contract(self, config):
        breakdown = EarningsEngine(config).calculate(_aggregate(), MONTHLY)

        assert breakdown.hourly_rate == Decimal("125")
        assert breakdown.daily_rate == Decimal("1000")
        assert breakdown.gross_pay == 0

    def test_basic_and_overtime(self, config):
        breakdown = EarningsEngine(config).calculate(
            _aggregate(regular="160", regular_overtime="2"), MONTHLY
        )

        assert breakdown.basic_pay == Decimal("20000.00")
        assert breakdown.overtime_pay == Decimal("312.50")
        assert breakdown.gross_pay == Decimal("20312.50")

    def test_regular_holiday_on_rest_day(self, config):
        breakdown = EarningsEngine(config).calculate(
            _aggregate(regular_holiday_rest_day="8"), MONTHLY
        )

        line = breakdown.lines[PayCategory.REGULAR_HOLIDAY_REST_DAY]
        assert line.multiplier == Decimal("2.60")
        assert line.amount == Decimal("2600.00")
        assert breakdown.holiday_pay == Decimal("2600.00")

    def test_leave_and_unworked_holiday(self, config):
        agg = _aggregate(regular="8")
        agg.paid_leave_units = Decimal("1.5")
        agg.unworked_regular_holidays = 1

        breakdown = EarningsEngine(config).calculate(agg, MONTHLY)

        assert breakdown.leave_pay == Decimal("1500.00")
        assert breakdown.unworked_holiday.amount == Decimal("1000.00")
        assert breakdown.gross_pay == Decimal("3500.00")

    def test_components_sum_to_gross(self, config):
        breakdown = EarningsEngine(config).calculate(
            _aggregate(
                regular="80",
                regular_overtime="3",
                night_diff="5",
                night_diff_overtime="1",
                rest_day="8",
                special_holiday="8",
            ),
            RateBasis(Decimal("610"), RateType.DAILY),
        )

        components = (
            breakdown.basic_pay
            + breakdown.overtime_pay
            + breakdown.night_diff_pay
            + breakdown.rest_day_pay
            + breakdown.holiday_pay
            + breakdown.leave_pay
        )
        assert components == breakdown.gross_pay
        assert breakdown.lines[PayCategory.NIGHT_DIFF_OVERTIME].amount == Decimal("104.84")

    def test_attendance_deduction_disabled_by_default(self, config):
        agg = _aggregate(regular="8")
        agg.late_minutes = 30

        assert EarningsEngine(config).attendance_deduction(agg, Decimal("125")) == 0

    def test_attendance_deduction_when_enabled(self, config_store):
        config_store.add(ConfigEntry("payroll", "late_deduction_enabled", True, date(2025, 2, 1)))
        agg = _aggregate(regular="8")
        agg.late_minutes = 30
        agg.undertime_minutes = 60

        engine = EarningsEngine(config_store.snapshot(date(2025, 3, 15)))

        assert engine.attendance_deduction(agg, Decimal("125")) == Decimal("62.50")

    def test_missing_configuration(self):
        store = RateConfigurationStore(
            e for e in default_configuration() if e.config_type != "premium"
        )
        with pytest.raises(ConfigurationMissingError) as exc_info:
            EarningsEngine(store.snapshot(date(2025, 3, 15)))

        assert exc_info.value.config_type == "premium"
