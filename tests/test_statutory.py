"""Tests for government contributions and withholding tax."""

from datetime import date
from decimal import Decimal

from hris_payroll.calculators.defaults import sss_contribution_table, withholding_tax_brackets
from hris_payroll.calculators.statutory import (
    StatutoryDeductionEngine,
    TaxBracket,
    progressive_tax,
)

BRACKETS = [TaxBracket.parse(row) for row in withholding_tax_brackets()]


class TestProgressiveTax:
    """Test the annual graduated schedule."""

    def test_exempt_band(self):
        assert progressive_tax(Decimal("250000"), BRACKETS) == 0

    def test_bracket_bases_are_continuous(self):
        assert progressive_tax(Decimal("400000"), BRACKETS) == Decimal("22500")
        assert progressive_tax(Decimal("800000"), BRACKETS) == Decimal("102500")
        assert progressive_tax(Decimal("2000000"), BRACKETS) == Decimal("402500")
        assert progressive_tax(Decimal("8000000"), BRACKETS) == Decimal("2202500")

    def test_top_bracket(self):
        assert progressive_tax(Decimal("9000000"), BRACKETS) == Decimal("2552500")


class TestSssTable:
    def test_table_shape(self):
        table = sss_contribution_table()

        assert table[0] == {"min": "0", "max": "3249.99", "employee": "140", "employer": "325"}
        assert table[-1]["min"] == "20250"
        assert table[-1]["max"] is None
        assert table[1]["employee"] == "162.5"


class TestStatutoryDeductionEngine:
    def test_semi_monthly_regular_employee(self, config):
        result = StatutoryDeductionEngine(config).calculate(Decimal("11000"), "Regular")

        assert result.applied
        assert result.monthly_gross == Decimal("22000.00")
        assert result.sss == Decimal("465.00")
        assert result.philhealth == Decimal("302.50")
        assert result.pagibig == Decimal("100.00")
        assert result.withholding_tax == Decimal("0.00")
        assert result.employer_sss == Decimal("1085.00")
        assert result.employer_pagibig == Decimal("100.00")
        assert result.total_employee == Decimal("867.50")

    def test_taxable_income_after_contributions(self, config):
        result = StatutoryDeductionEngine(config).calculate(Decimal("50000"), "Regular")

        assert result.monthly_taxable_income == Decimal("96120.00")
        assert result.philhealth == Decimal("1375.00")
        assert result.withholding_tax == Decimal("7952.50")

    def test_monthly_frequency(self, config):
        result = StatutoryDeductionEngine(config).calculate(
            Decimal("22000"), "Regular", pay_frequency="monthly"
        )

        assert result.sss == Decimal("930.00")
        assert result.philhealth == Decimal("605.00")

    def test_uncovered_employment_type(self, config):
        result = StatutoryDeductionEngine(config).calculate(Decimal("11000"), "Contractual")

        assert not result.applied
        assert result.total_employee == 0
        assert result.total_employer == 0

    def test_zero_gross(self, config):
        result = StatutoryDeductionEngine(config).calculate(Decimal("0"), "Regular")
        assert not result.applied

    def test_philhealth_floor(self, config):
        employee, employer = StatutoryDeductionEngine(config).philhealth(Decimal("5000"))
        assert employee == Decimal("275")
        assert employer == Decimal("275")

    def test_pagibig_low_salary_rate(self, config):
        employee, employer = StatutoryDeductionEngine(config).pagibig(Decimal("1500"))
        assert employee == Decimal("15")
        assert employer == Decimal("30")

    def test_thirteenth_month_exemption(self, config_store):
        engine = StatutoryDeductionEngine(config_store.snapshot(date(2025, 12, 31)))

        assert engine.thirteenth_month_tax(Decimal("90000")) == (Decimal("0.00"), Decimal("0.00"))
        excess, tax = engine.thirteenth_month_tax(Decimal("120000"))
        assert excess == Decimal("30000.00")
        # 360,000 a year: 15% over 250,000, one month of it
        assert tax == Decimal("1375.00")

        excess, tax = engine.thirteenth_month_tax(Decimal("400000"))
        assert excess == Decimal("310000.00")
        assert tax == Decimal("76541.67")
