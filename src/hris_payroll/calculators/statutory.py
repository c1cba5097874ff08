"""Government contributions and withholding tax.

All tables are read from the effective-dated configuration for the period
end date. A missing key raises ConfigurationMissingError; nothing here has a
built-in fallback value.

Contribution tables are monthly. A period's gross is converted to a monthly
equivalent with the pay-frequency factor, the monthly amount is computed,
and the period deduction is that amount divided back by the same factor.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from hris_payroll.calculators.amounts import rounder
from hris_payroll.calculators.rate_config import ConfigSnapshot
from hris_payroll.calculators.types import ZERO, StatutoryDeductions

MONTHS_PER_YEAR = Decimal("12")


@dataclass(frozen=True)
class ContributionBracket:
    minimum: Decimal
    maximum: Decimal | None
    employee: Decimal
    employer: Decimal

    @classmethod
    def parse(cls, data: dict[str, Any]) -> ContributionBracket:
        return cls(
            minimum=Decimal(str(data["min"])),
            maximum=Decimal(str(data["max"])) if data.get("max") is not None else None,
            employee=Decimal(str(data["employee"])),
            employer=Decimal(str(data["employer"])),
        )


@dataclass(frozen=True)
class TaxBracket:
    over: Decimal
    rate: Decimal
    base_tax: Decimal

    @classmethod
    def parse(cls, data: dict[str, Any]) -> TaxBracket:
        return cls(
            over=Decimal(str(data["over"])),
            rate=Decimal(str(data["rate"])),
            base_tax=Decimal(str(data["base_tax"])),
        )


def progressive_tax(income: Decimal, brackets: list[TaxBracket]) -> Decimal:
    """Base tax of the highest bracket exceeded plus its rate on the excess."""
    applicable = None
    for bracket in sorted(brackets, key=lambda b: b.over):
        if income > bracket.over:
            applicable = bracket
    if applicable is None:
        return ZERO
    return applicable.base_tax + (income - applicable.over) * applicable.rate


class StatutoryDeductionEngine:
    """Computes SSS, PhilHealth, Pag-IBIG and withholding tax for a period."""

    def __init__(self, config: ConfigSnapshot):
        self.config = config
        self.round = rounder(config.get("payroll", "rounding", None))

    def covers(self, employment_type: str | None) -> bool:
        """Whether an employment type pays contributions and tax."""
        types = self.config.get("payroll", "contribution_employment_types")
        return employment_type in types

    def monthly_factor(self, pay_frequency: str | None = None) -> Decimal:
        frequency = pay_frequency or self.config.get("payroll", "pay_frequency")
        conversion = self.config.get("payroll", "monthly_conversion")
        if frequency not in conversion:
            raise ValueError(f"Unknown pay frequency: {frequency}")
        return Decimal(str(conversion[frequency]))

    def calculate(
        self,
        period_gross: Decimal,
        employment_type: str | None,
        pay_frequency: str | None = None,
    ) -> StatutoryDeductions:
        if not self.covers(employment_type) or period_gross <= 0:
            return StatutoryDeductions(applied=False)

        factor = self.monthly_factor(pay_frequency)
        monthly_gross = period_gross * factor

        sss_ee, sss_er = self.sss(monthly_gross)
        ph_ee, ph_er = self.philhealth(monthly_gross)
        pi_ee, pi_er = self.pagibig(monthly_gross)

        taxable = max(monthly_gross - sss_ee - ph_ee - pi_ee, ZERO)
        monthly_tax = self.monthly_withholding_tax(taxable)

        def per_period(monthly: Decimal) -> Decimal:
            return self.round(monthly / factor)

        return StatutoryDeductions(
            sss=per_period(sss_ee),
            philhealth=per_period(ph_ee),
            pagibig=per_period(pi_ee),
            withholding_tax=per_period(monthly_tax),
            employer_sss=per_period(sss_er),
            employer_philhealth=per_period(ph_er),
            employer_pagibig=per_period(pi_er),
            monthly_gross=self.round(monthly_gross),
            monthly_taxable_income=self.round(taxable),
            applied=True,
        )

    def sss(self, monthly_salary: Decimal) -> tuple[Decimal, Decimal]:
        """Employee and employer SSS shares from the bracket table."""
        table = [
            ContributionBracket.parse(row)
            for row in self.config.get("sss", "contribution_table")
        ]
        bracket = None
        for row in sorted(table, key=lambda b: b.minimum):
            if monthly_salary >= row.minimum:
                bracket = row
        if bracket is None:
            return ZERO, ZERO
        return bracket.employee, bracket.employer

    def philhealth(self, monthly_salary: Decimal) -> tuple[Decimal, Decimal]:
        """Premium on the salary clamped to the floor and ceiling, split by share."""
        rate = self.config.decimal("philhealth", "premium_rate")
        share = self.config.decimal("philhealth", "employee_share")
        floor = self.config.decimal("philhealth", "salary_floor")
        ceiling = self.config.decimal("philhealth", "salary_ceiling")
        base = min(max(monthly_salary, floor), ceiling)
        premium = base * rate
        employee = premium * share
        return employee, premium - employee

    def pagibig(self, monthly_salary: Decimal) -> tuple[Decimal, Decimal]:
        threshold = self.config.decimal("pagibig", "low_salary_threshold")
        if monthly_salary <= threshold:
            employee_rate = self.config.decimal("pagibig", "employee_rate_low")
        else:
            employee_rate = self.config.decimal("pagibig", "employee_rate_high")
        employee = min(
            monthly_salary * employee_rate,
            self.config.decimal("pagibig", "max_employee_contribution"),
        )
        employer = min(
            monthly_salary * self.config.decimal("pagibig", "employer_rate"),
            self.config.decimal("pagibig", "max_employer_contribution"),
        )
        return employee, employer

    def tax_brackets(self) -> list[TaxBracket]:
        return [
            TaxBracket.parse(row)
            for row in self.config.get("withholding_tax", "annual_brackets")
        ]

    def annual_tax(self, annual_taxable: Decimal) -> Decimal:
        return progressive_tax(annual_taxable, self.tax_brackets())

    def monthly_withholding_tax(self, monthly_taxable: Decimal) -> Decimal:
        """Annualize, apply the annual schedule, then take one month."""
        return self.annual_tax(monthly_taxable * MONTHS_PER_YEAR) / MONTHS_PER_YEAR

    def thirteenth_month_tax(self, amount: Decimal) -> tuple[Decimal, Decimal]:
        """Taxable excess over the exemption limit and the tax on it.

        The excess is withheld like one month of taxable income.
        """
        limit = self.config.decimal("thirteenth_month", "tax_exempt_limit")
        excess = max(amount - limit, ZERO)
        return self.round(excess), self.round(self.monthly_withholding_tax(excess))
