"""13th-month pay from a calendar year's payslips."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.amounts import round_to_cents
from hris_payroll.calculators.rate_config import RateConfigurationStore
from hris_payroll.calculators.statutory import StatutoryDeductionEngine
from hris_payroll.exceptions import NotFoundError
from hris_payroll.models import Employee, PayrollHeader, Payslip
from hris_payroll.services.state_machine import PayrollRunStatus

MONTHS_PER_YEAR = Decimal("12")


@dataclass(frozen=True)
class ThirteenthMonthPay:
    employee_id: str
    year: int
    payslip_count: int
    total_basic_pay: Decimal
    amount: Decimal
    taxable_excess: Decimal
    tax: Decimal

    @property
    def net_amount(self) -> Decimal:
        return self.amount - self.tax


class ThirteenthMonthService:
    """Basic pay earned in the year divided by twelve.

    Payslips of cancelled runs are not counted. Only the part above the
    configured exemption limit is taxed, using the withholding schedule in
    force on December 31.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def calculate(self, employee_id: str, year: int) -> ThirteenthMonthPay:
        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

        result = await self.session.execute(
            select(func.count(Payslip.payslip_id), func.sum(Payslip.basic_pay))
            .join(PayrollHeader, PayrollHeader.payroll_header_id == Payslip.payroll_header_id)
            .where(
                Payslip.employee_id == employee_id,
                extract("year", Payslip.end_date) == year,
                PayrollHeader.status != PayrollRunStatus.CANCELLED.value,
            )
        )
        count, total = result.one()
        total_basic = Decimal(str(total or 0))
        amount = round_to_cents(total_basic / MONTHS_PER_YEAR)

        store = await RateConfigurationStore.load(self.session)
        engine = StatutoryDeductionEngine(store.snapshot(date(year, 12, 31)))
        excess, tax = engine.thirteenth_month_tax(amount)

        return ThirteenthMonthPay(
            employee_id=employee_id,
            year=year,
            payslip_count=count,
            total_basic_pay=round_to_cents(total_basic),
            amount=amount,
            taxable_excess=excess,
            tax=tax,
        )
