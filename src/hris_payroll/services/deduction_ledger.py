"""Loan and advance amortization ledger.

Payroll reads a snapshot of the active loans, plans one withholding per
loan, and applies the plan in the same transaction that persists the
payslip. Payment rows are append-only.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from decimal import ROUND_CEILING, Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.amounts import round_to_cents
from hris_payroll.calculators.types import ZERO, LoanDeductionLine
from hris_payroll.exceptions import (
    LedgerInconsistencyError,
    NotFoundError,
    ValidationError,
)
from hris_payroll.models import Deduction, DeductionPayment

logger = logging.getLogger(__name__)

PAYMENT_FREQUENCIES = ("weekly", "bi-weekly", "semi-monthly", "monthly")
LOAN_EDITABLE_FIELDS = (
    "installment_amount",
    "payment_frequency",
    "end_date",
    "description",
    "is_active",
    "auto_deduct",
)


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    PENDING = "PENDING"
    INACTIVE = "INACTIVE"


def add_months(start: date, months: int) -> date:
    """Same day `months` later, clamped to the end of a shorter month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _month_end(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def next_deduction_date(current: date, frequency: str) -> date:
    """Advance a due date by one installment of the payment frequency.

    Semi-monthly alternates between the 15th and the last day of the month.
    """
    if frequency == "weekly":
        return current + timedelta(days=7)
    if frequency == "bi-weekly":
        return current + timedelta(days=14)
    if frequency == "monthly":
        return add_months(current, 1)
    if frequency == "semi-monthly":
        if current.day < 15:
            return current.replace(day=15)
        if current < _month_end(current):
            return _month_end(current)
        return add_months(current.replace(day=15), 1)
    raise ValueError(f"Unknown payment frequency: {frequency}")


def loan_status(deduction: Deduction, today: date) -> LoanStatus:
    if deduction.remaining_balance <= 0:
        return LoanStatus.PAID
    if not deduction.is_active:
        return LoanStatus.INACTIVE
    if deduction.start_date > today:
        return LoanStatus.PENDING
    if deduction.end_date is not None and deduction.end_date < today:
        return LoanStatus.EXPIRED
    return LoanStatus.ACTIVE


def is_due(deduction: Deduction, period_end: date) -> bool:
    """Whether payroll for a period ending on `period_end` withholds this loan."""
    if not deduction.is_active or not deduction.auto_deduct:
        return False
    if deduction.remaining_balance <= 0:
        return False
    due = deduction.next_deduction_date or deduction.start_date
    return due <= period_end


def plan_payment(deduction: Deduction, amount: Decimal) -> LoanDeductionLine:
    """Plan applying `amount` to a loan without mutating it.

    Raises:
        LedgerInconsistencyError: If the amount is not positive, exceeds the
            balance, or the loan has no installments left
    """
    balance = Decimal(deduction.remaining_balance)
    if amount <= 0:
        raise LedgerInconsistencyError(
            deduction.deduction_id, f"payment amount {amount} must be positive", balance
        )
    if amount > balance:
        raise LedgerInconsistencyError(
            deduction.deduction_id,
            f"payment {amount} exceeds remaining balance {balance}",
            balance,
        )
    remaining = deduction.installments_remaining
    if remaining is not None and remaining <= 0:
        raise LedgerInconsistencyError(
            deduction.deduction_id, "all installments are already paid", balance
        )

    after = balance - amount
    exhausted = remaining is not None and remaining - 1 <= 0
    deactivates = after <= 0 or exhausted
    if deactivates:
        next_date = None
    else:
        current = deduction.next_deduction_date or deduction.start_date
        next_date = next_deduction_date(current, deduction.payment_frequency)
    return LoanDeductionLine(
        deduction_id=deduction.deduction_id,
        amount=amount,
        balance_before=balance,
        balance_after=after,
        next_deduction_date=next_date,
        deactivates=deactivates,
    )


def plan_period_deductions(
    deductions: Iterable[Deduction], period_end: date
) -> list[LoanDeductionLine]:
    """One installment per due loan, the last one capped at the balance."""
    lines = []
    for deduction in deductions:
        if not is_due(deduction, period_end):
            continue
        amount = min(Decimal(deduction.installment_amount), Decimal(deduction.remaining_balance))
        lines.append(plan_payment(deduction, amount))
    return lines


class DeductionLedger:
    """Persistence side of the loan ledger."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, deduction_id: int) -> Deduction:
        deduction = await self.session.get(Deduction, deduction_id)
        if deduction is None:
            raise NotFoundError("Deduction", deduction_id)
        return deduction

    async def create_loan(
        self,
        employee_id: str,
        deduction_type_id: int,
        principal_amount: Decimal,
        installment_amount: Decimal,
        start_date: date,
        installments_total: int | None = None,
        payment_frequency: str = "monthly",
        end_date: date | None = None,
        interest_rate: Decimal = ZERO,
        auto_deduct: bool = True,
        description: str | None = None,
    ) -> Deduction:
        if principal_amount <= 0:
            raise ValidationError(None, "principal_amount must be positive")
        if installment_amount <= 0:
            raise ValidationError(None, "installment_amount must be positive")
        if payment_frequency not in PAYMENT_FREQUENCIES:
            raise ValidationError(None, f"unknown payment_frequency '{payment_frequency}'")
        if installments_total is None:
            installments_total = int(
                (principal_amount / installment_amount).to_integral_value(rounding=ROUND_CEILING)
            )
        if installments_total <= 0:
            raise ValidationError(None, "installments_total must be positive")
        if end_date is None:
            end_date = add_months(start_date, installments_total)

        deduction = Deduction(
            employee_id=employee_id,
            deduction_type_id=deduction_type_id,
            principal_amount=round_to_cents(principal_amount),
            remaining_balance=round_to_cents(principal_amount),
            installment_amount=round_to_cents(installment_amount),
            installments_total=installments_total,
            installments_paid=0,
            interest_rate=interest_rate,
            payment_frequency=payment_frequency,
            start_date=start_date,
            end_date=end_date,
            next_deduction_date=start_date,
            auto_deduct=auto_deduct,
            is_active=True,
            description=description,
        )
        self.session.add(deduction)
        await self.session.flush()
        logger.info(
            "Loan %s created for employee %s: principal %s, %s x %s",
            deduction.deduction_id,
            employee_id,
            principal_amount,
            installments_total,
            installment_amount,
        )
        return deduction

    async def update_loan(self, deduction_id: int, changes: Mapping[str, Any]) -> Deduction:
        """Edit the terms of a loan.

        Only LOAN_EDITABLE_FIELDS may change. A new installment amount
        re-derives the installment count from the remaining balance; a new
        payment frequency re-derives the next due date from the last payment.

        Raises:
            ValidationError: If a field is unknown or a value is invalid
            LedgerInconsistencyError: If a paid-off loan would be reactivated
        """
        unknown = sorted(set(changes) - set(LOAN_EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(None, "fields cannot be edited: " + ", ".join(unknown))
        if not changes:
            raise ValidationError(None, "no fields to update")

        deduction = await self.get(deduction_id)
        balance = Decimal(deduction.remaining_balance)

        if "installment_amount" in changes:
            installment = Decimal(changes["installment_amount"])
            if installment <= 0:
                raise ValidationError(None, "installment_amount must be positive")
            deduction.installment_amount = round_to_cents(installment)
            deduction.installments_total = deduction.installments_paid + int(
                (balance / installment).to_integral_value(rounding=ROUND_CEILING)
            )

        if "payment_frequency" in changes:
            frequency = changes["payment_frequency"]
            if frequency not in PAYMENT_FREQUENCIES:
                raise ValidationError(None, f"unknown payment_frequency '{frequency}'")
            if frequency != deduction.payment_frequency:
                deduction.payment_frequency = frequency
                if deduction.is_active:
                    deduction.next_deduction_date = await self._rederive_next_date(deduction)

        if "end_date" in changes:
            end_date = changes["end_date"]
            if end_date is not None and end_date < deduction.start_date:
                raise ValidationError(
                    None, f"end_date {end_date} is before start_date {deduction.start_date}"
                )
            deduction.end_date = end_date

        if "is_active" in changes:
            if changes["is_active"] and not deduction.is_active and balance <= 0:
                raise LedgerInconsistencyError(
                    deduction_id, "a paid-off loan cannot be reactivated", balance
                )
            deduction.is_active = bool(changes["is_active"])

        for name in ("description", "auto_deduct"):
            if name in changes:
                setattr(deduction, name, changes[name])

        await self.session.flush()
        logger.info("Loan %s updated: %s", deduction_id, ", ".join(sorted(changes)))
        return deduction

    async def _rederive_next_date(self, deduction: Deduction) -> date:
        result = await self.session.execute(
            select(func.max(DeductionPayment.payment_date)).where(
                DeductionPayment.deduction_id == deduction.deduction_id
            )
        )
        last_paid = result.scalar_one()
        if last_paid is None:
            return deduction.start_date
        return next_deduction_date(last_paid, deduction.payment_frequency)

    async def active_loans(self, employee_ids: Sequence[str]) -> dict[str, list[Deduction]]:
        """Active loans for many employees in one query."""
        loans: dict[str, list[Deduction]] = {e: [] for e in employee_ids}
        if not employee_ids:
            return loans
        result = await self.session.execute(
            select(Deduction)
            .where(
                Deduction.employee_id.in_(employee_ids),
                Deduction.is_active.is_(True),
            )
            .order_by(Deduction.deduction_id)
        )
        for deduction in result.scalars().all():
            loans[deduction.employee_id].append(deduction)
        return loans

    async def apply(
        self,
        line: LoanDeductionLine,
        payment_date: date,
        period_start: date | None = None,
        period_end: date | None = None,
        payroll_header_id: int | None = None,
        notes: str | None = None,
    ) -> DeductionPayment:
        """Apply a planned line: payment row, balance, count and next date.

        Raises:
            LedgerInconsistencyError: If the loan changed since it was planned
        """
        deduction = await self.get(line.deduction_id)
        if Decimal(deduction.remaining_balance) != line.balance_before:
            raise LedgerInconsistencyError(
                deduction.deduction_id,
                f"balance changed from {line.balance_before} to"
                f" {deduction.remaining_balance} since the payment was planned",
                deduction.remaining_balance,
            )

        payment = DeductionPayment(
            deduction_id=deduction.deduction_id,
            employee_id=deduction.employee_id,
            payroll_header_id=payroll_header_id,
            payment_date=payment_date,
            period_start=period_start,
            period_end=period_end,
            amount_paid=line.amount,
            remaining_balance_after=line.balance_after,
            notes=notes,
        )
        self.session.add(payment)

        deduction.remaining_balance = line.balance_after
        deduction.installments_paid += 1
        deduction.next_deduction_date = line.next_deduction_date
        if line.deactivates:
            deduction.is_active = False

        await self.session.flush()
        logger.info(
            "Applied %s to loan %s, balance now %s%s",
            line.amount,
            deduction.deduction_id,
            line.balance_after,
            " (closed)" if line.deactivates else "",
        )
        return payment

    async def record_manual_payment(
        self,
        deduction_id: int,
        amount: Decimal,
        payment_date: date,
        notes: str | None = None,
    ) -> DeductionPayment:
        deduction = await self.get(deduction_id)
        if not deduction.is_active:
            raise LedgerInconsistencyError(
                deduction_id, "loan is not active", deduction.remaining_balance
            )
        line = plan_payment(deduction, round_to_cents(amount))
        return await self.apply(line, payment_date, notes=notes or "Manual payment")

    async def payment_history(self, deduction_id: int) -> list[DeductionPayment]:
        """Payments on a loan, newest first."""
        await self.get(deduction_id)
        result = await self.session.execute(
            select(DeductionPayment)
            .where(DeductionPayment.deduction_id == deduction_id)
            .order_by(
                DeductionPayment.payment_date.desc(),
                DeductionPayment.payment_id.desc(),
            )
        )
        return list(result.scalars().all())

    async def list_loans(
        self,
        today: date,
        employee_id: str | None = None,
        active_only: bool = False,
    ) -> list[tuple[Deduction, LoanStatus]]:
        query = select(Deduction).order_by(Deduction.deduction_id)
        if employee_id is not None:
            query = query.where(Deduction.employee_id == employee_id)
        if active_only:
            query = query.where(Deduction.is_active.is_(True))
        result = await self.session.execute(query)
        return [(d, loan_status(d, today)) for d in result.scalars().all()]
