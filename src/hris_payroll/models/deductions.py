"""Loan/advance deductions and their append-only payment ledger."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hris_payroll.models.employee import Employee


class DeductionType(Base):
    """Kind of recurring deduction (salary loan, cash advance, ...)."""

    __tablename__ = "deduction_type"

    deduction_type_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)


class Deduction(Base, TimestampMixin):
    """A recurring loan or advance amortized through payroll."""

    __tablename__ = "deduction"

    deduction_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    deduction_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("deduction_type.deduction_type_id"), nullable=False
    )
    principal_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    remaining_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    installment_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    installments_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    installments_paid: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    interest_rate: Mapped[Decimal] = mapped_column(
        Numeric(7, 4), nullable=False, default=Decimal("0")
    )
    payment_frequency: Mapped[str] = mapped_column(String, nullable=False, default="monthly")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    next_deduction_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    auto_deduct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("remaining_balance >= 0", name="deduction_balance_non_negative"),
        CheckConstraint("installment_amount > 0", name="deduction_installment_positive"),
        CheckConstraint(
            "payment_frequency IN ('weekly', 'bi-weekly', 'semi-monthly', 'monthly')",
            name="deduction_frequency_check",
        ),
        CheckConstraint(
            "installments_total IS NULL OR installments_paid <= installments_total",
            name="deduction_installments_check",
        ),
    )

    employee: Mapped[Employee] = relationship(back_populates="deductions")
    deduction_type: Mapped[DeductionType] = relationship()
    payments: Mapped[list[DeductionPayment]] = relationship(
        back_populates="deduction", order_by="DeductionPayment.payment_id"
    )

    @property
    def installments_remaining(self) -> int | None:
        if self.installments_total is None:
            return None
        return self.installments_total - self.installments_paid


class DeductionPayment(Base, TimestampMixin):
    """Append-only record of one amount applied to a deduction."""

    __tablename__ = "deduction_payment"

    payment_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deduction_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("deduction.deduction_id", ondelete="RESTRICT"),
        nullable=False,
    )
    employee_id: Mapped[str] = mapped_column(
        String, ForeignKey("employee.employee_id"), nullable=False
    )
    payroll_header_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("payroll_header.payroll_header_id"), nullable=True
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    period_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    remaining_balance_after: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount_paid > 0", name="deduction_payment_positive"),
        CheckConstraint(
            "remaining_balance_after >= 0",
            name="deduction_payment_balance_non_negative",
        ),
    )

    deduction: Mapped[Deduction] = relationship(back_populates="payments")
