"""Payroll run header and payslip models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.models.base import Base, TimestampMixin


class PayrollHeader(Base, TimestampMixin):
    """One payroll run for an exact (start_date, end_date) window."""

    __tablename__ = "payroll_header"

    payroll_header_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    run_date: Mapped[date] = mapped_column(Date, nullable=False)
    run_by: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="collecting")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String, nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("start_date", "end_date", name="payroll_header_period_unique"),
        CheckConstraint("end_date >= start_date", name="payroll_header_dates_check"),
        CheckConstraint(
            "status IN ('collecting', 'computing', 'persisting', 'completed', 'failed',"
            " 'cancelled')",
            name="payroll_header_status_check",
        ),
    )

    payslips: Mapped[list[Payslip]] = relationship(
        back_populates="payroll_header", order_by="Payslip.employee_id"
    )


class Payslip(Base, TimestampMixin):
    """Pay result for one employee under one payroll header.

    start_date/end_date repeat the header window so the duplicate guard is a
    single unique constraint.
    """

    __tablename__ = "payslip"

    payslip_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payroll_header_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("payroll_header.payroll_header_id", ondelete="RESTRICT"),
        nullable=False,
    )
    employee_id: Mapped[str] = mapped_column(
        String, ForeignKey("employee.employee_id"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days_worked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    generated_by: Mapped[str | None] = mapped_column(String, nullable=True)

    # Earnings
    basic_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    overtime_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    night_diff_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    rest_day_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    holiday_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    leave_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Deductions
    sss_contribution: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    philhealth_contribution: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    pagibig_contribution: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    withholding_tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    loan_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    attendance_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Employer liabilities (not deducted)
    employer_sss: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    employer_philhealth: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    employer_pagibig: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    earnings_breakdown: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    deductions_breakdown: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )

    __table_args__ = (
        UniqueConstraint("payroll_header_id", "employee_id", name="payslip_header_employee_unique"),
        UniqueConstraint(
            "employee_id", "start_date", "end_date", name="payslip_employee_period_unique"
        ),
        CheckConstraint("gross_pay >= 0", name="payslip_gross_non_negative"),
    )

    payroll_header: Mapped[PayrollHeader] = relationship(back_populates="payslips")
