"""Employee, department and contract models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hris_payroll.models.attendance import AttendanceRecord
    from hris_payroll.models.deductions import Deduction


class Department(Base):
    """Organizational department."""

    __tablename__ = "department"

    department_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)

    employees: Mapped[list[Employee]] = relationship(back_populates="department")


class Employee(Base, TimestampMixin):
    """Employee record as seen by payroll."""

    __tablename__ = "employee"

    employee_id: Mapped[str] = mapped_column(String, primary_key=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    department_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("department.department_id"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    employment_type: Mapped[str] = mapped_column(String, nullable=False, default="Regular")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'terminated', 'on_leave')",
            name="employee_status_check",
        ),
    )

    # Relationships
    department: Mapped[Department | None] = relationship(back_populates="employees")
    contracts: Mapped[list[Contract]] = relationship(
        back_populates="employee", order_by="Contract.start_date"
    )
    attendance_records: Mapped[list[AttendanceRecord]] = relationship(
        back_populates="employee"
    )
    deductions: Mapped[list[Deduction]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"


class Contract(Base, TimestampMixin):
    """Employment contract carrying the employee's rate basis."""

    __tablename__ = "contract"

    contract_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    rate_type: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "rate_type IN ('hourly', 'daily', 'monthly')",
            name="contract_rate_type_check",
        ),
        CheckConstraint("rate >= 0", name="contract_rate_non_negative"),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="contract_dates_check",
        ),
    )

    employee: Mapped[Employee] = relationship(back_populates="contracts")

    def overlaps_period(self, period_start: date, period_end: date) -> bool:
        """Check whether the contract covers any day of a pay period."""
        if self.start_date > period_end:
            return False
        if self.end_date is not None and self.end_date < period_start:
            return False
        return True
