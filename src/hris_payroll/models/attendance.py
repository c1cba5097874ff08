"""Attendance and leave models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hris_payroll.models.employee import Employee


class LeaveType(Base):
    """Leave type with its pay-ability."""

    __tablename__ = "leave_type"

    leave_type_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    pay_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("100")
    )


class LeaveRequest(Base, TimestampMixin):
    """Employee leave request."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    employee_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("leave_type.leave_type_id"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    days_deducted: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="leave_request_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
    )

    leave_type: Mapped[LeaveType] = relationship()

    @property
    def days_requested(self) -> int:
        """Inclusive calendar days covered by the request."""
        return (self.end_date - self.start_date).days + 1

    def covers(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date


class LeaveBalance(Base, TimestampMixin):
    """Remaining leave days per employee and leave type."""

    __tablename__ = "leave_balance"

    leave_balance_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    employee_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("leave_type.leave_type_id"), nullable=False
    )
    balance: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))

    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type_id", name="leave_balance_unique"),
    )


class AttendanceRecord(Base, TimestampMixin):
    """One attendance day for one employee.

    time_in/time_out are naive local wall-clock datetimes; night differential
    windows are evaluated against them directly.
    """

    __tablename__ = "attendance"

    attendance_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    time_in: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    time_out: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    # Schedule in force that day
    scheduled_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    scheduled_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_end: Mapped[time | None] = mapped_column(Time, nullable=True)

    # Primary state
    is_present: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_absent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    on_leave: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Secondary state
    is_late: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_undertime: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_halfday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_dayoff: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_regular_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_special_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Derived totals
    total_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    overtime_hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0")
    )
    night_differential_hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0")
    )
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    undertime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    leave_type_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("leave_type.leave_type_id"), nullable=True
    )
    leave_request_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("leave_request.leave_request_id", ondelete="SET NULL"),
        nullable=True,
    )
    payroll_breakdown: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="attendance_employee_date_unique"),
        CheckConstraint(
            "CAST(is_present AS INTEGER) + CAST(is_absent AS INTEGER)"
            " + CAST(on_leave AS INTEGER) <= 1",
            name="attendance_primary_state_check",
        ),
        CheckConstraint(
            "NOT (is_regular_holiday AND is_special_holiday)",
            name="attendance_holiday_exclusive_check",
        ),
    )

    employee: Mapped[Employee] = relationship(back_populates="attendance_records")
    leave_type: Mapped[LeaveType | None] = relationship()
