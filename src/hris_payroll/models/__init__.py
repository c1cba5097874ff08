"""ORM models."""

from hris_payroll.models.attendance import (
    AttendanceRecord,
    LeaveBalance,
    LeaveRequest,
    LeaveType,
)
from hris_payroll.models.base import Base, TimestampMixin
from hris_payroll.models.configuration import RateConfiguration
from hris_payroll.models.deductions import Deduction, DeductionPayment, DeductionType
from hris_payroll.models.employee import Contract, Department, Employee
from hris_payroll.models.payroll import PayrollHeader, Payslip

__all__ = [
    "AttendanceRecord",
    "Base",
    "Contract",
    "Deduction",
    "DeductionPayment",
    "DeductionType",
    "Department",
    "Employee",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveType",
    "PayrollHeader",
    "Payslip",
    "RateConfiguration",
    "TimestampMixin",
]
