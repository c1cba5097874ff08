"""Payroll services."""

from hris_payroll.services.attendance_service import AttendanceService
from hris_payroll.services.configuration_service import ConfigurationService
from hris_payroll.services.deduction_ledger import DeductionLedger, LoanStatus
from hris_payroll.services.leave_service import LeaveService
from hris_payroll.services.payroll_run_service import PayrollRequest, PayrollRunOrchestrator
from hris_payroll.services.state_machine import PayrollRunStateMachine, PayrollRunStatus
from hris_payroll.services.thirteenth_month_service import ThirteenthMonthService

__all__ = [
    "AttendanceService",
    "ConfigurationService",
    "DeductionLedger",
    "LeaveService",
    "LoanStatus",
    "PayrollRequest",
    "PayrollRunOrchestrator",
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "ThirteenthMonthService",
]
