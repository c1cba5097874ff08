"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from hris_payroll.exceptions import ConflictError


class ErrorResponse(BaseModel):
    """Error body returned by every exception handler."""

    detail: str
    code: str
    context: dict[str, Any] | None = None


class ConflictResponse(BaseModel):
    employee_id: str
    reason: str
    start_date: date | None = None
    end_date: date | None = None
    message: str

    @classmethod
    def from_error(cls, exc: ConflictError) -> "ConflictResponse":
        return cls(
            employee_id=exc.employee_id,
            reason=exc.reason,
            start_date=exc.start_date,
            end_date=exc.end_date,
            message=str(exc),
        )


# ============================================================================
# Configuration schemas
# ============================================================================


class ConfigEntryIn(BaseModel):
    """One effective-dated configuration value to upsert."""

    config_type: str = Field(min_length=1)
    config_key: str = Field(min_length=1)
    value: Any
    effective_date: date
    expiry_date: date | None = None
    description: str | None = None


class ConfigBulkUpsert(BaseModel):
    entries: list[ConfigEntryIn] = Field(min_length=1)


class ConfigEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    config_id: int
    config_type: str
    config_key: str
    value: Any
    effective_date: date
    expiry_date: date | None = None
    description: str | None = None
    is_active: bool


class ConfigValueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    value: Any
    effective_date: date
    expiry_date: date | None = None
    description: str | None = None


class ActiveConfigResponse(BaseModel):
    as_of_date: date
    configuration: dict[str, dict[str, ConfigValueResponse]]


# ============================================================================
# Attendance schemas
# ============================================================================


class AttendanceBatch(BaseModel):
    """Raw attendance rows as parsed from an import file or form."""

    rows: list[dict[str, Any]] = Field(min_length=1)
    first_row: int = Field(default=1, ge=1)


class AttendanceSubmit(AttendanceBatch):
    overwrite: bool = False


class CleanRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row_number: int
    employee_id: str
    work_date: date
    time_in: datetime | None = None
    time_out: datetime | None = None
    is_present: bool
    is_absent: bool
    on_leave: bool
    is_dayoff: bool
    is_regular_holiday: bool
    is_special_holiday: bool


class DuplicateWarningResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row_number: int
    employee_id: str
    work_date: date
    attendance_id: int | None = None
    message: str


class AttendancePreviewResponse(BaseModel):
    rejected: bool
    clean: list[CleanRowResponse]
    errors: list[str]
    conflicts: list[ConflictResponse]
    warnings: list[DuplicateWarningResponse]


class AttendanceSubmitResponse(BaseModel):
    rejected: bool
    created: list[int]
    updated: list[int]
    skipped: list[DuplicateWarningResponse]
    errors: list[str]
    conflicts: list[ConflictResponse]


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollGenerate(BaseModel):
    """Period and employee selection for a payroll run."""

    start_date: date
    end_date: date
    employee_ids: list[str] | None = None
    department_ids: list[int] | None = None
    run_by: str | None = None
    notes: str | None = None


class EmployeePayResponse(BaseModel):
    employee_id: str
    employee_name: str
    days_worked: int
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    earnings: dict[str, Any]
    deductions: dict[str, Any]


class EmployeeFailureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    reason: str
    error_type: str


class PayrollRunResponse(BaseModel):
    payroll_header_id: int | None = None
    start_date: date
    end_date: date
    status: str
    succeeded_count: int
    failed_count: int
    skipped_count: int
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal
    succeeded: list[EmployeePayResponse]
    failed: list[EmployeeFailureResponse]
    skipped: list[ConflictResponse]


class PayrollHeaderSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_header_id: int
    start_date: date
    end_date: date
    run_date: date
    run_by: str | None = None
    status: str
    completed_at: datetime | None = None
    cancelled_by: str | None = None
    cancel_reason: str | None = None
    cancelled_at: datetime | None = None
    payslip_count: int = 0
    total_gross: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")


class PayslipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payslip_id: int
    payroll_header_id: int
    employee_id: str
    start_date: date
    end_date: date
    days_worked: int
    generated_by: str | None = None
    basic_pay: Decimal
    overtime_pay: Decimal
    night_diff_pay: Decimal
    rest_day_pay: Decimal
    holiday_pay: Decimal
    leave_pay: Decimal
    gross_pay: Decimal
    sss_contribution: Decimal
    philhealth_contribution: Decimal
    pagibig_contribution: Decimal
    withholding_tax: Decimal
    loan_deductions: Decimal
    attendance_deductions: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    employer_sss: Decimal
    employer_philhealth: Decimal
    employer_pagibig: Decimal
    earnings_breakdown: dict[str, Any]
    deductions_breakdown: dict[str, Any]


class PayrollHeaderDetail(PayrollHeaderSummary):
    payslips: list[PayslipResponse]


class PayrollCancel(BaseModel):
    cancelled_by: str | None = None
    reason: str | None = None


class MonthlyPayrollTotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: int
    payslip_count: int
    gross_pay: Decimal
    net_pay: Decimal


class PayrollSummaryResponse(BaseModel):
    """Totals over runs that were not cancelled."""

    model_config = ConfigDict(from_attributes=True)

    year: int | None = None
    run_count: int
    payslip_count: int
    total_gross: Decimal
    total_overtime: Decimal
    total_leave_pay: Decimal
    total_deductions: Decimal
    total_net: Decimal
    average_net: Decimal
    months: list[MonthlyPayrollTotalsResponse]


class ThirteenthMonthResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    year: int
    payslip_count: int
    total_basic_pay: Decimal
    amount: Decimal
    taxable_excess: Decimal
    tax: Decimal
    net_amount: Decimal


# ============================================================================
# Loan schemas
# ============================================================================


class LoanCreate(BaseModel):
    employee_id: str
    deduction_type_id: int
    principal_amount: Decimal = Field(gt=0)
    installment_amount: Decimal = Field(gt=0)
    installments_total: int | None = Field(default=None, ge=1)
    start_date: date
    payment_frequency: Literal["weekly", "bi-weekly", "semi-monthly", "monthly"] = "monthly"
    end_date: date | None = None
    interest_rate: Decimal = Field(default=Decimal("0"), ge=0)
    auto_deduct: bool = True
    description: str | None = None


class LoanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deduction_id: int
    employee_id: str
    deduction_type_id: int
    principal_amount: Decimal
    remaining_balance: Decimal
    installment_amount: Decimal
    installments_total: int | None = None
    installments_paid: int
    payment_frequency: str
    start_date: date
    end_date: date | None = None
    next_deduction_date: date | None = None
    auto_deduct: bool
    is_active: bool
    description: str | None = None
    status: str | None = None


class LoanUpdate(BaseModel):
    """Editable loan terms; only the fields sent are changed."""

    installment_amount: Decimal | None = Field(default=None, gt=0)
    payment_frequency: Literal["weekly", "bi-weekly", "semi-monthly", "monthly"] | None = None
    end_date: date | None = None
    description: str | None = None
    is_active: bool | None = None
    auto_deduct: bool | None = None


class ManualPayment(BaseModel):
    amount: Decimal = Field(gt=0)
    payment_date: date
    notes: str | None = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: int
    deduction_id: int
    employee_id: str
    payroll_header_id: int | None = None
    payment_date: date
    period_start: date | None = None
    period_end: date | None = None
    amount_paid: Decimal
    remaining_balance_after: Decimal
    notes: str | None = None


# ============================================================================
# Leave schemas
# ============================================================================


class LeaveDecision(BaseModel):
    approved_by: str | None = None


class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    leave_request_id: int
    employee_id: str
    leave_type_id: int
    start_date: date
    end_date: date
    status: str
    days_deducted: Decimal | None = None
    approved_by: str | None = None
