"""Payroll run orchestrator - batch payslip generation for one period."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hris_payroll.calculators.aggregator import AttendanceAggregator
from hris_payroll.calculators.amounts import round_to_cents
from hris_payroll.calculators.earnings import EarningsEngine
from hris_payroll.calculators.rate_config import RateConfigurationStore
from hris_payroll.calculators.statutory import StatutoryDeductionEngine
from hris_payroll.calculators.types import (
    ZERO,
    AttendanceAggregate,
    EarningsBreakdown,
    LoanDeductionLine,
    RateBasis,
    RateType,
    StatutoryDeductions,
)
from hris_payroll.config import get_settings, local_today
from hris_payroll.exceptions import (
    CalculationError,
    ConfigurationMissingError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PayrollError,
    ValidationError,
)
from hris_payroll.models import (
    AttendanceRecord,
    Contract,
    Deduction,
    Employee,
    LeaveType,
    PayrollHeader,
    Payslip,
)
from hris_payroll.services.deduction_ledger import DeductionLedger, plan_period_deductions
from hris_payroll.services.state_machine import PayrollRunStateMachine, PayrollRunStatus

logger = logging.getLogger(__name__)


@dataclass
class PayrollRequest:
    """Period and employee selection for one run.

    Selection precedence: explicit employee ids, then department ids, then
    every active employee.
    """

    start_date: date
    end_date: date
    employee_ids: list[str] | None = None
    department_ids: list[int] | None = None
    run_by: str | None = None
    notes: str | None = None


@dataclass
class EmployeePayResult:
    """Computed pay for one employee, before anything is persisted."""

    employee_id: str
    employee_name: str
    aggregate: AttendanceAggregate
    earnings: EarningsBreakdown
    statutory: StatutoryDeductions
    loan_lines: list[LoanDeductionLine] = field(default_factory=list)
    attendance_deductions: Decimal = ZERO

    @property
    def days_worked(self) -> int:
        return self.aggregate.days_worked

    @property
    def gross_pay(self) -> Decimal:
        return self.earnings.gross_pay

    @property
    def loan_deductions(self) -> Decimal:
        return sum((line.amount for line in self.loan_lines), ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return self.statutory.total_employee + self.loan_deductions + self.attendance_deductions

    @property
    def net_pay(self) -> Decimal:
        return self.gross_pay - self.total_deductions

    def deductions_breakdown(self) -> dict[str, Any]:
        return {
            "statutory": self.statutory.to_dict(),
            "loans": [
                {
                    "deduction_id": line.deduction_id,
                    "amount": str(line.amount),
                    "balance_before": str(line.balance_before),
                    "balance_after": str(line.balance_after),
                }
                for line in self.loan_lines
            ],
            "attendance": str(self.attendance_deductions),
        }

    def to_payslip(
        self, header: PayrollHeader, engine_version: str, generated_by: str | None = None
    ) -> Payslip:
        earnings = self.earnings
        statutory = self.statutory
        return Payslip(
            payroll_header_id=header.payroll_header_id,
            employee_id=self.employee_id,
            start_date=header.start_date,
            end_date=header.end_date,
            days_worked=self.days_worked,
            generated_by=generated_by,
            basic_pay=earnings.basic_pay,
            overtime_pay=earnings.overtime_pay,
            night_diff_pay=earnings.night_diff_pay,
            rest_day_pay=earnings.rest_day_pay,
            holiday_pay=earnings.holiday_pay,
            leave_pay=earnings.leave_pay,
            gross_pay=self.gross_pay,
            sss_contribution=statutory.sss,
            philhealth_contribution=statutory.philhealth,
            pagibig_contribution=statutory.pagibig,
            withholding_tax=statutory.withholding_tax,
            loan_deductions=self.loan_deductions,
            attendance_deductions=self.attendance_deductions,
            total_deductions=self.total_deductions,
            net_pay=self.net_pay,
            employer_sss=statutory.employer_sss,
            employer_philhealth=statutory.employer_philhealth,
            employer_pagibig=statutory.employer_pagibig,
            earnings_breakdown={**earnings.to_dict(), "engine_version": engine_version},
            deductions_breakdown=self.deductions_breakdown(),
        )


@dataclass(frozen=True)
class EmployeeFailure:
    employee_id: str
    reason: str
    error_type: str


@dataclass
class PayrollRunSummary:
    """Per-employee outcomes and totals of one run."""

    start_date: date
    end_date: date
    status: str
    payroll_header_id: int | None = None
    succeeded: list[EmployeePayResult] = field(default_factory=list)
    failed: list[EmployeeFailure] = field(default_factory=list)
    skipped: list[ConflictError] = field(default_factory=list)

    @property
    def total_gross(self) -> Decimal:
        return sum((r.gross_pay for r in self.succeeded), ZERO)

    @property
    def total_net(self) -> Decimal:
        return sum((r.net_pay for r in self.succeeded), ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return sum((r.total_deductions for r in self.succeeded), ZERO)


@dataclass(frozen=True)
class MonthlyPayrollTotals:
    month: int
    payslip_count: int
    gross_pay: Decimal
    net_pay: Decimal


@dataclass
class PayrollTotals:
    """Totals over every run that was not cancelled, optionally for one year.

    Runs are placed in the year and month their period starts in.
    """

    year: int | None
    run_count: int
    payslip_count: int
    total_gross: Decimal
    total_overtime: Decimal
    total_leave_pay: Decimal
    total_deductions: Decimal
    total_net: Decimal
    months: list[MonthlyPayrollTotals] = field(default_factory=list)

    @property
    def average_net(self) -> Decimal:
        if not self.payslip_count:
            return ZERO
        return round_to_cents(self.total_net / self.payslip_count)


def _decimal(value: Any) -> Decimal:
    return round_to_cents(Decimal(str(value or 0)))


def select_contract(employee_id: str, contracts: Sequence[Contract], start: date, end: date) -> Contract:
    """The latest-starting contract that covers part of the period.

    Raises:
        CalculationError: If no contract covers the period
    """
    if not contracts:
        raise CalculationError(employee_id, "no contract on file")
    covering = [c for c in contracts if c.overlaps_period(start, end)]
    if not covering:
        latest = max(contracts, key=lambda c: c.start_date)
        if latest.start_date > end:
            reason = f"contract starts {latest.start_date}, after period end {end}"
        else:
            reason = f"contract ended {latest.end_date}, before period start {start}"
        raise CalculationError(employee_id, reason)
    return max(covering, key=lambda c: c.start_date)


@dataclass
class _RunData:
    contracts: dict[str, list[Contract]]
    records: dict[str, list[AttendanceRecord]]
    loans: dict[str, list[Deduction]]
    aggregator: AttendanceAggregator
    earnings_engine: EarningsEngine | None = None
    statutory_engine: StatutoryDeductionEngine | None = None
    config_error: ConfigurationMissingError | None = None


class PayrollRunOrchestrator:
    """Drives payroll generation for one period.

    Each employee is computed in isolation: a missing contract or
    configuration fails that employee only. Nothing is written until every
    employee has been computed; errors while persisting abort the run and
    the caller's transaction rolls it back.
    """

    def __init__(self, session: AsyncSession, today: date | None = None):
        self.session = session
        self.today = today
        self.ledger = DeductionLedger(session)

    async def generate(self, request: PayrollRequest) -> PayrollRunSummary:
        """Compute and persist payslips for the selected employees."""
        machine = PayrollRunStateMachine()
        logger.info("Payroll run %s to %s started", request.start_date, request.end_date)
        try:
            await self._ensure_period_open(request)
            summary = await self._compute(request, machine, skip_existing=True)
            machine.advance(PayrollRunStatus.PERSISTING)
            await self._persist(request, summary, machine)
            machine.advance(PayrollRunStatus.COMPLETED)
        except Exception:
            machine.fail()
            logger.exception(
                "Payroll run %s to %s failed", request.start_date, request.end_date
            )
            raise

        summary.status = machine.status.value
        logger.info(
            "Payroll run %s to %s completed: %d succeeded, %d failed, %d skipped",
            request.start_date,
            request.end_date,
            len(summary.succeeded),
            len(summary.failed),
            len(summary.skipped),
        )
        return summary

    async def preview_payroll(self, request: PayrollRequest) -> PayrollRunSummary:
        """Run the calculation without persisting or touching loans."""
        machine = PayrollRunStateMachine()
        summary = await self._compute(request, machine, skip_existing=False)
        summary.status = "preview"
        return summary

    async def _compute(
        self,
        request: PayrollRequest,
        machine: PayrollRunStateMachine,
        skip_existing: bool,
    ) -> PayrollRunSummary:
        if request.end_date < request.start_date:
            raise ValidationError(
                None, f"end_date {request.end_date} is before start_date {request.start_date}"
            )

        summary = PayrollRunSummary(
            start_date=request.start_date,
            end_date=request.end_date,
            status=machine.status.value,
        )

        employees, missing = await self.resolve_employees(request)
        for employee_id in missing:
            summary.failed.append(
                EmployeeFailure(employee_id, f"Employee {employee_id} not found", "NotFoundError")
            )

        if skip_existing:
            paid = await self._already_paid([e.employee_id for e in employees], request)
            for employee in [e for e in employees if e.employee_id in paid]:
                summary.skipped.append(
                    ConflictError(
                        employee.employee_id,
                        "payslip already exists for this period",
                        request.start_date,
                        request.end_date,
                    )
                )
            employees = [e for e in employees if e.employee_id not in paid]

        data = await self._fetch(employees, request)

        machine.advance(PayrollRunStatus.COMPUTING)
        for employee in employees:
            try:
                result = self.compute_employee(employee, data, request)
                summary.succeeded.append(result)
            except PayrollError as exc:
                logger.warning("Employee %s not paid: %s", employee.employee_id, exc)
                summary.failed.append(
                    EmployeeFailure(employee.employee_id, str(exc), type(exc).__name__)
                )
            except Exception as exc:
                logger.exception("Unexpected error computing pay for %s", employee.employee_id)
                summary.failed.append(
                    EmployeeFailure(
                        employee.employee_id, f"Unexpected error: {exc}", type(exc).__name__
                    )
                )
        return summary

    async def resolve_employees(
        self, request: PayrollRequest
    ) -> tuple[list[Employee], list[str]]:
        """Employees to pay and any explicitly requested ids that do not exist.

        Raises:
            ValidationError: If the selection is empty
        """
        missing: list[str] = []
        query = select(Employee).order_by(Employee.employee_id)
        if request.employee_ids:
            query = query.where(Employee.employee_id.in_(request.employee_ids))
        elif request.department_ids:
            query = query.where(
                Employee.department_id.in_(request.department_ids),
                Employee.status == "active",
            )
        else:
            query = query.where(Employee.status == "active")

        result = await self.session.execute(query)
        employees = list(result.scalars().all())

        if request.employee_ids:
            found = {e.employee_id for e in employees}
            missing = [e for e in dict.fromkeys(request.employee_ids) if e not in found]

        if not employees:
            raise ValidationError(None, "No employees selected for payroll")
        return employees, missing

    async def _already_paid(self, employee_ids: list[str], request: PayrollRequest) -> set[str]:
        if not employee_ids:
            return set()
        result = await self.session.execute(
            select(Payslip.employee_id).where(
                Payslip.employee_id.in_(employee_ids),
                Payslip.start_date == request.start_date,
                Payslip.end_date == request.end_date,
            )
        )
        return set(result.scalars().all())

    async def _fetch(self, employees: list[Employee], request: PayrollRequest) -> _RunData:
        """Load contracts, attendance, leave types, loans and configuration in bulk."""
        ids = [e.employee_id for e in employees]
        contracts: dict[str, list[Contract]] = {e: [] for e in ids}
        records: dict[str, list[AttendanceRecord]] = {e: [] for e in ids}

        if ids:
            result = await self.session.execute(
                select(Contract).where(Contract.employee_id.in_(ids)).order_by(Contract.start_date)
            )
            for contract in result.scalars().all():
                contracts[contract.employee_id].append(contract)

            result = await self.session.execute(
                select(AttendanceRecord)
                .where(
                    AttendanceRecord.employee_id.in_(ids),
                    AttendanceRecord.work_date >= request.start_date,
                    AttendanceRecord.work_date <= request.end_date,
                )
                .order_by(AttendanceRecord.work_date)
            )
            for record in result.scalars().all():
                records[record.employee_id].append(record)

        result = await self.session.execute(select(LeaveType))
        leave_types = {lt.leave_type_id: lt for lt in result.scalars().all()}

        store = await RateConfigurationStore.load(self.session)
        snapshot = store.snapshot(request.end_date)
        data = _RunData(
            contracts=contracts,
            records=records,
            loans=await self.ledger.active_loans(ids),
            aggregator=AttendanceAggregator(leave_types),
        )
        try:
            data.aggregator = AttendanceAggregator(
                leave_types, snapshot.decimal("payroll", "standard_daily_hours")
            )
            data.earnings_engine = EarningsEngine(snapshot)
            data.statutory_engine = StatutoryDeductionEngine(snapshot)
        except ConfigurationMissingError as exc:
            logger.error("Configuration incomplete for %s: %s", request.end_date, exc)
            data.config_error = exc
        return data

    def compute_employee(
        self, employee: Employee, data: _RunData, request: PayrollRequest
    ) -> EmployeePayResult:
        """Earnings, statutory deductions and loan plan for one employee."""
        if data.config_error is not None:
            raise data.config_error

        employee_id = employee.employee_id
        contract = select_contract(
            employee_id, data.contracts.get(employee_id, []), request.start_date, request.end_date
        )
        try:
            basis = RateBasis(Decimal(contract.rate), RateType(contract.rate_type))
        except ValueError:
            raise CalculationError(employee_id, f"unknown rate type '{contract.rate_type}'") from None

        aggregate = data.aggregator.aggregate(
            employee_id,
            request.start_date,
            request.end_date,
            data.records.get(employee_id, []),
        )
        earnings = data.earnings_engine.calculate(aggregate, basis)
        attendance_deductions = data.earnings_engine.attendance_deduction(
            aggregate, earnings.hourly_rate
        )
        statutory = data.statutory_engine.calculate(earnings.gross_pay, employee.employment_type)

        # Installments that would push net pay below zero wait for a later period
        available = earnings.gross_pay - statutory.total_employee - attendance_deductions
        if available < 0:
            raise CalculationError(
                employee_id,
                f"deductions {statutory.total_employee + attendance_deductions}"
                f" exceed gross pay {earnings.gross_pay}",
            )
        loan_lines = []
        for line in plan_period_deductions(data.loans.get(employee_id, []), request.end_date):
            if line.amount <= available:
                loan_lines.append(line)
                available -= line.amount

        return EmployeePayResult(
            employee_id=employee_id,
            employee_name=employee.full_name,
            aggregate=aggregate,
            earnings=earnings,
            statutory=statutory,
            loan_lines=loan_lines,
            attendance_deductions=attendance_deductions,
        )

    async def _persist(
        self,
        request: PayrollRequest,
        summary: PayrollRunSummary,
        machine: PayrollRunStateMachine,
    ) -> None:
        result = await self.session.execute(
            select(PayrollHeader).where(
                PayrollHeader.start_date == request.start_date,
                PayrollHeader.end_date == request.end_date,
            )
        )
        header = result.scalar_one_or_none()
        if header is None and not summary.succeeded:
            return

        run_date = self.today or local_today()
        if header is None:
            header = PayrollHeader(
                start_date=request.start_date,
                end_date=request.end_date,
                run_date=run_date,
                run_by=request.run_by,
                notes=request.notes,
            )
            self.session.add(header)
        elif request.run_by and request.run_by != header.run_by:
            logger.info(
                "Payroll header %s reused by %s (first run by %s)",
                header.payroll_header_id,
                request.run_by,
                header.run_by,
            )
        header.status = machine.status.value
        await self.session.flush()
        summary.payroll_header_id = header.payroll_header_id

        engine_version = get_settings().engine_version
        for pay in summary.succeeded:
            self.session.add(pay.to_payslip(header, engine_version, request.run_by))
        await self.session.flush()

        for pay in summary.succeeded:
            for line in pay.loan_lines:
                await self.ledger.apply(
                    line,
                    payment_date=request.end_date,
                    period_start=request.start_date,
                    period_end=request.end_date,
                    payroll_header_id=header.payroll_header_id,
                    notes=f"Payroll {request.start_date} to {request.end_date}",
                )

        header.status = PayrollRunStatus.COMPLETED.value
        header.completed_at = datetime.now(timezone.utc)
        await self.session.flush()

    async def list_runs(self, limit: int = 50, offset: int = 0) -> list[tuple[PayrollHeader, int, Decimal, Decimal]]:
        """Headers, newest period first, with payslip count and totals."""
        result = await self.session.execute(
            select(
                PayrollHeader,
                func.count(Payslip.payslip_id),
                func.coalesce(func.sum(Payslip.gross_pay), 0),
                func.coalesce(func.sum(Payslip.net_pay), 0),
            )
            .outerjoin(Payslip, Payslip.payroll_header_id == PayrollHeader.payroll_header_id)
            .group_by(PayrollHeader.payroll_header_id)
            .order_by(PayrollHeader.start_date.desc(), PayrollHeader.payroll_header_id.desc())
            .limit(limit)
            .offset(offset)
        )
        return [
            (header, count, Decimal(str(gross)), Decimal(str(net)))
            for header, count, gross, net in result.all()
        ]

    async def get_run(self, payroll_header_id: int) -> PayrollHeader:
        result = await self.session.execute(
            select(PayrollHeader)
            .where(PayrollHeader.payroll_header_id == payroll_header_id)
            .options(selectinload(PayrollHeader.payslips))
        )
        header = result.scalar_one_or_none()
        if header is None:
            raise NotFoundError("PayrollHeader", payroll_header_id)
        return header

    async def cancel_run(
        self,
        payroll_header_id: int,
        cancelled_by: str | None = None,
        reason: str | None = None,
    ) -> PayrollHeader:
        """Mark a finished run cancelled.

        Payslips and the loan payments applied by the run are kept; the
        period stays closed to further generation.

        Raises:
            NotFoundError: If the run does not exist
            InvalidTransitionError: If the run is already cancelled or still running
        """
        header = await self.get_run(payroll_header_id)
        PayrollRunStateMachine.validate_transition(header.status, PayrollRunStatus.CANCELLED)

        header.status = PayrollRunStatus.CANCELLED.value
        header.cancelled_by = cancelled_by
        header.cancel_reason = reason
        header.cancelled_at = datetime.now(timezone.utc)
        await self.session.flush()
        logger.info(
            "Payroll run %s (%s to %s) cancelled by %s: %s",
            payroll_header_id,
            header.start_date,
            header.end_date,
            cancelled_by,
            reason,
        )
        return header

    async def payroll_summary(self, year: int | None = None) -> PayrollTotals:
        """Totals for every run that was not cancelled.

        With a year, only runs starting in that year count and a per-month
        breakdown is included.
        """
        conditions = [PayrollHeader.status != PayrollRunStatus.CANCELLED.value]
        if year is not None:
            conditions.append(extract("year", PayrollHeader.start_date) == year)

        result = await self.session.execute(
            select(
                func.count(PayrollHeader.payroll_header_id.distinct()),
                func.count(Payslip.payslip_id),
                func.sum(Payslip.gross_pay),
                func.sum(Payslip.overtime_pay),
                func.sum(Payslip.leave_pay),
                func.sum(Payslip.total_deductions),
                func.sum(Payslip.net_pay),
            )
            .select_from(PayrollHeader)
            .outerjoin(Payslip, Payslip.payroll_header_id == PayrollHeader.payroll_header_id)
            .where(*conditions)
        )
        runs, payslips, gross, overtime, leave, deductions, net = result.one()
        totals = PayrollTotals(
            year=year,
            run_count=runs,
            payslip_count=payslips,
            total_gross=_decimal(gross),
            total_overtime=_decimal(overtime),
            total_leave_pay=_decimal(leave),
            total_deductions=_decimal(deductions),
            total_net=_decimal(net),
        )
        if year is None:
            return totals

        month = extract("month", PayrollHeader.start_date)
        result = await self.session.execute(
            select(
                month,
                func.count(Payslip.payslip_id),
                func.sum(Payslip.gross_pay),
                func.sum(Payslip.net_pay),
            )
            .select_from(PayrollHeader)
            .join(Payslip, Payslip.payroll_header_id == PayrollHeader.payroll_header_id)
            .where(*conditions)
            .group_by(month)
            .order_by(month)
        )
        totals.months = [
            MonthlyPayrollTotals(int(m), count, _decimal(g), _decimal(n))
            for m, count, g, n in result.all()
        ]
        return totals

    async def _ensure_period_open(self, request: PayrollRequest) -> None:
        result = await self.session.execute(
            select(PayrollHeader.status).where(
                PayrollHeader.start_date == request.start_date,
                PayrollHeader.end_date == request.end_date,
            )
        )
        status = result.scalar_one_or_none()
        if status == PayrollRunStatus.CANCELLED.value:
            raise InvalidTransitionError(
                status,
                PayrollRunStatus.PERSISTING.value,
                f"payroll for {request.start_date} to {request.end_date} was cancelled",
            )

    async def employee_payslips(self, employee_id: str, year: int | None = None) -> list[Payslip]:
        """An employee's payslips, newest first, optionally within one year."""
        query = select(Payslip).where(Payslip.employee_id == employee_id)
        if year is not None:
            query = query.where(extract("year", Payslip.end_date) == year)
        result = await self.session.execute(
            query.order_by(Payslip.end_date.desc(), Payslip.payslip_id.desc())
        )
        return list(result.scalars().all())
