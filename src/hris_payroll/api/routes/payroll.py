"""Payroll run endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from hris_payroll.api.dependencies import DbSession, Today
from hris_payroll.api.schemas import (
    ConflictResponse,
    EmployeeFailureResponse,
    EmployeePayResponse,
    ErrorResponse,
    PayrollCancel,
    PayrollGenerate,
    PayrollHeaderDetail,
    PayrollHeaderSummary,
    PayrollRunResponse,
    PayrollSummaryResponse,
    PayslipResponse,
    ThirteenthMonthResponse,
)
from hris_payroll.services.payroll_run_service import (
    PayrollRequest,
    PayrollRunOrchestrator,
    PayrollRunSummary,
)
from hris_payroll.services.thirteenth_month_service import ThirteenthMonthService

router = APIRouter(prefix="/payroll", tags=["payroll"])


def _run_response(summary: PayrollRunSummary) -> PayrollRunResponse:
    return PayrollRunResponse(
        payroll_header_id=summary.payroll_header_id,
        start_date=summary.start_date,
        end_date=summary.end_date,
        status=summary.status,
        succeeded_count=len(summary.succeeded),
        failed_count=len(summary.failed),
        skipped_count=len(summary.skipped),
        total_gross=summary.total_gross,
        total_deductions=summary.total_deductions,
        total_net=summary.total_net,
        succeeded=[
            EmployeePayResponse(
                employee_id=r.employee_id,
                employee_name=r.employee_name,
                days_worked=r.days_worked,
                gross_pay=r.gross_pay,
                total_deductions=r.total_deductions,
                net_pay=r.net_pay,
                earnings=r.earnings.to_dict(),
                deductions=r.deductions_breakdown(),
            )
            for r in summary.succeeded
        ],
        failed=[EmployeeFailureResponse.model_validate(f) for f in summary.failed],
        skipped=[ConflictResponse.from_error(c) for c in summary.skipped],
    )


@router.post(
    "/generate",
    response_model=PayrollRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def generate_payroll(db: DbSession, today: Today, payload: PayrollGenerate) -> PayrollRunResponse:
    """Generate and persist payslips for a period.

    Employees that already have a payslip for the exact period are skipped
    and reported; per-employee failures do not abort the run.
    """
    orchestrator = PayrollRunOrchestrator(db, today=today)
    summary = await orchestrator.generate(PayrollRequest(**payload.model_dump()))
    await db.commit()
    return _run_response(summary)


@router.post(
    "/preview",
    response_model=PayrollRunResponse,
    responses={400: {"model": ErrorResponse}},
)
async def preview_payroll(db: DbSession, today: Today, payload: PayrollGenerate) -> PayrollRunResponse:
    """Calculate pay for a period without saving anything."""
    orchestrator = PayrollRunOrchestrator(db, today=today)
    summary = await orchestrator.preview_payroll(PayrollRequest(**payload.model_dump()))
    await db.rollback()
    return _run_response(summary)


@router.get("/runs", response_model=list[PayrollHeaderSummary])
async def list_payroll_runs(
    db: DbSession,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[PayrollHeaderSummary]:
    rows = await PayrollRunOrchestrator(db).list_runs(limit=limit, offset=offset)
    results = []
    for header, count, gross, net in rows:
        item = PayrollHeaderSummary.model_validate(header)
        item.payslip_count = count
        item.total_gross = gross
        item.total_net = net
        results.append(item)
    return results


@router.get(
    "/runs/{payroll_header_id}",
    response_model=PayrollHeaderDetail,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_run(
    db: DbSession,
    payroll_header_id: Annotated[int, Path()],
) -> PayrollHeaderDetail:
    """A run with every payslip it produced."""
    header = await PayrollRunOrchestrator(db).get_run(payroll_header_id)
    payslips = [PayslipResponse.model_validate(p) for p in header.payslips]
    return PayrollHeaderDetail(
        payroll_header_id=header.payroll_header_id,
        start_date=header.start_date,
        end_date=header.end_date,
        run_date=header.run_date,
        run_by=header.run_by,
        status=header.status,
        completed_at=header.completed_at,
        cancelled_by=header.cancelled_by,
        cancel_reason=header.cancel_reason,
        cancelled_at=header.cancelled_at,
        payslip_count=len(payslips),
        total_gross=sum((p.gross_pay for p in payslips), 0),
        total_net=sum((p.net_pay for p in payslips), 0),
        payslips=payslips,
    )


@router.post(
    "/runs/{payroll_header_id}/cancel",
    response_model=PayrollHeaderSummary,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def cancel_payroll_run(
    db: DbSession,
    payroll_header_id: Annotated[int, Path()],
    payload: PayrollCancel,
) -> PayrollHeaderSummary:
    """Mark a run cancelled. Its payslips and loan payments are kept."""
    header = await PayrollRunOrchestrator(db).cancel_run(
        payroll_header_id, cancelled_by=payload.cancelled_by, reason=payload.reason
    )
    await db.commit()
    item = PayrollHeaderSummary.model_validate(header)
    item.payslip_count = len(header.payslips)
    item.total_gross = sum((p.gross_pay for p in header.payslips), 0)
    item.total_net = sum((p.net_pay for p in header.payslips), 0)
    return item


@router.get("/summary", response_model=PayrollSummaryResponse)
async def payroll_summary(
    db: DbSession,
    year: Annotated[int | None, Query(ge=1900, le=9999)] = None,
) -> PayrollSummaryResponse:
    """Totals over runs that were not cancelled, by month when a year is given."""
    totals = await PayrollRunOrchestrator(db).payroll_summary(year)
    return PayrollSummaryResponse.model_validate(totals)


@router.get("/employees/{employee_id}/payslips", response_model=list[PayslipResponse])
async def list_employee_payslips(
    db: DbSession,
    employee_id: Annotated[str, Path()],
    year: Annotated[int | None, Query(ge=1900, le=9999)] = None,
) -> list[PayslipResponse]:
    payslips = await PayrollRunOrchestrator(db).employee_payslips(employee_id, year)
    return [PayslipResponse.model_validate(p) for p in payslips]


@router.get(
    "/employees/{employee_id}/thirteenth-month/{year}",
    response_model=ThirteenthMonthResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def get_thirteenth_month(
    db: DbSession,
    employee_id: Annotated[str, Path()],
    year: Annotated[int, Path(ge=1900, le=9999)],
) -> ThirteenthMonthResponse:
    result = await ThirteenthMonthService(db).calculate(employee_id, year)
    return ThirteenthMonthResponse.model_validate(result)
