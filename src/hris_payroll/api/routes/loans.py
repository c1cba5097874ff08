"""Loan and advance endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from hris_payroll.api.dependencies import DbSession, Today
from hris_payroll.api.schemas import (
    ErrorResponse,
    LoanCreate,
    LoanResponse,
    LoanUpdate,
    ManualPayment,
    PaymentResponse,
)
from hris_payroll.services.deduction_ledger import DeductionLedger, loan_status

router = APIRouter(prefix="/loans", tags=["loans"])


@router.post(
    "",
    response_model=LoanResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_loan(db: DbSession, today: Today, payload: LoanCreate) -> LoanResponse:
    deduction = await DeductionLedger(db).create_loan(**payload.model_dump())
    await db.commit()
    response = LoanResponse.model_validate(deduction)
    response.status = loan_status(deduction, today).value
    return response


@router.get("", response_model=list[LoanResponse])
async def list_loans(
    db: DbSession,
    today: Today,
    employee_id: Annotated[str | None, Query()] = None,
    active_only: bool = False,
) -> list[LoanResponse]:
    """Loans with their status derived from balance and dates."""
    loans = await DeductionLedger(db).list_loans(today, employee_id, active_only)
    results = []
    for deduction, state in loans:
        item = LoanResponse.model_validate(deduction)
        item.status = state.value
        results.append(item)
    return results


@router.post(
    "/{deduction_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def record_payment(
    db: DbSession,
    deduction_id: Annotated[int, Path()],
    payload: ManualPayment,
) -> PaymentResponse:
    """Apply a manual payment outside payroll."""
    payment = await DeductionLedger(db).record_manual_payment(
        deduction_id, payload.amount, payload.payment_date, payload.notes
    )
    await db.commit()
    return PaymentResponse.model_validate(payment)


@router.get(
    "/{deduction_id}/payments",
    response_model=list[PaymentResponse],
    responses={404: {"model": ErrorResponse}},
)
async def payment_history(
    db: DbSession,
    deduction_id: Annotated[int, Path()],
) -> list[PaymentResponse]:
    payments = await DeductionLedger(db).payment_history(deduction_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.patch(
    "/{deduction_id}",
    response_model=LoanResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_loan(
    db: DbSession,
    today: Today,
    deduction_id: Annotated[int, Path()],
    payload: LoanUpdate,
) -> LoanResponse:
    """Edit loan terms; `end_date` and `description` may be cleared with null."""
    changes = {
        name: value
        for name, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or name in ("end_date", "description")
    }
    deduction = await DeductionLedger(db).update_loan(deduction_id, changes)
    await db.commit()
    response = LoanResponse.model_validate(deduction)
    response.status = loan_status(deduction, today).value
    return response
