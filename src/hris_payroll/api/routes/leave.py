"""Leave request decisions."""

from typing import Annotated

from fastapi import APIRouter, Path

from hris_payroll.api.dependencies import DbSession, Today
from hris_payroll.api.schemas import ErrorResponse, LeaveDecision, LeaveRequestResponse
from hris_payroll.services.leave_service import LeaveService

router = APIRouter(prefix="/leave-requests", tags=["leave"])

_ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


@router.post(
    "/{leave_request_id}/approve",
    response_model=LeaveRequestResponse,
    responses=_ERRORS,
)
async def approve_leave(
    db: DbSession,
    leave_request_id: Annotated[int, Path()],
    payload: LeaveDecision,
) -> LeaveRequestResponse:
    request = await LeaveService(db).approve(leave_request_id, payload.approved_by)
    await db.commit()
    return LeaveRequestResponse.model_validate(request)


@router.post(
    "/{leave_request_id}/reject",
    response_model=LeaveRequestResponse,
    responses=_ERRORS,
)
async def reject_leave(
    db: DbSession,
    leave_request_id: Annotated[int, Path()],
    payload: LeaveDecision,
) -> LeaveRequestResponse:
    request = await LeaveService(db).reject(leave_request_id, payload.approved_by)
    await db.commit()
    return LeaveRequestResponse.model_validate(request)


@router.post(
    "/{leave_request_id}/cancel",
    response_model=LeaveRequestResponse,
    responses=_ERRORS,
)
async def cancel_leave(
    db: DbSession,
    today: Today,
    leave_request_id: Annotated[int, Path()],
) -> LeaveRequestResponse:
    """Cancel a request that has not started; approved days are restored."""
    request = await LeaveService(db).cancel(leave_request_id, today)
    await db.commit()
    return LeaveRequestResponse.model_validate(request)
