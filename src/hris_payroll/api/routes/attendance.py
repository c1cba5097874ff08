"""Attendance ingestion endpoints (preview, then submit)."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from hris_payroll.api.dependencies import DbSession
from hris_payroll.api.schemas import (
    AttendanceBatch,
    AttendancePreviewResponse,
    AttendanceSubmit,
    AttendanceSubmitResponse,
    CleanRowResponse,
    ConflictResponse,
    DuplicateWarningResponse,
)
from hris_payroll.services.attendance_service import AttendanceService

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("/preview", response_model=AttendancePreviewResponse)
async def preview_attendance(db: DbSession, payload: AttendanceBatch) -> AttendancePreviewResponse:
    """Validate a batch and report duplicates without saving anything."""
    preview = await AttendanceService(db).preview(payload.rows, payload.first_row)
    return AttendancePreviewResponse(
        rejected=preview.rejected,
        clean=[CleanRowResponse.model_validate(row) for row in preview.clean],
        errors=preview.errors,
        conflicts=[ConflictResponse.from_error(c) for c in preview.conflicts],
        warnings=[DuplicateWarningResponse.model_validate(w) for w in preview.warnings],
    )


@router.post(
    "/submit",
    response_model=AttendanceSubmitResponse,
    responses={409: {"model": AttendanceSubmitResponse}},
)
async def submit_attendance(db: DbSession, payload: AttendanceSubmit):
    """Persist a batch; existing days are updated only with `overwrite`."""
    outcome = await AttendanceService(db).submit(
        payload.rows, overwrite=payload.overwrite, first_row=payload.first_row
    )
    body = AttendanceSubmitResponse(
        rejected=outcome.rejected,
        created=outcome.created,
        updated=outcome.updated,
        skipped=[DuplicateWarningResponse.model_validate(w) for w in outcome.skipped],
        errors=outcome.errors,
        conflicts=[ConflictResponse.from_error(c) for c in outcome.conflicts],
    )
    if outcome.rejected:
        await db.rollback()
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump(mode="json"))
    await db.commit()
    return body
