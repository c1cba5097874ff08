"""Leave approval and cancellation with balance and attendance side effects."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.config import local_today
from hris_payroll.exceptions import InvalidTransitionError, NotFoundError
from hris_payroll.models import AttendanceRecord, LeaveBalance, LeaveRequest

logger = logging.getLogger(__name__)


class LeaveService:
    """Approves and cancels leave requests.

    Every operation runs inside the caller's transaction: the balance
    change, the request update and the attendance rows commit together.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_request(self, leave_request_id: int) -> LeaveRequest:
        request = await self.session.get(LeaveRequest, leave_request_id)
        if request is None:
            raise NotFoundError("LeaveRequest", leave_request_id)
        return request

    async def _balance(self, request: LeaveRequest) -> LeaveBalance | None:
        result = await self.session.execute(
            select(LeaveBalance).where(
                LeaveBalance.employee_id == request.employee_id,
                LeaveBalance.leave_type_id == request.leave_type_id,
            )
        )
        return result.scalar_one_or_none()

    async def approve(self, leave_request_id: int, approved_by: str | None = None) -> LeaveRequest:
        """Approve a pending request.

        Deducts the requested days from the matching balance (when one
        exists) and marks each day of the window on leave.
        """
        request = await self.get_request(leave_request_id)
        if request.status != "pending":
            raise InvalidTransitionError(request.status, "approved", "only pending requests can be approved")

        days = Decimal(request.days_requested)
        balance = await self._balance(request)
        if balance is not None:
            balance.balance = Decimal(balance.balance) - days
            request.days_deducted = days
        else:
            request.days_deducted = Decimal("0")

        request.status = "approved"
        request.approved_by = approved_by

        result = await self.session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.employee_id == request.employee_id,
                AttendanceRecord.work_date >= request.start_date,
                AttendanceRecord.work_date <= request.end_date,
            )
        )
        existing = {r.work_date: r for r in result.scalars().all()}

        day = request.start_date
        while day <= request.end_date:
            record = existing.get(day)
            if record is None:
                record = AttendanceRecord(employee_id=request.employee_id, work_date=day)
                self.session.add(record)
            record.is_present = False
            record.is_absent = False
            record.on_leave = True
            record.is_late = False
            record.is_undertime = False
            record.is_halfday = False
            record.time_in = None
            record.time_out = None
            record.total_hours = Decimal("0")
            record.overtime_hours = Decimal("0")
            record.night_differential_hours = Decimal("0")
            record.late_minutes = 0
            record.undertime_minutes = 0
            record.payroll_breakdown = None
            record.leave_type_id = request.leave_type_id
            record.leave_request_id = request.leave_request_id
            day += timedelta(days=1)

        await self.session.flush()
        logger.info(
            "Leave request %s approved for employee %s (%s day(s) deducted)",
            request.leave_request_id,
            request.employee_id,
            request.days_deducted,
        )
        return request

    async def reject(self, leave_request_id: int, approved_by: str | None = None) -> LeaveRequest:
        request = await self.get_request(leave_request_id)
        if request.status != "pending":
            raise InvalidTransitionError(request.status, "rejected", "only pending requests can be rejected")
        request.status = "rejected"
        request.approved_by = approved_by
        await self.session.flush()
        return request

    async def cancel(self, leave_request_id: int, today: date | None = None) -> LeaveRequest:
        """Cancel a request that has not started yet.

        An approved request gets back exactly the days it deducted, and only
        the attendance rows it created from today onward are removed.
        """
        today = today or local_today()
        request = await self.get_request(leave_request_id)
        if request.status == "cancelled":
            raise InvalidTransitionError("cancelled", "cancelled", "request is already cancelled")
        if request.start_date <= today:
            raise InvalidTransitionError(
                request.status,
                "cancelled",
                f"leave starting {request.start_date} has already begun",
            )

        if request.status == "approved":
            deducted = Decimal(request.days_deducted or 0)
            if deducted > 0:
                balance = await self._balance(request)
                if balance is not None:
                    balance.balance = Decimal(balance.balance) + deducted
            await self.session.execute(
                delete(AttendanceRecord).where(
                    AttendanceRecord.leave_request_id == request.leave_request_id,
                    AttendanceRecord.work_date >= today,
                )
            )

        request.status = "cancelled"
        await self.session.flush()
        logger.info("Leave request %s cancelled", request.leave_request_id)
        return request
