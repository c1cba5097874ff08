"""API routes."""

from hris_payroll.api.routes.attendance import router as attendance_router
from hris_payroll.api.routes.configuration import router as configuration_router
from hris_payroll.api.routes.health import router as health_router
from hris_payroll.api.routes.leave import router as leave_router
from hris_payroll.api.routes.loans import router as loans_router
from hris_payroll.api.routes.payroll import router as payroll_router

__all__ = [
    "attendance_router",
    "configuration_router",
    "health_router",
    "leave_router",
    "loans_router",
    "payroll_router",
]
