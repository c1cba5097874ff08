"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hris_payroll import __version__
from hris_payroll.api.routes import (
    attendance_router,
    configuration_router,
    health_router,
    leave_router,
    loans_router,
    payroll_router,
)
from hris_payroll.config import get_settings
from hris_payroll.database import dispose_db, init_db
from hris_payroll.exceptions import (
    CalculationError,
    ConfigurationMissingError,
    ConflictError,
    InvalidTransitionError,
    LedgerInconsistencyError,
    NotFoundError,
    PayrollError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[PayrollError], tuple[int, str]] = {
    NotFoundError: (status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    ConflictError: (status.HTTP_409_CONFLICT, "CONFLICT"),
    ValidationError: (status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR"),
    LedgerInconsistencyError: (status.HTTP_400_BAD_REQUEST, "LEDGER_INCONSISTENCY"),
    InvalidTransitionError: (status.HTTP_400_BAD_REQUEST, "INVALID_TRANSITION"),
    ConfigurationMissingError: (
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "CONFIGURATION_MISSING",
    ),
    CalculationError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "CALCULATION_ERROR"),
}


def error_context(exc: PayrollError) -> dict:
    """Structured fields of a domain error (row, employee, key, ...)."""
    return {
        key: value if isinstance(value, (int, str, bool)) or value is None else str(value)
        for key, value in vars(exc).items()
        if not key.startswith("_")
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="HRIS Payroll API",
        description="Attendance, loans and payroll generation",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PayrollError)
    async def payroll_exception_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map domain errors to status codes with their structured fields."""
        status_code, code = status.HTTP_400_BAD_REQUEST, "PAYROLL_ERROR"
        for cls in type(exc).__mro__:
            if cls in ERROR_STATUS:
                status_code, code = ERROR_STATUS[cls]
                break
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": code, "context": error_context(exc)},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    app.include_router(health_router)
    app.include_router(configuration_router, prefix="/api/v1")
    app.include_router(attendance_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(loans_router, prefix="/api/v1")
    app.include_router(leave_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
