"""Health, readiness and liveness checks."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from hris_payroll import __version__
from hris_payroll.api.dependencies import DbSession
from hris_payroll.config import get_settings
from hris_payroll.models import RateConfiguration

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    configuration_entries: int | None = None
    version: str
    engine_version: str


async def _count_configuration(db: DbSession) -> int | None:
    """Active rate configuration rows, or None when the database is unreachable."""
    try:
        result = await db.execute(
            select(func.count(RateConfiguration.config_id)).where(
                RateConfiguration.is_active.is_(True)
            )
        )
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return None
    return result.scalar_one()


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Database reachability and whether rate configuration has been seeded."""
    entries = await _count_configuration(db)
    if entries is None:
        overall = "degraded"
    elif entries == 0:
        overall = "unconfigured"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc),
        database="unhealthy" if entries is None else "healthy",
        configuration_entries=entries,
        version=__version__,
        engine_version=get_settings().engine_version,
    )


@router.get("/ready")
async def readiness_check(db: DbSession):
    """Ready once the database answers and payroll can find its rate tables."""
    entries = await _count_configuration(db)
    if not entries:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "configuration_entries": entries},
        )
    return {"status": "ready", "configuration_entries": entries}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
