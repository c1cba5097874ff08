"""Rate configuration endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query, status

from hris_payroll.api.dependencies import DbSession, Today
from hris_payroll.api.schemas import (
    ActiveConfigResponse,
    ConfigBulkUpsert,
    ConfigEntryIn,
    ConfigEntryResponse,
    ConfigValueResponse,
    ErrorResponse,
)
from hris_payroll.calculators.rate_config import ConfigEntry
from hris_payroll.services.configuration_service import ConfigurationService

router = APIRouter(prefix="/configuration", tags=["configuration"])


@router.get("", response_model=ActiveConfigResponse)
async def get_active_configuration(
    db: DbSession,
    today: Today,
    as_of: Annotated[date | None, Query(alias="as_of_date")] = None,
) -> ActiveConfigResponse:
    """Configuration in force on a date, grouped by type then key."""
    as_of_date = as_of or today
    grouped = await ConfigurationService(db).active_as_of(as_of_date)
    return ActiveConfigResponse(
        as_of_date=as_of_date,
        configuration={
            config_type: {
                key: ConfigValueResponse.model_validate(entry) for key, entry in entries.items()
            }
            for config_type, entries in grouped.items()
        },
    )


@router.put(
    "",
    response_model=ConfigEntryResponse,
    responses={400: {"model": ErrorResponse}},
)
async def upsert_configuration(db: DbSession, payload: ConfigEntryIn) -> ConfigEntryResponse:
    """Create or replace one effective-dated value."""
    row = await ConfigurationService(db).upsert(**payload.model_dump())
    await db.commit()
    return ConfigEntryResponse.model_validate(row)


@router.put(
    "/bulk",
    response_model=list[ConfigEntryResponse],
    responses={400: {"model": ErrorResponse}},
)
async def bulk_upsert_configuration(
    db: DbSession, payload: ConfigBulkUpsert
) -> list[ConfigEntryResponse]:
    """Upsert several values atomically."""
    rows = await ConfigurationService(db).bulk_upsert(
        ConfigEntry(**entry.model_dump()) for entry in payload.entries
    )
    await db.commit()
    return [ConfigEntryResponse.model_validate(row) for row in rows]


@router.post(
    "/defaults",
    response_model=list[ConfigEntryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def seed_default_configuration(
    db: DbSession,
    effective_date: date | None = None,
) -> list[ConfigEntryResponse]:
    """Write the baseline statutory and premium tables."""
    rows = await ConfigurationService(db).seed_defaults(effective_date)
    await db.commit()
    return [ConfigEntryResponse.model_validate(row) for row in rows]
