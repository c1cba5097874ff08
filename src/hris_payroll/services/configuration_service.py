"""Read and write effective-dated rate configuration."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.defaults import default_configuration
from hris_payroll.calculators.rate_config import ConfigEntry, RateConfigurationStore
from hris_payroll.exceptions import ValidationError
from hris_payroll.models import RateConfiguration

logger = logging.getLogger(__name__)


class ConfigurationService:
    """Upserts configuration rows and reads the set active on a date.

    A row is identified by (config_type, config_key, effective_date);
    writing the same identity again replaces its value and window.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_store(self) -> RateConfigurationStore:
        return await RateConfigurationStore.load(self.session)

    async def active_as_of(self, as_of_date: date) -> dict[str, dict[str, ConfigEntry]]:
        """Configuration effective on a date, grouped by type then key."""
        store = await self.load_store()
        return store.active_as_of(as_of_date)

    async def upsert(
        self,
        config_type: str,
        config_key: str,
        value: Any,
        effective_date: date,
        expiry_date: date | None = None,
        description: str | None = None,
    ) -> RateConfiguration:
        if not config_type or not config_key:
            raise ValidationError(None, "config_type and config_key are required")
        if expiry_date is not None and expiry_date <= effective_date:
            raise ValidationError(
                None,
                f"expiry_date {expiry_date} must be after effective_date {effective_date}",
            )

        result = await self.session.execute(
            select(RateConfiguration).where(
                RateConfiguration.config_type == config_type,
                RateConfiguration.config_key == config_key,
                RateConfiguration.effective_date == effective_date,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = RateConfiguration(
                config_type=config_type,
                config_key=config_key,
                effective_date=effective_date,
                value=value,
                expiry_date=expiry_date,
                description=description,
                is_active=True,
            )
            self.session.add(row)
        else:
            row.value = value
            row.expiry_date = expiry_date
            row.is_active = True
            if description is not None:
                row.description = description

        await self.session.flush()
        logger.info(
            "Configuration %s.%s effective %s saved",
            config_type,
            config_key,
            effective_date,
        )
        return row

    async def bulk_upsert(self, entries: Iterable[ConfigEntry]) -> list[RateConfiguration]:
        """Upsert many rows; the caller's transaction makes them all-or-nothing."""
        rows = []
        for entry in entries:
            rows.append(
                await self.upsert(
                    entry.config_type,
                    entry.config_key,
                    entry.value,
                    entry.effective_date,
                    entry.expiry_date,
                    entry.description,
                )
            )
        return rows

    async def deactivate(self, config_id: int) -> RateConfiguration | None:
        row = await self.session.get(RateConfiguration, config_id)
        if row is not None:
            row.is_active = False
            await self.session.flush()
        return row

    async def seed_defaults(self, effective_date: date | None = None) -> list[RateConfiguration]:
        """Write the baseline statutory tables."""
        if effective_date is None:
            entries = default_configuration()
        else:
            entries = default_configuration(effective_date)
        return await self.bulk_upsert(entries)
