"""Effective-dated rate configuration lookup."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.exceptions import ConfigurationMissingError
from hris_payroll.models import RateConfiguration

_MISSING = object()


@dataclass(frozen=True)
class ConfigEntry:
    """One configuration value and the window it is valid in.

    The window is [effective_date, expiry_date); a None expiry is open ended.
    """

    config_type: str
    config_key: str
    value: Any
    effective_date: date
    expiry_date: date | None = None
    description: str | None = None

    def is_effective_on(self, as_of_date: date) -> bool:
        if self.effective_date > as_of_date:
            return False
        if self.expiry_date is not None and self.expiry_date <= as_of_date:
            return False
        return True

    @classmethod
    def from_model(cls, row: RateConfiguration) -> ConfigEntry:
        return cls(
            config_type=row.config_type,
            config_key=row.config_key,
            value=row.value,
            effective_date=row.effective_date,
            expiry_date=row.expiry_date,
            description=row.description,
        )


class RateConfigurationStore:
    """Resolves (type, key, as-of date) to a configuration value.

    Resolution rule: among rows whose window contains the date, the one with
    the latest effective_date wins. No row means ConfigurationMissingError;
    values are never defaulted here.
    """

    def __init__(self, entries: Iterable[ConfigEntry] = ()):
        self._entries: dict[tuple[str, str], list[ConfigEntry]] = defaultdict(list)
        for entry in entries:
            self.add(entry)

    @classmethod
    async def load(cls, session: AsyncSession) -> RateConfigurationStore:
        """Load every active configuration row from the database."""
        result = await session.execute(
            select(RateConfiguration).where(RateConfiguration.is_active.is_(True))
        )
        return cls(ConfigEntry.from_model(row) for row in result.scalars().all())

    def add(self, entry: ConfigEntry) -> None:
        rows = self._entries[(entry.config_type, entry.config_key)]
        rows.append(entry)
        rows.sort(key=lambda e: e.effective_date, reverse=True)

    def find(self, config_type: str, config_key: str, as_of_date: date) -> ConfigEntry | None:
        """Return the entry effective on a date, or None."""
        for entry in self._entries.get((config_type, config_key), ()):
            if entry.is_effective_on(as_of_date):
                return entry
        return None

    def get(self, config_type: str, config_key: str, as_of_date: date) -> Any:
        """Return the value effective on a date.

        Raises:
            ConfigurationMissingError: If no row's window contains the date
        """
        entry = self.find(config_type, config_key, as_of_date)
        if entry is None:
            raise ConfigurationMissingError(config_type, config_key, as_of_date)
        return entry.value

    def active_as_of(self, as_of_date: date) -> dict[str, dict[str, ConfigEntry]]:
        """Group every entry effective on a date by type then key."""
        grouped: dict[str, dict[str, ConfigEntry]] = defaultdict(dict)
        for (config_type, config_key) in sorted(self._entries):
            entry = self.find(config_type, config_key, as_of_date)
            if entry is not None:
                grouped[config_type][config_key] = entry
        return dict(grouped)

    def snapshot(self, as_of_date: date) -> ConfigSnapshot:
        return ConfigSnapshot(self, as_of_date)


class ConfigSnapshot:
    """Read view of the store pinned to one as-of date."""

    def __init__(self, store: RateConfigurationStore, as_of_date: date):
        self.store = store
        self.as_of_date = as_of_date

    def get(self, config_type: str, config_key: str, default: Any = _MISSING) -> Any:
        entry = self.store.find(config_type, config_key, self.as_of_date)
        if entry is not None:
            return entry.value
        if default is _MISSING:
            raise ConfigurationMissingError(config_type, config_key, self.as_of_date)
        return default

    def decimal(self, config_type: str, config_key: str, default: Any = _MISSING) -> Decimal:
        value = self.get(config_type, config_key, default)
        return Decimal(str(value))

    def has(self, config_type: str, config_key: str) -> bool:
        return self.store.find(config_type, config_key, self.as_of_date) is not None
