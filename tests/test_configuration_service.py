"""Tests for configuration persistence."""

from datetime import date

import pytest

from hris_payroll.calculators.defaults import default_configuration
from hris_payroll.calculators.rate_config import ConfigEntry
from hris_payroll.exceptions import ConfigurationMissingError, ValidationError
from hris_payroll.services.configuration_service import ConfigurationService


class TestConfigurationService:
    """Test upsert identity and effective-date reads."""

    async def test_upsert_replaces_same_identity(self, session):
        service = ConfigurationService(session)

        first = await service.upsert("premium", "night_diff_rate", "0.10", date(2025, 1, 1))
        second = await service.upsert(
            "premium", "night_diff_rate", "0.12", date(2025, 1, 1), description="Revised"
        )

        assert first.config_id == second.config_id
        assert second.value == "0.12"
        assert second.description == "Revised"

    async def test_new_effective_date_is_new_row(self, session):
        service = ConfigurationService(session)
        await service.upsert("premium", "night_diff_rate", "0.10", date(2025, 1, 1))
        await service.upsert("premium", "night_diff_rate", "0.12", date(2025, 7, 1))

        store = await service.load_store()

        assert store.get("premium", "night_diff_rate", date(2025, 6, 30)) == "0.10"
        assert store.get("premium", "night_diff_rate", date(2025, 7, 1)) == "0.12"

    async def test_expiry_must_follow_effective_date(self, session):
        with pytest.raises(ValidationError):
            await ConfigurationService(session).upsert(
                "premium", "night_diff_rate", "0.10", date(2025, 1, 1), date(2025, 1, 1)
            )

    async def test_bulk_upsert(self, session):
        rows = await ConfigurationService(session).bulk_upsert([
            ConfigEntry("payroll", "standard_daily_hours", "8", date(2025, 1, 1)),
            ConfigEntry("payroll", "standard_working_days", "22", date(2025, 1, 1)),
        ])
        assert [r.config_key for r in rows] == ["standard_daily_hours", "standard_working_days"]

    async def test_seed_defaults_and_active_view(self, session):
        service = ConfigurationService(session)

        rows = await service.seed_defaults()
        grouped = await service.active_as_of(date(2025, 3, 15))

        assert len(rows) == len(default_configuration())
        assert grouped["payroll"]["standard_daily_hours"].value == "8"
        assert await service.active_as_of(date(2024, 12, 31)) == {}

    async def test_deactivated_row_is_ignored(self, session):
        service = ConfigurationService(session)
        row = await service.upsert("premium", "night_diff_rate", "0.10", date(2025, 1, 1))

        await service.deactivate(row.config_id)
        store = await service.load_store()

        with pytest.raises(ConfigurationMissingError):
            store.get("premium", "night_diff_rate", date(2025, 3, 1))
