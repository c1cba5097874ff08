"""Effective-dated rate configuration model."""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, Date, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hris_payroll.models.base import Base, TimestampMixin


class RateConfiguration(Base, TimestampMixin):
    """A configuration value valid within [effective_date, expiry_date).

    value is stored as JSON so scalar rates and bracket tables share one shape.
    """

    __tablename__ = "rate_configuration"

    config_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    config_type: Mapped[str] = mapped_column(String, nullable=False)
    config_key: Mapped[str] = mapped_column(String, nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint(
            "config_type", "config_key", "effective_date",
            name="rate_configuration_type_key_date_unique",
        ),
        CheckConstraint(
            "expiry_date IS NULL OR expiry_date > effective_date",
            name="rate_configuration_window_check",
        ),
    )

    def is_effective_on(self, as_of_date: date) -> bool:
        """Check if the row's window contains a date (expiry is exclusive)."""
        if not self.is_active or self.effective_date > as_of_date:
            return False
        if self.expiry_date is not None and self.expiry_date <= as_of_date:
            return False
        return True
