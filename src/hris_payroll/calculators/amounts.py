"""Rounding helpers for money and hours.

Internal computation keeps full Decimal precision; amounts are rounded to
cents once per component, hours to 2 places.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Any, Callable, Mapping

CENTS = Decimal("0.01")
HOURS_PRECISION = Decimal("0.01")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_hours(hours: Decimal) -> Decimal:
    """Round hours to 2 decimal places."""
    return hours.quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


def round_payroll_hours(hours: Decimal) -> Decimal:
    """Round to the payroll increment.

    Up to 15 minutes past the hour rounds down, up to 45 rounds to the half
    hour, anything later rounds up to the next hour.
    """
    if hours <= 0:
        return Decimal("0")
    whole = hours.to_integral_value(rounding=ROUND_FLOOR)
    minutes = (hours - whole) * 60
    if minutes <= 15:
        return whole
    if minutes <= 45:
        return whole + Decimal("0.5")
    return whole + 1


def apply_rounding(amount: Decimal, method: str = "nearest", increment: Decimal = CENTS) -> Decimal:
    """Round amount to a configured increment (nearest, up or down)."""
    if increment <= 0:
        raise ValueError(f"Rounding increment must be positive, got {increment}")
    units = amount / increment
    if method == "up":
        units = units.to_integral_value(rounding=ROUND_CEILING)
    elif method == "down":
        units = units.to_integral_value(rounding=ROUND_FLOOR)
    elif method == "nearest":
        units = units.to_integral_value(rounding=ROUND_HALF_UP)
    else:
        raise ValueError(f"Unknown rounding method: {method}")
    return round_to_cents(units * increment)


def rounder(rule: Mapping[str, Any] | None) -> Callable[[Decimal], Decimal]:
    """Build a rounding function from a `payroll.rounding` config value."""
    if not rule:
        return round_to_cents
    method = rule.get("method", "nearest")
    increment = Decimal(str(rule.get("increment", CENTS)))
    return lambda amount: apply_rounding(amount, method, increment)
