"""Baseline Philippine payroll configuration used to seed a new database."""

from __future__ import annotations

from datetime import date
from typing import Any

from hris_payroll.calculators.rate_config import ConfigEntry

DEFAULT_EFFECTIVE_DATE = date(2025, 1, 1)


def sss_contribution_table() -> list[dict[str, Any]]:
    """Monthly salary brackets in 500-peso steps with employee/employer shares."""
    brackets: list[dict[str, Any]] = [
        {"min": "0", "max": "3249.99", "employee": "140", "employer": "325"},
    ]
    employee = 140.0
    employer = 325.0
    lower = 3250
    while lower < 20250:
        employee += 22.5
        employer += 52.5
        brackets.append({
            "min": str(lower),
            "max": f"{lower + 499.99:.2f}",
            "employee": f"{employee:g}",
            "employer": f"{employer:g}",
        })
        lower += 500
    brackets.append({"min": "20250", "max": None, "employee": "930", "employer": "2170"})
    return brackets


def withholding_tax_brackets() -> list[dict[str, str]]:
    """Annual graduated income tax schedule; the first 250,000 is exempt."""
    return [
        {"over": "0", "rate": "0", "base_tax": "0"},
        {"over": "250000", "rate": "0.15", "base_tax": "0"},
        {"over": "400000", "rate": "0.20", "base_tax": "22500"},
        {"over": "800000", "rate": "0.25", "base_tax": "102500"},
        {"over": "2000000", "rate": "0.30", "base_tax": "402500"},
        {"over": "8000000", "rate": "0.35", "base_tax": "2202500"},
    ]


_DEFAULTS: dict[str, dict[str, Any]] = {
    "payroll": {
        "standard_daily_hours": "8",
        "standard_working_days": "22",
        "pay_frequency": "semi-monthly",
        "monthly_conversion": {
            "weekly": "4.33",
            "bi-weekly": "2.167",
            "semi-monthly": "2",
            "monthly": "1",
        },
        "contribution_employment_types": ["Regular"],
        "rounding": {"method": "nearest", "increment": "0.01"},
        "late_deduction_enabled": False,
        "undertime_deduction_enabled": False,
    },
    "premium": {
        "regular": "1.00",
        "rest_day": "1.30",
        "special_holiday": "1.30",
        "regular_holiday": "2.00",
        "special_holiday_rest_day": "1.69",
        "regular_holiday_rest_day": "2.60",
        "overtime_regular_day": "1.25",
        "overtime_premium_day": "1.30",
        "night_diff_rate": "0.10",
        "regular_holiday_not_worked": "1.00",
    },
    "sss": {
        "contribution_table": sss_contribution_table(),
    },
    "philhealth": {
        "premium_rate": "0.055",
        "employee_share": "0.5",
        "salary_floor": "10000",
        "salary_ceiling": "100000",
    },
    "pagibig": {
        "employee_rate_low": "0.01",
        "employee_rate_high": "0.02",
        "low_salary_threshold": "1500",
        "employer_rate": "0.02",
        "max_employee_contribution": "200",
        "max_employer_contribution": "200",
    },
    "withholding_tax": {
        "annual_brackets": withholding_tax_brackets(),
    },
    "thirteenth_month": {
        "tax_exempt_limit": "90000",
    },
}


def default_configuration(effective_date: date = DEFAULT_EFFECTIVE_DATE) -> list[ConfigEntry]:
    """Every configuration key the pipeline needs, effective from a date."""
    return [
        ConfigEntry(
            config_type=config_type,
            config_key=config_key,
            value=value,
            effective_date=effective_date,
            description=f"Baseline {config_type} {config_key.replace('_', ' ')}",
        )
        for config_type, values in _DEFAULTS.items()
        for config_key, value in values.items()
    ]
