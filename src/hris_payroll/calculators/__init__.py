"""Pure payroll calculation modules."""

from hris_payroll.calculators.aggregator import AttendanceAggregator
from hris_payroll.calculators.attendance_validator import AttendanceRecordValidator
from hris_payroll.calculators.daily_breakdown import WorkSchedule, compute_daily_breakdown
from hris_payroll.calculators.earnings import EarningsEngine, PremiumPolicy
from hris_payroll.calculators.rate_config import ConfigSnapshot, RateConfigurationStore
from hris_payroll.calculators.statutory import StatutoryDeductionEngine

__all__ = [
    "AttendanceAggregator",
    "AttendanceRecordValidator",
    "ConfigSnapshot",
    "EarningsEngine",
    "PremiumPolicy",
    "RateConfigurationStore",
    "StatutoryDeductionEngine",
    "WorkSchedule",
    "compute_daily_breakdown",
]
