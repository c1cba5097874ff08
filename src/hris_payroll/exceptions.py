"""Error taxonomy for the payroll pipeline.

Row- and employee-scoped errors are collected and returned next to successes.
Run- and transaction-scoped errors propagate and roll back the operation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal


class PayrollError(Exception):
    """Base class for all payroll domain errors."""


class ValidationError(PayrollError):
    """A raw attendance row (or request field) failed validation."""

    def __init__(self, row_index: int | None, message: str):
        self.row_index = row_index
        self.message = message
        if row_index is None:
            super().__init__(message)
        else:
            super().__init__(f"Row {row_index}: {message}")


class ConflictError(PayrollError):
    """A record already exists for the same natural key."""

    def __init__(
        self,
        employee_id: str,
        reason: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ):
        self.employee_id = employee_id
        self.reason = reason
        self.start_date = start_date
        self.end_date = end_date
        window = ""
        if start_date is not None:
            window = f" ({start_date} to {end_date or start_date})"
        super().__init__(f"Conflict for employee {employee_id}{window}: {reason}")


class ConfigurationMissingError(PayrollError):
    """No configuration row is effective for a required key on a date."""

    def __init__(self, config_type: str, config_key: str, as_of_date: date):
        self.config_type = config_type
        self.config_key = config_key
        self.as_of_date = as_of_date
        super().__init__(
            f"No configuration '{config_type}.{config_key}' effective on {as_of_date}"
        )


class CalculationError(PayrollError):
    """Pay for one employee could not be computed."""

    def __init__(self, employee_id: str, reason: str):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(f"Cannot calculate pay for employee {employee_id}: {reason}")


class LedgerInconsistencyError(PayrollError):
    """A loan payment would break balance or installment invariants."""

    def __init__(
        self,
        deduction_id: int | None,
        reason: str,
        remaining_balance: Decimal | None = None,
    ):
        self.deduction_id = deduction_id
        self.reason = reason
        self.remaining_balance = remaining_balance
        super().__init__(f"Deduction {deduction_id}: {reason}")


class InvalidTransitionError(PayrollError):
    """Raised when an invalid payroll run state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class NotFoundError(PayrollError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, identifier: object):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")
