"""Payroll run state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from hris_payroll.exceptions import InvalidTransitionError


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    COLLECTING = "collecting"
    COMPUTING = "computing"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PayrollRunStateMachine:
    """State machine for one payroll generation.

    Allowed transitions:
    - collecting → computing
    - computing → persisting
    - persisting → completed
    - any non-terminal state → failed
    - completed or failed → cancelled
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollRunStatus.COLLECTING: [PayrollRunStatus.COMPUTING, PayrollRunStatus.FAILED],
        PayrollRunStatus.COMPUTING: [PayrollRunStatus.PERSISTING, PayrollRunStatus.FAILED],
        PayrollRunStatus.PERSISTING: [PayrollRunStatus.COMPLETED, PayrollRunStatus.FAILED],
        PayrollRunStatus.COMPLETED: [PayrollRunStatus.CANCELLED],
        PayrollRunStatus.FAILED: [PayrollRunStatus.CANCELLED],
        PayrollRunStatus.CANCELLED: [],
    }

    TERMINAL = {PayrollRunStatus.COMPLETED, PayrollRunStatus.FAILED, PayrollRunStatus.CANCELLED}

    def __init__(self, status: str = PayrollRunStatus.COLLECTING):
        self.status = PayrollRunStatus(status)
        self.history: list[PayrollRunStatus] = [self.status]

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(str(from_status), str(to_status))

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    def advance(self, to_status: str) -> PayrollRunStatus:
        """Move to the next status, recording it in the history."""
        target = PayrollRunStatus(to_status)
        self.validate_transition(self.status, target)
        self.status = target
        self.history.append(target)
        return target

    def fail(self) -> PayrollRunStatus:
        return self.advance(PayrollRunStatus.FAILED)
