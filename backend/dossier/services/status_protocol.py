"""
Job Status Protocol for intake submissions.

Single source of truth for the submission lifecycle:

    pending -> processing -> completed
    pending -> processing -> failed

`completed` and `failed` are terminal. Every status write in the stores goes
through `validate_transition`, so a request that is not listed above is
rejected before anything is persisted.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class SubmissionStatus(str, Enum):
    """Lifecycle states of a submission record."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class InvalidTransition(Exception):
    """Raised when a requested status change is not allowed."""

    def __init__(self, current: Optional[SubmissionStatus], requested: SubmissionStatus, reason: str = ""):
        self.current = current
        self.requested = requested
        self.reason = reason
        current_label = current.value if current else "unknown"
        message = f"Cannot move submission from '{current_label}' to '{requested.value}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# Allowed source states for each target state
ALLOWED_SOURCES: Dict[SubmissionStatus, FrozenSet[SubmissionStatus]] = {
    SubmissionStatus.PENDING: frozenset(),
    SubmissionStatus.PROCESSING: frozenset({SubmissionStatus.PENDING}),
    SubmissionStatus.COMPLETED: frozenset({SubmissionStatus.PROCESSING}),
    SubmissionStatus.FAILED: frozenset({SubmissionStatus.PROCESSING}),
}

TERMINAL_STATUSES: FrozenSet[SubmissionStatus] = frozenset(
    {SubmissionStatus.COMPLETED, SubmissionStatus.FAILED}
)

FAILED_MESSAGE = "Analysis failed. Please contact support if this persists."


def allowed_sources(target: SubmissionStatus) -> FrozenSet[SubmissionStatus]:
    """States from which `target` may be entered."""
    return ALLOWED_SOURCES[target]


def can_transition(current: SubmissionStatus, target: SubmissionStatus) -> bool:
    return current in ALLOWED_SOURCES[target]


def validate_transition(
    current: SubmissionStatus,
    target: SubmissionStatus,
    analysis: Optional[Any] = None,
) -> None:
    """
    Check a requested status change and its payload.

    The analysis payload is required when entering `completed` and forbidden
    for every other target.

    Raises:
        InvalidTransition: If the change or its payload is not allowed
    """
    if not can_transition(current, target):
        raise InvalidTransition(current, target)
    if target == SubmissionStatus.COMPLETED and analysis is None:
        raise InvalidTransition(current, target, "completed requires an analysis")
    if target != SubmissionStatus.COMPLETED and analysis is not None:
        raise InvalidTransition(current, target, "only completed may carry an analysis")


def is_terminal_status(status: SubmissionStatus) -> bool:
    """Check if status represents a terminal state."""
    return status in TERMINAL_STATUSES


def is_active_status(status: SubmissionStatus) -> bool:
    """Check if status represents a queued or in-progress analysis."""
    return status in (SubmissionStatus.PENDING, SubmissionStatus.PROCESSING)


def client_message(status: SubmissionStatus) -> Optional[str]:
    """Message shown to pollers; only failures carry one and it is always generic."""
    if status == SubmissionStatus.FAILED:
        return FAILED_MESSAGE
    return None
