"""
Tests for the submission lifecycle rules.
"""

import pytest

from dossier.services.status_protocol import (
    FAILED_MESSAGE,
    InvalidTransition,
    SubmissionStatus,
    can_transition,
    client_message,
    is_active_status,
    is_terminal_status,
    validate_transition,
)

PENDING = SubmissionStatus.PENDING
PROCESSING = SubmissionStatus.PROCESSING
COMPLETED = SubmissionStatus.COMPLETED
FAILED = SubmissionStatus.FAILED


class TestTransitions:

    @pytest.mark.parametrize("current,target", [
        (PENDING, PROCESSING),
        (PROCESSING, COMPLETED),
        (PROCESSING, FAILED),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (PENDING, COMPLETED),
        (PENDING, FAILED),
        (PENDING, PENDING),
        (PROCESSING, PENDING),
        (PROCESSING, PROCESSING),
        (COMPLETED, FAILED),
        (COMPLETED, PROCESSING),
        (FAILED, PROCESSING),
        (FAILED, COMPLETED),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidTransition) as exc_info:
            validate_transition(current, target)
        assert exc_info.value.current == current
        assert exc_info.value.requested == target

    def test_completed_requires_analysis(self):
        with pytest.raises(InvalidTransition, match="requires an analysis"):
            validate_transition(PROCESSING, COMPLETED)
        validate_transition(PROCESSING, COMPLETED, analysis=object())

    def test_only_completed_carries_analysis(self):
        with pytest.raises(InvalidTransition, match="only completed"):
            validate_transition(PROCESSING, FAILED, analysis=object())
        with pytest.raises(InvalidTransition):
            validate_transition(PENDING, PROCESSING, analysis=object())


class TestStatusHelpers:

    def test_terminal_statuses(self):
        assert is_terminal_status(COMPLETED)
        assert is_terminal_status(FAILED)
        assert not is_terminal_status(PENDING)
        assert not is_terminal_status(PROCESSING)

    def test_active_statuses(self):
        assert is_active_status(PENDING)
        assert is_active_status(PROCESSING)
        assert not is_active_status(COMPLETED)

    def test_client_message_only_for_failed(self):
        assert client_message(FAILED) == FAILED_MESSAGE
        for status in (PENDING, PROCESSING, COMPLETED):
            assert client_message(status) is None

    def test_wire_values(self):
        assert [s.value for s in SubmissionStatus] == ["pending", "processing", "completed", "failed"]
