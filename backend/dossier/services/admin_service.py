"""
Admin polling service.

Read-only, token-scoped views of a submission. Each call returns the current
snapshot and never waits for the analysis; pollers choose their own cadence.
"""

from ..models import AdminView, StatusSnapshot, SubmissionRecord
from .status_protocol import SubmissionStatus, client_message
from .submission_store import SubmissionStore


def status_snapshot(record: SubmissionRecord) -> StatusSnapshot:
    """Lightweight view; the fit score appears only once completed."""
    fit_score = None
    if record.status == SubmissionStatus.COMPLETED and record.analysis is not None:
        fit_score = record.analysis.estimated_fit_score
    return StatusSnapshot(
        status=record.status,
        estimated_fit_score=fit_score,
        message=client_message(record.status),
    )


def admin_view(record: SubmissionRecord) -> AdminView:
    return AdminView(
        submission=record.submission.to_wire(),
        analysis=record.analysis if record.status == SubmissionStatus.COMPLETED else None,
        status=record.status,
        created_at=record.created_at,
        updated_at=record.updated_at,
        message=client_message(record.status),
    )


class AdminService:
    """Status and result lookups by access token."""

    def __init__(self, store: SubmissionStore):
        self.store = store

    async def get_record(self, token: str) -> SubmissionRecord:
        """Raises SubmissionNotFound for an unknown token."""
        return await self.store.get_by_token(token)

    async def get_status(self, token: str) -> StatusSnapshot:
        return status_snapshot(await self.store.get_by_token(token))

    async def get_full(self, token: str) -> AdminView:
        return admin_view(await self.store.get_by_token(token))
