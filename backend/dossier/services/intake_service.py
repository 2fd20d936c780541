"""
Intake Service.

Accepts a completed questionnaire, stores it as a pending record and hands it
to the dispatcher. The caller gets the access token back immediately; the
analysis happens out-of-band.
"""

import logging
from typing import List, Optional, Sequence

from pydantic.alias_generators import to_camel

from ..config import settings
from ..models import IntakeSubmission, SubmissionReceipt
from .dispatcher import AnalysisDispatcher
from .submission_store import SubmissionStore

logger = logging.getLogger("dossier.intake")

# Fields the wizard requires before it lets the prospect continue
REQUIRED_FIELDS = ("first_name", "email")


class SubmissionValidationError(ValueError):
    """Mandatory intake fields are missing or blank."""

    def __init__(self, missing_fields: Sequence[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required fields: {', '.join(self.missing_fields)}")


def missing_required_fields(submission: IntakeSubmission) -> List[str]:
    """camelCase names of required fields that are empty or whitespace."""
    missing = []
    for name in REQUIRED_FIELDS:
        value = getattr(submission, name)
        if value is None or not str(value).strip():
            missing.append(to_camel(name))
    return missing


class IntakeService:
    """
    Creates submission records and schedules their analysis.

    Attributes:
        store: Submission store
        dispatcher: Scheduler for the analysis worker
    """

    def __init__(self, store: SubmissionStore, dispatcher: AnalysisDispatcher, base_url: Optional[str] = None):
        self.store = store
        self.dispatcher = dispatcher
        self.base_url = base_url

    def _admin_url(self, token: str) -> str:
        if self.base_url:
            return f"{self.base_url.rstrip('/')}/admin/{token}"
        return settings.admin_url(token)

    async def submit(self, submission: IntakeSubmission) -> SubmissionReceipt:
        """
        Validate, persist and schedule one submission.

        Raises:
            SubmissionValidationError: Mandatory fields missing; nothing stored
            StoreError: The record could not be persisted
        """
        missing = missing_required_fields(submission)
        if missing:
            logger.info(f"Rejected submission missing {missing}")
            raise SubmissionValidationError(missing)

        record = await self.store.create(submission)

        try:
            self.dispatcher.schedule(record.id)
        except Exception:
            # The record stays pending and is picked up by recovery
            logger.exception(f"Failed to dispatch analysis for submission {record.id}")

        return SubmissionReceipt(id=record.id, token=record.token, admin_url=self._admin_url(record.token))
