"""
Analysis Worker.

Drives one submission from `pending` to a terminal status:

1. Load the record; anything other than `pending` is a no-op, so a redelivered
   or duplicated job never analyses (and bills) the same submission twice.
2. Claim it by moving it to `processing`. The store's check-and-set makes
   this the single point where concurrent workers are decided.
3. Call the external analysis exactly once, bounded by `analysis_timeout`.
4. Record `completed` with the analysis, or `failed` without one.

Provider errors are logged and absorbed into the `failed` status; they never
reach the poller. Only the final store write is retried, never the analysis
call. If `completed` cannot be written the worker falls back to `failed`.

Usage:
    worker = AnalysisWorker(store, llm_service)
    final_status = await worker.process(submission_id)
"""

import asyncio
import logging
from typing import Optional

from ..config import settings
from ..models import AnalysisResult
from .status_protocol import InvalidTransition, SubmissionStatus
from .submission_store import StoreError, SubmissionNotFound, SubmissionStore

logger = logging.getLogger("dossier.worker")


class AnalysisWorker:
    """
    Runs the external analysis for stored submissions.

    Attributes:
        store: Submission store holding the records
        analyzer: Object with `async analyze(submission) -> AnalysisResult`
        timeout: Upper bound (seconds) on one analysis call
        retry_delay: Base delay (seconds) between final-write attempts
    """

    # Attempts per final status write
    FINISH_ATTEMPTS = 3

    def __init__(
        self,
        store: SubmissionStore,
        analyzer,
        timeout: Optional[float] = None,
        retry_delay: float = 0.5,
    ):
        self.store = store
        self.analyzer = analyzer
        self.timeout = timeout if timeout is not None else settings.analysis_timeout
        self.retry_delay = retry_delay

    async def process(self, submission_id: str) -> Optional[SubmissionStatus]:
        """
        Process one submission.

        Returns:
            The terminal status written by this call, or None when the call
            was a no-op (unknown id, already claimed or finished).

        Raises:
            StoreError: Not even `failed` could be written after retries
        """
        try:
            record = await self.store.get_by_id(submission_id)
        except SubmissionNotFound:
            logger.warning(f"Submission {submission_id} not found; nothing to process")
            return None

        if record.status != SubmissionStatus.PENDING:
            logger.info(f"Submission {submission_id} is {record.status.value}; skipping duplicate invocation")
            return None

        try:
            await self.store.update_status(submission_id, SubmissionStatus.PROCESSING)
        except InvalidTransition:
            logger.info(f"Submission {submission_id} was claimed by another worker")
            return None

        try:
            analysis = await asyncio.wait_for(self.analyzer.analyze(record.submission), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Analysis of submission {submission_id} timed out after {self.timeout}s")
            return await self._finish(submission_id, SubmissionStatus.FAILED)
        except asyncio.CancelledError:
            logger.warning(f"Analysis of submission {submission_id} was cancelled")
            await self._finish(submission_id, SubmissionStatus.FAILED)
            raise
        except Exception as e:
            logger.error(f"Analysis of submission {submission_id} failed: {e}")
            return await self._finish(submission_id, SubmissionStatus.FAILED)

        if not isinstance(analysis, AnalysisResult):
            logger.error(f"Analysis of submission {submission_id} returned {type(analysis).__name__}, not a result")
            return await self._finish(submission_id, SubmissionStatus.FAILED)

        return await self._finish(submission_id, SubmissionStatus.COMPLETED, analysis)

    async def _finish(self, submission_id: str, status: SubmissionStatus, analysis=None) -> Optional[SubmissionStatus]:
        try:
            await self._write_final(submission_id, status, analysis)
        except InvalidTransition as e:
            logger.error(f"Could not finish submission {submission_id}: {e}")
            return None
        except StoreError:
            if status == SubmissionStatus.FAILED:
                logger.exception(f"Could not record any final status for submission {submission_id}")
                raise
            logger.error(f"Could not record {status.value} for submission {submission_id}; marking it failed")
            return await self._finish(submission_id, SubmissionStatus.FAILED)

        logger.info(f"Submission {submission_id} finished as {status.value}")
        return status

    async def _write_final(self, submission_id: str, status: SubmissionStatus, analysis=None) -> None:
        for attempt in range(1, self.FINISH_ATTEMPTS + 1):
            try:
                await self.store.update_status(submission_id, status, analysis)
                return
            except StoreError as e:
                if attempt == self.FINISH_ATTEMPTS:
                    raise
                logger.warning(
                    f"Writing {status.value} for submission {submission_id} failed "
                    f"(attempt {attempt}/{self.FINISH_ATTEMPTS}): {e}"
                )
                await asyncio.sleep(self.retry_delay * attempt)
