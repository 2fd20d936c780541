"""
Celery tasks wrapping the analysis worker.
"""
import asyncio
import logging
from typing import Optional

from celery import shared_task

from .services.dispatcher import ANALYZE_TASK_NAME

logger = logging.getLogger("dossier.tasks")


async def _process(submission_id: str) -> Optional[str]:
    from .services.analysis_worker import AnalysisWorker
    from .services.database_service import DatabaseService
    from .services.llm_service import LLMService
    from .services.submission_store import SqlSubmissionStore

    # Engine and HTTP client are bound to this task's event loop
    db = DatabaseService()
    llm = LLMService()
    try:
        worker = AnalysisWorker(SqlSubmissionStore(db), llm)
        status = await worker.process(submission_id)
        return status.value if status else None
    finally:
        await llm.close()
        await db.close()


@shared_task(name=ANALYZE_TASK_NAME)
def analyze_submission_task(submission_id: str) -> Optional[str]:
    """
    Analyse one submission. Not retried: a failed analysis is terminal.

    Returns:
        The terminal status written, or None for a no-op.
    """
    logger.info(f"Celery analysis task started for submission {submission_id}")
    return asyncio.run(_process(submission_id))
