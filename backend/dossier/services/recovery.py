"""
Recovery of submissions whose analysis was never started.

A record stays `pending` if the process died between intake and dispatch, or
if the dispatch itself failed. Re-dispatching is always safe because the
worker ignores records that are no longer pending. Records stuck in
`processing` are only reported: re-running them could repeat a paid call.
"""

import logging
from typing import Dict

from .dispatcher import AnalysisDispatcher
from .status_protocol import SubmissionStatus
from .submission_store import SubmissionStore

logger = logging.getLogger("dossier.recovery")


async def requeue_pending(store: SubmissionStore, dispatcher: AnalysisDispatcher, limit: int = 200) -> Dict[str, int]:
    """
    Re-dispatch pending submissions.

    Returns:
        {"requeued": n, "processing": m} where m counts records left alone
    """
    pending = await store.list_by_status(SubmissionStatus.PENDING, limit=limit)
    requeued = 0
    for record in pending:
        try:
            dispatcher.schedule(record.id)
            requeued += 1
        except Exception:
            logger.exception(f"Failed to re-dispatch submission {record.id}")

    processing = await store.list_by_status(SubmissionStatus.PROCESSING, limit=limit)
    for record in processing:
        logger.warning(
            f"Submission {record.id} has been processing since {record.updated_at.isoformat()}; "
            "not re-running it automatically"
        )

    if requeued:
        logger.info(f"Re-dispatched {requeued} pending submission(s)")
    return {"requeued": requeued, "processing": len(processing)}
