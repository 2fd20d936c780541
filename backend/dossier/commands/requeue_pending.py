"""
Re-dispatch submissions left in the pending state.

Sends every pending submission to the Celery queue (or, with --inline, runs
the analyses in this process). Submissions in processing are reported only.

Usage:
    python -m dossier.commands.requeue_pending
    python -m dossier.commands.requeue_pending --inline --limit 20
"""

import argparse
import asyncio
import logging
import sys

from ..services.analysis_worker import AnalysisWorker
from ..services.database_service import DatabaseService
from ..services.dispatcher import BackgroundDispatcher, CeleryDispatcher
from ..services.llm_service import LLMService
from ..services.recovery import requeue_pending
from ..services.submission_store import SqlSubmissionStore

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger("dossier.commands.requeue_pending")


async def _run(inline: bool, limit: int) -> dict:
    db = DatabaseService()
    llm = LLMService()
    try:
        store = SqlSubmissionStore(db)
        if inline:
            dispatcher = BackgroundDispatcher(AnalysisWorker(store, llm))
        else:
            dispatcher = CeleryDispatcher()
        result = await requeue_pending(store, dispatcher, limit=limit)
        await dispatcher.drain()
        return result
    finally:
        await llm.close()
        await db.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Re-dispatch pending intake submissions")
    parser.add_argument("--inline", action="store_true", help="Analyse in this process instead of Celery")
    parser.add_argument("--limit", type=int, default=200, help="Maximum submissions to re-dispatch")
    args = parser.parse_args()

    result = asyncio.run(_run(args.inline, args.limit))
    logger.info(f"Re-dispatched {result['requeued']} pending submission(s)")
    if result["processing"]:
        logger.warning(f"{result['processing']} submission(s) are still processing; review them manually")
    return 0


if __name__ == "__main__":
    sys.exit(main())
