"""
Analysis dispatchers.

Scheduling is fire-and-forget: `schedule()` returns as soon as the job is
handed off, never after the analysis finishes.

- `BackgroundDispatcher` runs the worker as asyncio tasks in the API process,
  bounded by a semaphore. Running tasks are tracked so shutdown can drain them.
- `CeleryDispatcher` sends the submission id to the Celery queue; the
  `dossier.tasks.analyze_submission` task runs the same worker there.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, Set

from ..config import settings
from .analysis_worker import AnalysisWorker

logger = logging.getLogger("dossier.dispatcher")

ANALYZE_TASK_NAME = "dossier.tasks.analyze_submission"


class AnalysisDispatcher(ABC):
    """Hands submissions to the analysis worker out-of-band."""

    @abstractmethod
    def schedule(self, submission_id: str) -> None:
        """Queue one submission for analysis without waiting for it."""

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-process work to finish (no-op for remote queues)."""


class BackgroundDispatcher(AnalysisDispatcher):
    """In-process dispatcher built on asyncio tasks."""

    def __init__(self, worker: AnalysisWorker, max_concurrency: Optional[int] = None):
        self.worker = worker
        self._semaphore = asyncio.Semaphore(max_concurrency or settings.analysis_max_concurrency)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def schedule(self, submission_id: str) -> None:
        task = asyncio.get_running_loop().create_task(self._run(submission_id), name=f"analysis-{submission_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Scheduled analysis for submission {submission_id}")

    async def _run(self, submission_id: str) -> None:
        async with self._semaphore:
            try:
                await self.worker.process(submission_id)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Analysis task for submission {submission_id} crashed")

    async def drain(self, timeout: Optional[float] = None) -> None:
        if not self._tasks:
            return
        pending = set(self._tasks)
        done, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(f"Cancelled {len(still_running)} unfinished analysis task(s)")
            await asyncio.gather(*still_running, return_exceptions=True)


class CeleryDispatcher(AnalysisDispatcher):
    """Dispatcher that enqueues analyses on the Celery broker."""

    def __init__(self, queue: Optional[str] = None):
        self.queue = queue or settings.celery_queue

    def schedule(self, submission_id: str) -> None:
        from ..celery_app import app as celery_app

        result = celery_app.send_task(ANALYZE_TASK_NAME, args=[submission_id], queue=self.queue)
        logger.info(f"Enqueued analysis for submission {submission_id} (task {result.id})")
