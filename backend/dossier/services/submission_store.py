"""
Submission Store.

Keyed persistence for intake records and their analysis lifecycle. Records
are looked up publicly by token and internally (worker, recovery) by id.

Two implementations share the `SubmissionStore` contract:

- `SqlSubmissionStore`: async SQLAlchemy, used by the API and Celery workers
- `InMemorySubmissionStore`: single-process dictionary, for development and tests

Status writes are check-and-set: the new status is written only while the
stored status is still one of the allowed sources for it, so two concurrent
workers can never both move the same record.

Usage:
    store = SqlSubmissionStore(database_service)
    record = await store.create(submission)
    record = await store.update_status(record.id, SubmissionStatus.PROCESSING)
"""

import asyncio
import logging
import secrets
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..config import settings
from ..database.models import SubmissionRow
from ..models import AnalysisResult, IntakeSubmission, SubmissionRecord
from .database_service import DatabaseService
from .status_protocol import InvalidTransition, SubmissionStatus, allowed_sources, validate_transition

logger = logging.getLogger("dossier.store")


class SubmissionNotFound(LookupError):
    """No record matches the given token or id."""


class StoreError(RuntimeError):
    """Persistence could not complete."""


def new_submission_id() -> str:
    return str(uuid.uuid4())


def new_access_token(nbytes: Optional[int] = None) -> str:
    return secrets.token_urlsafe(nbytes or settings.token_bytes)


class SubmissionStore(ABC):
    """Contract shared by all submission store backends."""

    @abstractmethod
    async def create(self, submission: IntakeSubmission) -> SubmissionRecord:
        """Allocate a fresh id and token and persist a pending record."""

    @abstractmethod
    async def get_by_token(self, token: str) -> SubmissionRecord:
        """Public lookup. Raises SubmissionNotFound."""

    @abstractmethod
    async def get_by_id(self, submission_id: str) -> SubmissionRecord:
        """Internal lookup used by the worker. Raises SubmissionNotFound."""

    @abstractmethod
    async def update_status(
        self,
        submission_id: str,
        new_status: SubmissionStatus,
        analysis: Optional[AnalysisResult] = None,
    ) -> SubmissionRecord:
        """
        Atomically move a record to `new_status`.

        Raises:
            SubmissionNotFound: Unknown id
            InvalidTransition: The change is not allowed from the stored
                status; nothing is written
        """

    @abstractmethod
    async def list_by_status(self, status: SubmissionStatus, limit: int = 100) -> List[SubmissionRecord]:
        """Oldest-first records in the given status."""

    @abstractmethod
    async def count(self) -> int:
        """Total number of records."""


# ============================================================================
# IN-MEMORY STORE
# ============================================================================

class InMemorySubmissionStore(SubmissionStore):
    """Dictionary-backed store guarded by a single asyncio lock."""

    def __init__(self):
        self._records: Dict[str, SubmissionRecord] = {}
        self._ids_by_token: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def create(self, submission: IntakeSubmission) -> SubmissionRecord:
        async with self._lock:
            submission_id = new_submission_id()
            while submission_id in self._records:
                submission_id = new_submission_id()
            token = new_access_token()
            while token in self._ids_by_token:
                token = new_access_token()

            now = datetime.utcnow()
            record = SubmissionRecord(
                id=submission_id,
                token=token,
                submission=submission,
                status=SubmissionStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            self._records[submission_id] = record
            self._ids_by_token[token] = submission_id

        logger.info(f"Created submission {submission_id}")
        return record

    async def get_by_token(self, token: str) -> SubmissionRecord:
        submission_id = self._ids_by_token.get(token)
        if submission_id is None:
            raise SubmissionNotFound("No submission for this token")
        return self._records[submission_id]

    async def get_by_id(self, submission_id: str) -> SubmissionRecord:
        record = self._records.get(submission_id)
        if record is None:
            raise SubmissionNotFound(f"Submission {submission_id} not found")
        return record

    async def update_status(
        self,
        submission_id: str,
        new_status: SubmissionStatus,
        analysis: Optional[AnalysisResult] = None,
    ) -> SubmissionRecord:
        async with self._lock:
            current = await self.get_by_id(submission_id)
            validate_transition(current.status, new_status, analysis)
            updated = current.model_copy(
                update={
                    "status": new_status,
                    "analysis": analysis,
                    "updated_at": max(datetime.utcnow(), current.updated_at),
                }
            )
            self._records[submission_id] = updated

        logger.info(f"Submission {submission_id}: {current.status.value} -> {new_status.value}")
        return updated

    async def list_by_status(self, status: SubmissionStatus, limit: int = 100) -> List[SubmissionRecord]:
        matches = [r for r in self._records.values() if r.status == status]
        matches.sort(key=lambda r: r.created_at)
        return matches[:limit]

    async def count(self) -> int:
        return len(self._records)


# ============================================================================
# SQL STORE
# ============================================================================

def _row_to_record(row: SubmissionRow) -> SubmissionRecord:
    return SubmissionRecord(
        id=row.id,
        token=row.token,
        submission=IntakeSubmission.model_validate(row.submission or {}),
        status=SubmissionStatus(row.status),
        analysis=AnalysisResult.model_validate(row.analysis) if row.analysis is not None else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlSubmissionStore(SubmissionStore):
    """Async SQLAlchemy store over the `submissions` table."""

    # Attempts at allocating a unique token before giving up
    MAX_CREATE_ATTEMPTS = 3

    def __init__(self, db: DatabaseService):
        self.db = db

    async def create(self, submission: IntakeSubmission) -> SubmissionRecord:
        for attempt in range(1, self.MAX_CREATE_ATTEMPTS + 1):
            now = datetime.utcnow()
            row = SubmissionRow(
                id=new_submission_id(),
                token=new_access_token(),
                submission=submission.to_wire(),
                status=SubmissionStatus.PENDING.value,
                analysis=None,
                created_at=now,
                updated_at=now,
            )
            try:
                async with self.db.get_session() as session:
                    session.add(row)
            except IntegrityError:
                logger.warning(f"Identifier collision creating submission (attempt {attempt})")
                continue
            except SQLAlchemyError as e:
                logger.exception("Failed to persist submission")
                raise StoreError("Could not persist submission") from e

            logger.info(f"Created submission {row.id}")
            return _row_to_record(row)

        raise StoreError("Could not allocate unique submission identifiers")

    async def _get_one(self, *criteria) -> SubmissionRecord:
        try:
            async with self.db.get_session() as session:
                result = await session.execute(select(SubmissionRow).where(*criteria))
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError("Could not read submission") from e
        if row is None:
            raise SubmissionNotFound("Submission not found")
        return _row_to_record(row)

    async def get_by_token(self, token: str) -> SubmissionRecord:
        return await self._get_one(SubmissionRow.token == token)

    async def get_by_id(self, submission_id: str) -> SubmissionRecord:
        return await self._get_one(SubmissionRow.id == submission_id)

    async def update_status(
        self,
        submission_id: str,
        new_status: SubmissionStatus,
        analysis: Optional[AnalysisResult] = None,
    ) -> SubmissionRecord:
        current = await self.get_by_id(submission_id)
        validate_transition(current.status, new_status, analysis)

        sources = [s.value for s in allowed_sources(new_status)]
        values = {
            "status": new_status.value,
            "analysis": analysis.model_dump(by_alias=True, mode="json") if analysis is not None else None,
            "updated_at": max(datetime.utcnow(), current.updated_at),
        }

        try:
            async with self.db.get_session() as session:
                # Single conditional UPDATE: loses cleanly to a concurrent writer
                result = await session.execute(
                    update(SubmissionRow)
                    .where(SubmissionRow.id == submission_id, SubmissionRow.status.in_(sources))
                    .values(**values)
                )
                changed = result.rowcount
        except SQLAlchemyError as e:
            raise StoreError("Could not update submission status") from e

        if changed != 1:
            latest = await self.get_by_id(submission_id)
            raise InvalidTransition(latest.status, new_status, "status changed concurrently")

        logger.info(f"Submission {submission_id}: {current.status.value} -> {new_status.value}")
        return await self.get_by_id(submission_id)

    async def list_by_status(self, status: SubmissionStatus, limit: int = 100) -> List[SubmissionRecord]:
        try:
            async with self.db.get_session() as session:
                result = await session.execute(
                    select(SubmissionRow)
                    .where(SubmissionRow.status == status.value)
                    .order_by(SubmissionRow.created_at.asc())
                    .limit(limit)
                )
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError("Could not list submissions") from e
        return [_row_to_record(row) for row in rows]

    async def count(self) -> int:
        try:
            async with self.db.get_session() as session:
                result = await session.execute(select(func.count()).select_from(SubmissionRow))
                return int(result.scalar() or 0)
        except SQLAlchemyError as e:
            raise StoreError("Could not count submissions") from e
