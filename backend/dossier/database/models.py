# backend/dossier/database/models.py
"""
Database models for the submission store.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Index, String

from .base import Base


class SubmissionRow(Base):
    """
    Persistent form of a SubmissionRecord.

    Attributes:
        id: Internal identifier, used by the analysis worker
        token: Unguessable public key for admin/result retrieval
        submission: Intake answers as camelCase JSON, written once
        status: pending, processing, completed or failed
        analysis: Analysis JSON, set only together with status=completed
        created_at: Creation time, never changed
        updated_at: Time of the last status transition

    Status Transitions (Strict):
        pending -> processing -> completed
        pending -> processing -> failed
    """

    __tablename__ = "submissions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token = Column(String(128), nullable=False, unique=True)
    submission = Column(JSON, nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)
    analysis = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_submissions_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SubmissionRow(id={self.id}, status={self.status})>"
