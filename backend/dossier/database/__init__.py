# backend/dossier/database/__init__.py
"""
Database package for the intake dossier backend.

Provides SQLAlchemy models, base classes, and database session management.
"""

from .base import Base
from .models import SubmissionRow

__all__ = [
    "Base",
    "SubmissionRow",
]
