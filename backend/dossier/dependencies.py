"""
Service wiring and FastAPI dependencies.

Services are built once per process from settings. Routers receive them via
`Depends(...)`, which tests replace through `app.dependency_overrides`.
"""

from typing import Optional

from fastapi import Depends

from .config import settings
from .services.admin_service import AdminService
from .services.analysis_worker import AnalysisWorker
from .services.database_service import database_service
from .services.dispatcher import AnalysisDispatcher, BackgroundDispatcher, CeleryDispatcher
from .services.intake_service import IntakeService
from .services.llm_service import llm_service
from .services.submission_store import InMemorySubmissionStore, SqlSubmissionStore, SubmissionStore

_store: Optional[SubmissionStore] = None
_dispatcher: Optional[AnalysisDispatcher] = None


def get_store() -> SubmissionStore:
    global _store
    if _store is None:
        if settings.storage_backend == "memory":
            _store = InMemorySubmissionStore()
        else:
            _store = SqlSubmissionStore(database_service)
    return _store


def get_worker() -> AnalysisWorker:
    return AnalysisWorker(get_store(), llm_service)


def get_dispatcher() -> AnalysisDispatcher:
    global _dispatcher
    if _dispatcher is None:
        if settings.use_celery:
            _dispatcher = CeleryDispatcher()
        else:
            _dispatcher = BackgroundDispatcher(get_worker())
    return _dispatcher


def get_intake_service(
    store: SubmissionStore = Depends(get_store),
    dispatcher: AnalysisDispatcher = Depends(get_dispatcher),
) -> IntakeService:
    return IntakeService(store, dispatcher)


def get_admin_service(store: SubmissionStore = Depends(get_store)) -> AdminService:
    return AdminService(store)
