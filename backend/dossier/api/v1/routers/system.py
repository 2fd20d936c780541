# backend/dossier/api/v1/routers/system.py
from datetime import datetime

from fastapi import APIRouter

from ....config import settings
from ....models import HealthStatus
from ....services.database_service import database_service
from ....services.llm_service import llm_service

router = APIRouter()


@router.get("/health", response_model=HealthStatus, tags=["System"])
async def health_check():
    """Health check endpoint."""
    database_connected = None
    if settings.storage_backend != "memory":
        health = await database_service.health_check()
        database_connected = health["connected"]

    return HealthStatus(
        status="healthy" if database_connected is not False else "degraded",
        timestamp=datetime.now(),
        version=settings.api_version,
        llm_configured=llm_service.is_available,
        storage_backend=settings.storage_backend,
        database_connected=database_connected,
    )
