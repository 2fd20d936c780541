# ============================================================================
# Intake Dossier - FastAPI Application Entry Point
# ============================================================================
"""
Main FastAPI application module for the Intake Dossier backend.

A prospect submits the intake questionnaire, the backend stores it and runs
an AI business analysis in the background, and an admin polls by access
token until the pre-call dossier is ready.

This module sets up the FastAPI application with:
- CORS middleware configuration for the wizard frontend
- Startup/shutdown handlers (logging, tables, recovery, draining)
- Error handlers mapping service exceptions to HTTP responses
- API router integration under /api

Usage:
    Direct: python -m dossier.main
    Server: uvicorn dossier.main:app --host 0.0.0.0 --port 8080
"""

import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.v1 import api_router
from .config import settings
from .dependencies import get_dispatcher, get_store
from .models import ErrorResponse
from .services.database_service import database_service
from .services.intake_service import SubmissionValidationError
from .services.llm_service import llm_service
from .services.recovery import requeue_pending
from .services.submission_store import StoreError, SubmissionNotFound

logger = logging.getLogger("dossier.api")

# ============================================================================
# APPLICATION INITIALIZATION
# ============================================================================

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=(
        "Intake Dossier API\n\n"
        "Collects prospect intake questionnaires, analyses them asynchronously "
        "with an LLM, and serves status and dossiers to token holders."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# ============================================================================
# MIDDLEWARE CONFIGURATION
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# ============================================================================
# APPLICATION EVENT HANDLERS
# ============================================================================

@app.on_event("startup")
async def startup_event() -> None:
    """
    Configure logging, create tables and re-dispatch pending submissions.

    Raises:
        Exception: If the database cannot be initialised
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")
    logger.info(f"Storage backend: {settings.storage_backend}; Celery: {settings.use_celery}")
    logger.info(f"LLM service: {'available' if llm_service.is_available else 'unavailable'}")

    if settings.storage_backend != "memory":
        await database_service.init_db()

    if settings.recover_pending_on_startup:
        try:
            await requeue_pending(get_store(), get_dispatcher())
        except Exception:
            logger.exception("Pending submission recovery failed")

    logger.info("Startup complete")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Let running analyses finish (bounded), then release connections."""
    logger.info("Shutting down...")
    await get_dispatcher().drain(timeout=settings.analysis_timeout)
    await llm_service.close()
    await database_service.close()
    logger.info("Shutdown complete")


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, timestamp=datetime.now())
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(SubmissionValidationError)
async def submission_validation_handler(request: Request, exc: SubmissionValidationError) -> JSONResponse:
    return _error(400, "Validation Error", str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are rejected with 400, like missing fields."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return _error(400, "Validation Error", problems or "Invalid request")


@app.exception_handler(SubmissionNotFound)
async def not_found_handler(request: Request, exc: SubmissionNotFound) -> JSONResponse:
    return _error(404, "Not Found", "Submission not found")


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(f"Store error on {request.url.path}: {exc}")
    return _error(503, "Storage Unavailable", "The submission store is unavailable, please retry")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error(exc.status_code, f"HTTP {exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all for unexpected errors.

    Only a generic message reaches the client unless debug is enabled.
    """
    logger.exception(f"Unhandled error on {request.url.path}")
    detail = str(exc) if settings.debug else "An unexpected error occurred"
    return _error(500, "Internal Server Error", detail)


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================

app.include_router(api_router, prefix="/api")


@app.get("/", tags=["root"])
async def root() -> Dict[str, Any]:
    """API metadata."""
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "status": "running",
        "docs_url": "/docs",
        "health_check": "/api/health",
        "timestamp": datetime.now(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("dossier.main:app", host="0.0.0.0", port=8080, log_level="info")
