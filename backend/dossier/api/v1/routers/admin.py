# backend/dossier/api/v1/routers/admin.py
"""
Admin polling endpoints.

All lookups are by access token; possession of the token is the only access
check. Unknown tokens surface as 404 through the SubmissionNotFound handler.

Polling:
    GET /api/admin/{token}/status every few seconds until status is
    "completed" or "failed".

Push (optional upgrade of polling):
    WS /api/admin/{token}/ws sends the status snapshot on connect and on each
    change, then closes with 1000 after a terminal status. Unknown tokens
    close with 4404; streams older than STATUS_STREAM_MAX_WAIT close with 1001.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse

from ....config import settings
from ....dependencies import get_admin_service
from ....models import AdminView, StatusSnapshot
from ....services.admin_service import AdminService
from ....services.dossier_service import DossierNotReady, render_dossier
from ....services.status_protocol import is_terminal_status
from ....services.submission_store import SubmissionNotFound

logger = logging.getLogger("dossier.api.admin")

router = APIRouter(prefix="/admin")

WS_CLOSE_NOT_FOUND = 4404


@router.get("/{token}", response_model=AdminView, tags=["Admin"])
async def get_submission(token: str, admin: AdminService = Depends(get_admin_service)):
    """Full snapshot: submission, status, timestamps and, once completed, the analysis."""
    return await admin.get_full(token)


@router.get(
    "/{token}/status",
    response_model=StatusSnapshot,
    response_model_exclude_none=True,
    tags=["Admin"],
)
async def get_submission_status(token: str, admin: AdminService = Depends(get_admin_service)):
    """Lightweight poll: status plus the fit score once completed."""
    return await admin.get_status(token)


@router.get("/{token}/dossier", response_class=PlainTextResponse, tags=["Admin"])
async def get_submission_dossier(token: str, admin: AdminService = Depends(get_admin_service)):
    """The pre-call dossier as Markdown; 409 until the analysis has completed."""
    record = await admin.get_record(token)
    try:
        markdown = render_dossier(record)
    except DossierNotReady as e:
        raise HTTPException(status_code=409, detail=str(e))
    return PlainTextResponse(markdown, media_type="text/markdown; charset=utf-8")


@router.websocket("/{token}/ws")
async def stream_submission_status(
    websocket: WebSocket,
    token: str,
    admin: AdminService = Depends(get_admin_service),
):
    await websocket.accept()

    try:
        snapshot = await admin.get_status(token)
    except SubmissionNotFound:
        await websocket.close(code=WS_CLOSE_NOT_FOUND)
        return

    loop = asyncio.get_running_loop()
    deadline = loop.time() + settings.status_stream_max_wait
    last_sent = None

    try:
        while True:
            if snapshot != last_sent:
                await websocket.send_json(snapshot.model_dump(by_alias=True, exclude_none=True, mode="json"))
                last_sent = snapshot

            if is_terminal_status(snapshot.status):
                await websocket.close(code=1000)
                return

            if loop.time() >= deadline:
                await websocket.close(code=1001)
                return

            await asyncio.sleep(settings.status_stream_interval)
            snapshot = await admin.get_status(token)
    except WebSocketDisconnect:
        logger.debug("Status stream client disconnected")
