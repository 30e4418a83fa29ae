"""
Link Audit Routes

    GET  /                      upload page
    WS   /upload                one audit session per connection
    GET  /download/{name}       finished CSV report
"""

import uuid
from pathlib import Path
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect, status
from fastapi.responses import FileResponse
from fastapi.templating import Jinja2Templates

from app.features.link_audit.services.exporter import ReportExporter
from app.features.link_audit.services.progress import ProgressReporter
from app.features.link_audit.services.session import AuditSession
from app.platform.config import settings
from app.platform.exceptions import ChannelEstablishmentError
from app.platform.logger import get_logger
from app.platform.response import error_response
from app.platform.websocket_manager import manager

logger = get_logger(__name__)

router = APIRouter(tags=["Link Audit"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))


def get_report_exporter() -> ReportExporter:
    return ReportExporter()


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for page fetches; None means httpx's default network transport."""
    return None


@router.get("/", include_in_schema=False)
async def upload_page(request: Request):
    return templates.TemplateResponse(
        request,
        "upload.html",
        {"app_name": settings.APP_NAME, "max_upload_bytes": settings.MAX_UPLOAD_BYTES},
    )


@router.websocket("/upload")
async def upload_batch(
    websocket: WebSocket,
    exporter: ReportExporter = Depends(get_report_exporter),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
):
    """
    Receive one CSV batch and stream the audit of every URL in it.

    The client sends a single message (binary or text) with the CSV bytes and
    then receives plain text events:

        Processing: <url>
        Progress: <p>%
        ...
        Processing completed
        Download link: /download/<report name>

    A malformed batch yields a single "Error reading CSV file: ..." event.
    """
    session_id = uuid.uuid4().hex

    try:
        await manager.connect(websocket, session_id)
    except ChannelEstablishmentError:
        return

    try:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))

        raw_batch = message.get("bytes")
        if raw_batch is None:
            raw_batch = (message.get("text") or "").encode("utf-8")

        session = AuditSession(
            ProgressReporter(websocket, session_id),
            session_id=session_id,
            exporter=exporter,
            transport=transport,
        )
        await session.run(raw_batch)

    except WebSocketDisconnect:
        logger.info(f"Session {session_id}: client disconnected before sending a batch")
    finally:
        await manager.disconnect(session_id)


@router.get("/download/{report_name}")
async def download_report(
    report_name: str,
    exporter: ReportExporter = Depends(get_report_exporter),
):
    path = exporter.resolve(report_name)
    if path is None:
        return error_response("Report not found", status.HTTP_404_NOT_FOUND, error="report_not_found")

    return FileResponse(path, media_type="text/csv", filename=report_name)
