"""Mail API.

Exposes the ingestion pipeline over HTTP:
- ``/mail/latest`` runs one live fetch-and-analyse cycle.
- ``/mail/history`` lists the most recent analysed records.
- ``/mail/meta`` tells the UI where to send a test email.
- ``/mail/health`` is a liveness probe.

Domain errors are translated to HTTP status codes here and nowhere else.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from mail_provenance.config import Settings
from mail_provenance.exceptions import (
    ConfigurationError,
    MailboxTimeoutError,
    MailProvenanceError,
    MessageParseError,
)
from mail_provenance.pipeline import IngestionPipeline

logger = structlog.get_logger()

router = APIRouter(prefix="/mail", tags=["mail"])

NO_UNREAD_MESSAGE = "No matching unread email found. Send a new test email and keep it unread."


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _status_for(exc: MailProvenanceError) -> int:
    if isinstance(exc, MailboxTimeoutError):
        return 504
    if isinstance(exc, MessageParseError):
        return 422
    if isinstance(exc, ConfigurationError):
        return 500
    return 502


@router.get("/meta")
def meta(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    return {
        "testAddress": settings.imap_username or "",
        "exampleSubject": f"Provenance Test Email {random.randint(0, 99999)}",
    }


@router.get("/latest")
async def latest(pipeline: IngestionPipeline = Depends(get_pipeline)) -> dict[str, Any]:
    try:
        record = await pipeline.ingest_latest_unread()
    except MailProvenanceError as exc:
        logger.error("latest_email_failed", error=str(exc), error_type=type(exc).__name__)
        raise HTTPException(status_code=_status_for(exc), detail=str(exc)) from exc

    if record is None:
        return {"message": NO_UNREAD_MESSAGE}
    return record.to_public_dict()


@router.get("/history")
def history(pipeline: IngestionPipeline = Depends(get_pipeline)) -> list[dict[str, Any]]:
    return [record.to_public_dict() for record in pipeline.history()]


@router.get("/health")
def health() -> dict[str, Any]:
    return {"ok": True, "service": "mail", "time": datetime.now(timezone.utc).isoformat()}
