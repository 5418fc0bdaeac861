"""FastAPI application factory.

Run with any ASGI server, e.g. ``uvicorn mail_provenance.api.app:create_app --factory``.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mail_provenance.api.mail import router as mail_router
from mail_provenance.config import Settings, get_settings
from mail_provenance.pipeline import IngestionPipeline
from mail_provenance.storage import EmailRecordRepository
from mail_provenance.utils import configure_logging

logger = structlog.get_logger()


def create_app(
    settings: Settings | None = None,
    repository: EmailRecordRepository | None = None,
    pipeline: IngestionPipeline | None = None,
) -> FastAPI:
    """Build the HTTP application.

    Args:
        settings: Application settings. If None, uses default settings.
        repository: Record store. If None, an initialized SQLite store at
            ``settings.db_path`` is used. Ignored when ``pipeline`` is given.
        pipeline: Ingestion pipeline. If None, one is built over ``repository``.

    Returns:
        FastAPI: The configured application.
    """

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if pipeline is None:
        if repository is None:
            repository = EmailRecordRepository(settings.db_path)
            repository.initialize()
        pipeline = IngestionPipeline(repository, settings=settings)

    app = FastAPI(title="Mail Provenance", debug=settings.debug)

    # The browser UI runs on a separate dev server.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.pipeline = pipeline
    app.include_router(mail_router)

    logger.info("api_app_created", db_path=str(settings.db_path))
    return app
