"""HTTP boundary for the ingestion pipeline."""

from .app import create_app

__all__ = ["create_app"]
