"""Ingestion pipeline."""

from .ingestion import IngestionPipeline, build_record

__all__ = ["IngestionPipeline", "build_record"]
