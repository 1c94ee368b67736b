"""Models package — Pydantic schemas for the ingestion pipeline."""

from docingest.models.schemas import (
    Chunk,
    ChunkPayload,
    Document,
    DocumentMetadata,
    IngestionFailure,
    IngestionReport,
    StoredRecord,
)

__all__ = [
    "Chunk",
    "ChunkPayload",
    "Document",
    "DocumentMetadata",
    "IngestionFailure",
    "IngestionReport",
    "StoredRecord",
]
