"""
docingest Document Schemas

Pydantic models for the ingestion pipeline.
Defines the transient documents and chunks flowing through the
pipeline, the payload persisted next to each vector, and the
structured report returned to callers.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

PayloadValue = str | int | float | bool | None

FailureStage = Literal["extraction", "chunking", "embedding", "storage", "deadline"]


class DocumentMetadata(BaseModel):
    """Metadata collected during text extraction."""

    filename: str = Field(description="Original filename with extension")
    file_size: int = Field(ge=0, description="File size in bytes")
    file_type: str = Field(description="Format identifier: 'text', 'csv'")
    department: str | None = Field(default=None, description="Owning department")
    document_type: str | None = Field(default=None, description="Document category")
    reference_id: str | None = Field(default=None, description="External reference")


class Document(BaseModel):
    """
    Extracted document, alive for a single ingestion run.

    Attributes:
        id: Unique identifier, generated when ingestion starts.
        path: Source path as supplied by the caller.
        content: Extracted text content.
        file_hash: SHA-256 hex digest of the raw file bytes.
        metadata: File-level metadata and classification fields.
        extra: Additional caller-supplied payload fields.
        chunks: Ordered chunk texts produced by the chunker.
        created_at: UTC timestamp of extraction.
    """

    id: UUID = Field(default_factory=uuid4)
    path: str
    content: str
    file_hash: str = Field(min_length=64, max_length=64)
    metadata: DocumentMetadata
    extra: dict[str, PayloadValue] = Field(
        default_factory=dict,
        description="Caller-supplied payload fields copied onto every chunk",
    )
    chunks: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Chunk(BaseModel):
    """
    A contiguous word span of a document, addressed by its point ID.

    ``id`` is derived from the document content hash and the chunk
    index, so re-ingesting identical content targets the same point.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    document_id: UUID
    content: str = Field(min_length=1)
    chunk_index: int = Field(ge=0)


class ChunkPayload(BaseModel):
    """Metadata stored next to each vector in the collection."""

    model_config = ConfigDict(extra="allow")

    document_id: str
    text: str
    source: str
    chunk_index: int
    file_hash: str
    created_at: str
    department: str | None = None
    document_type: str | None = None
    reference_id: str | None = None

    def to_payload(self) -> dict[str, PayloadValue]:
        """Flatten into the mapping sent to the vector store, omitting None."""
        return self.model_dump(exclude_none=True)


class StoredRecord(BaseModel):
    """A (point ID, vector, payload) triple as written to the store."""

    point_id: str
    vector: list[float] = Field(min_length=1)
    payload: dict[str, PayloadValue]

    def to_point(self) -> dict[str, Any]:
        """Qdrant point body: ``{"id", "vector", "payload"}``."""
        return {"id": self.point_id, "vector": self.vector, "payload": self.payload}


class IngestionFailure(BaseModel):
    """One document- or chunk-level failure recorded during a run."""

    stage: FailureStage
    path: str
    error_type: str
    message: str
    document_id: UUID | None = None
    chunk_index: int | None = None


class IngestionReport(BaseModel):
    """
    Outcome of ``IngestionPipeline.process_documents``.

    Partial failures never raise; they are listed in ``failures``.
    """

    documents_total: int = 0
    documents_processed: int = 0
    documents_skipped: int = 0
    chunks_total: int = 0
    chunks_stored: int = 0
    failures: list[IngestionFailure] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def chunks_failed(self) -> int:
        """Chunks that reached phase 2 but were not stored."""
        return self.chunks_total - self.chunks_stored

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
