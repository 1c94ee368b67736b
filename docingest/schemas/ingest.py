"""
Ingestion API Schemas

Pydantic models for the ingestion endpoint request cycle.
The response body is the pipeline's IngestionReport.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from docingest.models.schemas import PayloadValue


class IngestRequest(BaseModel):
    """Request body for bulk ingestion of server-side files."""

    paths: list[str] = Field(
        ...,
        min_length=1,
        description="Paths of files readable by the service",
    )
    metadata: dict[str, dict[str, PayloadValue]] = Field(
        default_factory=dict,
        description="Optional payload fields per path (department, document_type, ...)",
    )
    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Deadline for the whole run, in seconds",
    )
