"""
Ingestion API Router

HTTP endpoint exposing the ingestion pipeline.

Endpoints:
    POST /ingest  — Ingest files by path; returns the ingestion report.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from docingest.core.errors import ConfigurationError, NoDocumentsError
from docingest.models.schemas import IngestionReport
from docingest.schemas.ingest import IngestRequest
from docingest.services.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_pipeline() -> IngestionPipeline:
    """FastAPI dependency — returns an IngestionPipeline instance."""
    return IngestionPipeline()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/ingest",
    response_model=IngestionReport,
    summary="Ingest files into the vector store",
    responses={
        200: {"description": "Run completed; partial failures listed in the report"},
        422: {"description": "Empty path list or invalid configuration"},
    },
)
async def ingest_documents(
    request: IngestRequest,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> IngestionReport:
    """
    Run the ingestion pipeline over server-side file paths.

    The call returns once every document and chunk has been processed.
    Document- and chunk-level failures do not change the status code;
    they are listed in ``failures``.
    """
    try:
        report = await pipeline.process_documents(
            request.paths,
            metadata=request.metadata,
            timeout=request.timeout,
        )
    except (ConfigurationError, NoDocumentsError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    logger.info(
        "Ingestion request complete: %d/%d chunks stored",
        report.chunks_stored,
        report.chunks_total,
    )
    return report
