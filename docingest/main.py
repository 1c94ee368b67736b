"""
docingest — HTTP Entry Point

FastAPI application wrapping the ingestion pipeline.

Start locally:
    uvicorn docingest.main:app --host 0.0.0.0 --port 8001 --reload
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from docingest import __version__
from docingest.api.v1.ingest import router as ingest_router
from docingest.core.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup."""
    setup_logging()
    logger.info("Starting docingest service...")
    yield
    logger.info("docingest shutdown complete")


app = FastAPI(
    title="docingest",
    description="Document chunking, embedding, and vector-store ingestion.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(ingest_router, prefix="/api/v1", tags=["Ingestion"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check for load balancers and orchestrators."""
    return {
        "status": "ok",
        "service": "docingest",
        "environment": os.getenv("ENVIRONMENT", "local"),
    }
