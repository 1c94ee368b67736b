"""
Ingestion CLI

Ingests one or more files into the vector store.

Usage:
    docingest report.txt prices.csv
    python -m docingest --collection test --chunk-size 256 notes/*.txt

Exit codes:
    0 once the run completes, even if some documents or chunks failed
      (those are only logged).
    1 if the run cannot start (invalid configuration, no paths).
    2 for argument errors (argparse).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

import httpx

from docingest.core.config import settings
from docingest.core.errors import ConfigurationError, NoDocumentsError
from docingest.core.logging import LOG_LEVELS, setup_logging
from docingest.models.schemas import IngestionReport
from docingest.repositories.vector_store import VectorStoreGateway
from docingest.services.chunking import TextChunker
from docingest.services.embeddings import EmbeddingGateway
from docingest.services.pipeline import IngestionPipeline

logger = logging.getLogger("docingest.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docingest",
        description="Chunk, embed and store documents in the vector store.",
    )
    parser.add_argument("paths", nargs="*", help="Files to ingest (.txt, .csv)")
    parser.add_argument(
        "--collection",
        default=settings.QDRANT_COLLECTION,
        help="Target collection (default: %(default)s)",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=settings.CHUNK_SIZE,
        help="Words per chunk (default: %(default)s)",
    )
    parser.add_argument(
        "--chunk-overlap",
        type=int,
        default=settings.CHUNK_OVERLAP,
        help="Words shared between chunks (default: %(default)s)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.EMBEDDING_CONCURRENCY,
        help="Max chunks embedded at once (default: %(default)s)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.INGESTION_TIMEOUT,
        help="Deadline for the whole run, in seconds",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=settings.LOG_LEVEL,
        help="Logging level (default: %(default)s)",
    )
    return parser


async def run(args: argparse.Namespace) -> IngestionReport:
    """Build the gateways around one shared HTTP client and ingest ``args.paths``."""
    chunker = TextChunker(args.chunk_size, args.chunk_overlap)

    async with httpx.AsyncClient() as client:
        pipeline = IngestionPipeline(
            chunker=chunker,
            embedder=EmbeddingGateway(client=client),
            store=VectorStoreGateway(collection=args.collection, client=client),
            embedding_concurrency=args.concurrency,
            timeout=args.timeout,
        )
        return await pipeline.process_documents(args.paths)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        setup_logging(level=args.log_level)
    except ConfigurationError as exc:
        # Logging is not configured yet
        print(f"docingest: {exc}", file=sys.stderr)
        return 1

    if not args.paths:
        logger.error("Usage: docingest <file1> <file2> ...")
        return 1

    try:
        report = asyncio.run(run(args))
    except (ConfigurationError, NoDocumentsError) as exc:
        logger.error("Ingestion could not start: %s", exc)
        return 1

    for failure in report.failures:
        logger.warning(
            "Failed [%s] %s%s: %s",
            failure.stage,
            failure.path,
            f" chunk {failure.chunk_index}" if failure.chunk_index is not None else "",
            failure.message,
        )
    logger.info(
        "All documents processed: %d stored chunks, %d skipped documents",
        report.chunks_stored,
        report.documents_skipped,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
