"""
Ingestion Pipeline Orchestrator

Coordinates the document lifecycle: extraction -> chunking ->
embedding -> vector storage, for a batch of file paths.

Execution runs in two phases:

**Extraction** (one task per path):
    path -> TextExtractor -> TextChunker -> Document

**Embedding/storage** (one task per chunk of every surviving document):
    chunk -> EmbeddingGateway -> VectorStoreGateway

Each phase is capped by its own semaphore. Failures are recorded per
document or per chunk and never abort sibling work; the caller gets an
IngestionReport once every task of both phases has finished.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from pathlib import Path
from typing import TypeVar

from docingest.core.config import settings
from docingest.core.errors import (
    ConfigurationError,
    DeadlineExceededError,
    EmbeddingError,
    ExtractionError,
    IngestionError,
    NoDocumentsError,
    StorageError,
)
from docingest.models.schemas import (
    Chunk,
    ChunkPayload,
    Document,
    FailureStage,
    IngestionFailure,
    IngestionReport,
    PayloadValue,
)
from docingest.repositories.vector_store import VectorStoreGateway
from docingest.services.chunking import TextChunker
from docingest.services.embeddings import EmbeddingGateway
from docingest.services.extraction import TextExtractor

T = TypeVar("T")

# Fixed namespace for content-derived point IDs
CHUNK_NAMESPACE = uuid.UUID("6f1c2a64-3d0e-5b8a-9c47-2e5d8b1f0a93")

# Payload keys owned by the pipeline; callers may not override them
RESERVED_PAYLOAD_KEYS = frozenset(
    {"document_id", "text", "source", "chunk_index", "file_hash", "created_at"}
)
CLASSIFICATION_KEYS = frozenset({"department", "document_type", "reference_id"})

DocumentMetadataMap = Mapping[str, Mapping[str, PayloadValue]]


def chunk_point_id(file_hash: str, chunk_index: int) -> uuid.UUID:
    """Stable point ID for a chunk of a given file content."""
    return uuid.uuid5(CHUNK_NAMESPACE, f"{file_hash}:{chunk_index}")


class FailureLog:
    """Lock-guarded accumulator shared by concurrent pipeline tasks."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._failures: list[IngestionFailure] = []

    async def record(self, failure: IngestionFailure) -> None:
        async with self._lock:
            self._failures.append(failure)

    def snapshot(self) -> list[IngestionFailure]:
        return list(self._failures)

    def __len__(self) -> int:
        return len(self._failures)


class IngestionPipeline:
    """
    Concurrent, best-effort bulk ingestion of documents.

    Collaborators are injected so tests can swap in fakes; any left
    out are built from ``settings``.

    Usage::

        pipeline = IngestionPipeline()
        report = await pipeline.process_documents(["a.txt", "b.csv"])
        print(report.chunks_stored, len(report.failures))

    Args:
        extractor: Text extraction step.
        chunker: Word chunker (validated at construction).
        embedder: Object exposing ``async embed(text) -> list[float]``.
        store: Object exposing ``async upsert(point_id, vector, payload)``.
        extraction_concurrency: Max documents extracted at once.
        embedding_concurrency: Max chunks embedded/stored at once.
        max_retries: Extra attempts for a failed embed or upsert call.
        retry_delay_seconds: Base delay, multiplied by attempt number.
        timeout: Default deadline in seconds for one call (None: no deadline).
        logger: Logger for progress and failure lines.
    """

    def __init__(
        self,
        *,
        extractor: TextExtractor | None = None,
        chunker: TextChunker | None = None,
        embedder: EmbeddingGateway | None = None,
        store: VectorStoreGateway | None = None,
        extraction_concurrency: int | None = None,
        embedding_concurrency: int | None = None,
        max_retries: int | None = None,
        retry_delay_seconds: float | None = None,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._extractor = extractor or TextExtractor()
        self._chunker = chunker or TextChunker(
            settings.CHUNK_SIZE, settings.CHUNK_OVERLAP
        )
        self._embedder = embedder or EmbeddingGateway()
        self._store = store or VectorStoreGateway()
        self._logger = logger or logging.getLogger(__name__)

        self._extraction_concurrency = _pick(
            extraction_concurrency, settings.EXTRACTION_CONCURRENCY
        )
        self._embedding_concurrency = _pick(
            embedding_concurrency, settings.EMBEDDING_CONCURRENCY
        )
        self._max_retries = _pick(max_retries, settings.MAX_RETRIES)
        self._retry_delay = _pick(retry_delay_seconds, settings.RETRY_DELAY_SECONDS)
        self._timeout = _pick(timeout, settings.INGESTION_TIMEOUT)

        if self._extraction_concurrency < 1 or self._embedding_concurrency < 1:
            raise ConfigurationError("Concurrency limits must be at least 1")
        if self._max_retries < 0:
            raise ConfigurationError(
                f"max_retries ({self._max_retries}) must not be negative"
            )
        if self._retry_delay < 0:
            raise ConfigurationError("retry_delay_seconds must not be negative")
        if self._timeout is not None and self._timeout <= 0:
            raise ConfigurationError(f"timeout ({self._timeout}) must be positive")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process_documents(
        self,
        paths: Sequence[str | Path],
        *,
        metadata: DocumentMetadataMap | None = None,
        timeout: float | None = None,
    ) -> IngestionReport:
        """
        Extract, chunk, embed and store every document in ``paths``.

        Args:
            paths: Files to ingest. Duplicates are processed independently.
            metadata: Optional per-path payload fields (keyed by the path
                string as given), merged over filename classification.
            timeout: Deadline in seconds for the whole call, overriding
                the pipeline default. Unstarted work is not launched and
                in-flight work is abandoned once it passes.

        Returns:
            IngestionReport with counts and structured failures.

        Raises:
            NoDocumentsError: If ``paths`` is empty.
            ConfigurationError: If ``metadata`` or ``timeout`` is invalid.
        """
        if not paths:
            raise NoDocumentsError("No document paths supplied")

        metadata = metadata or {}
        _validate_metadata(metadata)

        effective_timeout = timeout if timeout is not None else self._timeout
        if effective_timeout is not None and effective_timeout <= 0:
            raise ConfigurationError(f"timeout ({effective_timeout}) must be positive")

        deadline = None
        if effective_timeout is not None:
            deadline = asyncio.get_running_loop().time() + effective_timeout
        started_at = time.perf_counter()
        failures = FailureLog()

        self._logger.info("Starting ingestion of %d documents", len(paths))

        # --- Phase 1: extract and chunk ---
        extract_gate = asyncio.Semaphore(self._extraction_concurrency)
        prepared = await _gather_all(
            self._prepare_document(
                str(path),
                uuid.uuid4(),
                metadata.get(str(path), {}),
                extract_gate,
                deadline,
                failures,
            )
            for path in paths
        )
        documents = [doc for doc in prepared if doc is not None]

        # --- Phase 2: embed and store ---
        store_gate = asyncio.Semaphore(self._embedding_concurrency)
        jobs = [
            (document, self._build_chunk(document, index, text))
            for document in documents
            for index, text in enumerate(document.chunks)
        ]
        stored = await _gather_all(
            self._ingest_chunk(document, chunk, store_gate, deadline, failures)
            for document, chunk in jobs
        )

        stored_per_document = Counter(
            document.id for (document, _), ok in zip(jobs, stored, strict=True) if ok
        )
        for document in documents:
            self._logger.info(
                "Stored %d/%d chunks for document: %s",
                stored_per_document[document.id],
                len(document.chunks),
                document.metadata.filename,
            )

        report = IngestionReport(
            documents_total=len(paths),
            documents_processed=len(documents),
            documents_skipped=len(paths) - len(documents),
            chunks_total=len(jobs),
            chunks_stored=sum(stored),
            failures=failures.snapshot(),
            duration_seconds=round(time.perf_counter() - started_at, 3),
        )

        self._logger.info(
            "Ingestion finished: %d/%d documents, %d/%d chunks stored, "
            "%d failures (%.2fs)",
            report.documents_processed,
            report.documents_total,
            report.chunks_stored,
            report.chunks_total,
            len(report.failures),
            report.duration_seconds,
        )
        return report

    # ------------------------------------------------------------------
    # Phase 1: extraction
    # ------------------------------------------------------------------

    async def _prepare_document(
        self,
        path: str,
        document_id: uuid.UUID,
        extra: Mapping[str, PayloadValue],
        gate: asyncio.Semaphore,
        deadline: float | None,
        failures: FailureLog,
    ) -> Document | None:
        """Pending -> TextExtracted -> Chunked, or Skipped (returns None)."""
        try:
            document = await _run_gated(
                gate, deadline, lambda: self._load_document(path, document_id, extra)
            )
        except ExtractionError as exc:
            await self._fail(failures, "extraction", path, exc, document_id)
            return None
        except DeadlineExceededError as exc:
            await self._fail(failures, "deadline", path, exc, document_id)
            return None

        if not document.chunks:
            await self._fail(
                failures,
                "chunking",
                path,
                ExtractionError(f"No chunks generated for {path}"),
                document_id,
            )
            return None

        self._logger.info(
            "Processed %d chunks for document: %s",
            len(document.chunks),
            document.metadata.filename,
        )
        return document

    async def _load_document(
        self,
        path: str,
        document_id: uuid.UUID,
        extra: Mapping[str, PayloadValue],
    ) -> Document:
        extracted = await self._extractor.extract(Path(path))

        # Caller-supplied classification wins over the filename convention
        overrides = {
            key: None if value is None else str(value)
            for key, value in extra.items()
            if key in CLASSIFICATION_KEYS
        }
        payload_extra = {
            key: value for key, value in extra.items() if key not in CLASSIFICATION_KEYS
        }

        return Document(
            id=document_id,
            path=path,
            content=extracted.content,
            file_hash=extracted.file_hash,
            metadata=extracted.metadata.model_copy(update=overrides),
            extra=payload_extra,
            chunks=self._chunker.split(extracted.content),
        )

    # ------------------------------------------------------------------
    # Phase 2: embedding and storage
    # ------------------------------------------------------------------

    @staticmethod
    def _build_chunk(document: Document, index: int, text: str) -> Chunk:
        return Chunk(
            id=chunk_point_id(document.file_hash, index),
            document_id=document.id,
            content=text,
            chunk_index=index,
        )

    async def _ingest_chunk(
        self,
        document: Document,
        chunk: Chunk,
        gate: asyncio.Semaphore,
        deadline: float | None,
        failures: FailureLog,
    ) -> bool:
        """Embedded -> Stored for one chunk. Returns True once stored."""
        stage: FailureStage
        try:
            await _run_gated(
                gate, deadline, lambda: self._embed_and_store(document, chunk)
            )
            return True
        except EmbeddingError as exc:
            stage, error = "embedding", exc
        except StorageError as exc:
            stage, error = "storage", exc
        except DeadlineExceededError as exc:
            stage, error = "deadline", exc

        await self._fail(
            failures, stage, document.path, error, document.id, chunk.chunk_index
        )
        return False

    async def _embed_and_store(self, document: Document, chunk: Chunk) -> None:
        vector = await self._with_retries(
            lambda: self._embedder.embed(chunk.content),
            f"embed chunk {chunk.chunk_index} of {document.metadata.filename}",
        )
        payload = self._build_payload(document, chunk)
        await self._with_retries(
            lambda: self._store.upsert(str(chunk.id), vector, payload),
            f"store chunk {chunk.chunk_index} of {document.metadata.filename}",
        )

    def _build_payload(
        self, document: Document, chunk: Chunk
    ) -> dict[str, PayloadValue]:
        meta = document.metadata
        payload = ChunkPayload(
            document_id=str(document.id),
            text=chunk.content,
            source=meta.filename,
            chunk_index=chunk.chunk_index,
            file_hash=document.file_hash,
            created_at=document.created_at.isoformat(timespec="seconds"),
            department=meta.department,
            document_type=meta.document_type,
            reference_id=meta.reference_id,
            **document.extra,
        )
        return payload.to_payload()

    async def _with_retries(
        self, operation: Callable[[], Awaitable[T]], description: str
    ) -> T:
        """Run ``operation``, retrying gateway errors with linear backoff."""
        attempt = 1
        while True:
            try:
                return await operation()
            except (EmbeddingError, StorageError) as exc:
                if attempt > self._max_retries:
                    raise
                delay = self._retry_delay * attempt
                self._logger.warning(
                    "Failed to %s (attempt %d/%d), retrying in %.1fs: %s",
                    description,
                    attempt,
                    self._max_retries + 1,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)
                attempt += 1

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fail(
        self,
        failures: FailureLog,
        stage: FailureStage,
        path: str,
        exc: IngestionError,
        document_id: uuid.UUID | None = None,
        chunk_index: int | None = None,
    ) -> None:
        """Log and record a document- or chunk-level failure."""
        if chunk_index is None:
            self._logger.warning("Skipping %s (%s): %s", path, stage, exc)
        else:
            self._logger.warning(
                "Skipping chunk %d of %s (%s): %s", chunk_index, path, stage, exc
            )
        await failures.record(
            IngestionFailure(
                stage=stage,
                path=path,
                error_type=type(exc).__name__,
                message=str(exc),
                document_id=document_id,
                chunk_index=chunk_index,
            )
        )


async def _run_gated(
    gate: asyncio.Semaphore,
    deadline: float | None,
    work: Callable[[], Awaitable[T]],
) -> T:
    """
    Run ``work`` under ``gate`` and the call deadline.

    Raises:
        DeadlineExceededError: If the deadline passed before ``work``
            started (it is never launched) or while it was in flight.
    """
    started = False
    try:
        async with asyncio.timeout_at(deadline):
            async with gate:
                now = asyncio.get_running_loop().time()
                if deadline is not None and now >= deadline:
                    raise DeadlineExceededError("Deadline passed before task started")
                started = True
                return await work()
    except TimeoutError as exc:
        state = "abandoned in flight" if started else "never started"
        raise DeadlineExceededError(f"Deadline exceeded; task {state}", exc) from exc


async def _gather_all(coros: Iterable[Awaitable[T]]) -> list[T]:
    """
    Await every coroutine, then re-raise the first unexpected error.

    Pipeline tasks handle their own IngestionErrors, so anything left
    here is a bug; siblings still run to completion first.
    """
    results = await asyncio.gather(*coros, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def _pick(value: T | None, default: T) -> T:
    return default if value is None else value


def _validate_metadata(metadata: DocumentMetadataMap) -> None:
    for path, fields in metadata.items():
        reserved = RESERVED_PAYLOAD_KEYS.intersection(fields)
        if reserved:
            keys = ", ".join(sorted(reserved))
            raise ConfigurationError(
                f"Metadata for {path} overrides reserved keys: {keys}"
            )
        for key, value in fields.items():
            if value is not None and not isinstance(value, str | int | float | bool):
                raise ConfigurationError(
                    f"Metadata value for {path}:{key} must be a primitive, "
                    f"got {type(value).__name__}"
                )
