"""
Pytest Configuration and Fixtures

Shared fakes for the embedding provider and the vector store, plus
sample document files. Unit tests run entirely offline.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from docingest.core.errors import EmbeddingError, StorageError
from docingest.models.schemas import PayloadValue, StoredRecord
from docingest.services.chunking import TextChunker
from docingest.services.pipeline import IngestionPipeline

# ---------------------------------------------------------------------------
# Fake gateways
# ---------------------------------------------------------------------------


class FakeEmbedder:
    """
    In-memory embedding provider.

    Returns a 4-dim vector derived from the text length. Texts for
    which ``fail_when`` returns True raise EmbeddingError, as the real
    gateway does for an empty vector. Tracks peak concurrency.
    """

    def __init__(
        self,
        fail_when: Callable[[str], bool] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._fail_when = fail_when or (lambda text: False)
        self._delay = delay

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            if self._fail_when(text):
                raise EmbeddingError(f"Empty embedding returned for '{text[:20]}'")
            return [float(len(text)), 1.0, 0.5, 0.25]
        finally:
            self.in_flight -= 1


class FakeVectorStore:
    """Dict-backed store with upsert-by-ID semantics."""

    def __init__(self, fail_when: Callable[[dict], bool] | None = None) -> None:
        self.points: dict[str, StoredRecord] = {}
        self.upsert_calls = 0
        self._fail_when = fail_when or (lambda payload: False)

    async def upsert(
        self,
        point_id: str,
        vector: list[float],
        payload: dict[str, PayloadValue],
    ) -> None:
        self.upsert_calls += 1
        if self._fail_when(payload):
            raise StorageError(f"Vector store returned 500 for point {point_id}")
        self.points[point_id] = StoredRecord(
            point_id=point_id, vector=vector, payload=dict(payload)
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def pipeline_logger() -> logging.Logger:
    """Explicit logger threaded through the pipeline under test."""
    return logging.getLogger("tests.pipeline")


@pytest.fixture
def make_pipeline(
    embedder: FakeEmbedder,
    store: FakeVectorStore,
    pipeline_logger: logging.Logger,
) -> Callable[..., IngestionPipeline]:
    """Factory for pipelines wired to the fakes with small chunks and no retry delay."""

    def _make(**overrides) -> IngestionPipeline:
        options = {
            "chunker": TextChunker(chunk_size=5, chunk_overlap=2),
            "embedder": embedder,
            "store": store,
            "extraction_concurrency": 2,
            "embedding_concurrency": 3,
            "max_retries": 0,
            "retry_delay_seconds": 0.0,
            "logger": pipeline_logger,
        }
        options.update(overrides)
        return IngestionPipeline(**options)

    return _make


@pytest.fixture
def fox_txt(tmp_path: Path) -> Path:
    """12-word text file producing 4 chunks at size=5, overlap=2."""
    path = tmp_path / "fox.txt"
    path.write_text(
        "The quick brown fox jumps over the lazy dog near the riverbank.",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def classified_txt(tmp_path: Path) -> Path:
    """Text file following the department_type_reference naming convention."""
    path = tmp_path / "hr_policy_REF-001.txt"
    path.write_text("Employees accrue two days of leave per month.", encoding="utf-8")
    return path


@pytest.fixture
def sample_csv(tmp_path: Path) -> Path:
    path = tmp_path / "prices.csv"
    path.write_text("item,price\napple,1.20\npear,0.95\n", encoding="utf-8")
    return path
