"""
HTTP Application Unit Tests

Tests for the health endpoint and the ingestion route with the
pipeline dependency overridden by one wired to in-memory fakes.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docingest.api.v1.ingest import get_pipeline
from docingest.main import app
from docingest.services.chunking import TextChunker
from docingest.services.pipeline import IngestionPipeline
from tests.conftest import FakeEmbedder, FakeVectorStore


@pytest.fixture
def client():
    """TestClient whose pipeline talks to fakes instead of Ollama/Qdrant."""
    store = FakeVectorStore()

    def _pipeline() -> IngestionPipeline:
        return IngestionPipeline(
            chunker=TextChunker(chunk_size=5, chunk_overlap=2),
            embedder=FakeEmbedder(),
            store=store,
            max_retries=0,
        )

    app.dependency_overrides[get_pipeline] = _pipeline
    with TestClient(app) as test_client:
        test_client.store = store
        yield test_client
    app.dependency_overrides.clear()


def test_health_check(client):
    """Verify /health endpoint returns correct response structure."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "docingest"
    assert "environment" in data


def test_ingest_returns_report(client, fox_txt: Path, tmp_path: Path):
    """Partial failure still answers 200 with the failure listed."""
    response = client.post(
        "/api/v1/ingest",
        json={"paths": [str(fox_txt), str(tmp_path / "missing.txt")]},
    )

    assert response.status_code == 200
    report = response.json()
    assert report["documents_total"] == 2
    assert report["documents_skipped"] == 1
    assert report["chunks_stored"] == 4
    assert report["failures"][0]["stage"] == "extraction"
    assert len(client.store.points) == 4


def test_ingest_passes_metadata(client, fox_txt: Path):
    response = client.post(
        "/api/v1/ingest",
        json={
            "paths": [str(fox_txt)],
            "metadata": {str(fox_txt): {"department": "ops"}},
        },
    )

    assert response.status_code == 200
    assert {p.payload["department"] for p in client.store.points.values()} == {"ops"}


def test_ingest_rejects_empty_paths(client):
    response = client.post("/api/v1/ingest", json={"paths": []})

    assert response.status_code == 422


def test_ingest_rejects_reserved_metadata(client, fox_txt: Path):
    response = client.post(
        "/api/v1/ingest",
        json={
            "paths": [str(fox_txt)],
            "metadata": {str(fox_txt): {"document_id": "x"}},
        },
    )

    assert response.status_code == 422
    assert "reserved" in response.json()["detail"]
