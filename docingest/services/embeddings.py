"""
Embedding Gateway

Vector embeddings via the Ollama embeddings API.

Design:
    - Async HTTP calls via httpx (non-blocking).
    - One request per chunk; no shared mutable state, so any number
      of chunks can be embedded concurrently.
    - Every failure mode surfaces as EmbeddingError with the
      originating exception kept as its cause. No retries here.
"""

from __future__ import annotations

import logging

import httpx

from docingest.core.config import settings
from docingest.core.errors import EmbeddingError

logger = logging.getLogger(__name__)


class EmbeddingGateway:
    """
    Async embedding client backed by Ollama.

    An ``httpx.AsyncClient`` may be injected to share a connection
    pool across calls (or to plug in a mock transport in tests).
    Without one, each call opens a short-lived client.

    Usage::

        gateway = EmbeddingGateway()
        vector = await gateway.embed("Quantum computers use qubits...")
        assert len(vector) > 0
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the embedding gateway.

        Args:
            base_url: Ollama API base URL (default from config).
            model: Embedding model name (default from config).
            timeout: Request timeout in seconds (default from config).
            client: Optional shared HTTP client.
        """
        self._base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip("/")
        self._model = model or settings.EMBEDDING_MODEL
        self._timeout = timeout or settings.EMBEDDING_TIMEOUT
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, text: str) -> list[float]:
        """
        Generate an embedding vector for a chunk of text.

        Args:
            text: Chunk text to embed.

        Returns:
            Non-empty list of floats.

        Raises:
            EmbeddingError: On connection failure, timeout, non-success
                status, malformed body, or an empty vector.
        """
        url = f"{self._base_url}/api/embeddings"
        payload = {"model": self._model, "prompt": text}

        try:
            if self._client is not None:
                response = await self._client.post(
                    url, json=payload, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise EmbeddingError(
                f"Embedding request failed with status {exc.response.status_code}",
                exc,
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingError(
                f"Embedding provider unreachable ({type(exc).__name__}): {exc}",
                exc,
            ) from exc
        except ValueError as exc:
            raise EmbeddingError(f"Malformed embedding response: {exc}", exc) from exc

        return self._parse_vector(data)

    def _parse_vector(self, data: object) -> list[float]:
        """Validate the response body and return the embedding."""
        vector = data.get("embedding") if isinstance(data, dict) else None
        if not isinstance(vector, list):
            raise EmbeddingError("Malformed embedding response: no 'embedding' list")
        if not vector:
            raise EmbeddingError(f"Empty embedding returned by model '{self._model}'")
        try:
            return [float(value) for value in vector]
        except (TypeError, ValueError) as exc:
            raise EmbeddingError(f"Non-numeric embedding value: {exc}", exc) from exc

    async def health_check(self) -> bool:
        """
        Check if Ollama is reachable.

        Returns:
            True if the Ollama API responds, False otherwise.
        """
        url = f"{self._base_url}/api/tags"
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=5.0)
            else:
                async with httpx.AsyncClient(timeout=5.0) as client:
                    response = await client.get(url)
            return response.status_code == 200
        except httpx.HTTPError:
            return False
