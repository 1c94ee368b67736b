"""
Vector Store Gateway

Data access layer for the Qdrant vector index, spoken over its
REST API with httpx.

Key guarantees:
    - ``upsert``: keyed by point ID; writing the same ID again
      overwrites the point instead of duplicating it.
    - Transport failures, non-success statuses and malformed
      acknowledgements all surface as StorageError. A vector whose
      dimension does not match the collection is rejected by Qdrant
      with a 4xx status and reported the same way.

Collection lifecycle calls (create / delete / list) are exposed for
administrative tooling; the ingestion pipeline only upserts.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Final

import httpx
from pydantic import ValidationError

from docingest.core.config import settings
from docingest.core.errors import ConfigurationError, StorageError
from docingest.models.schemas import PayloadValue, StoredRecord

logger = logging.getLogger(__name__)

DISTANCES: Final[dict[str, str]] = {
    "cosine": "Cosine",
    "euclidean": "Euclid",
    "dot": "Dot",
}

# Operation statuses Qdrant reports for an accepted write
ACCEPTED_STATUSES: Final[frozenset[str]] = frozenset({"acknowledged", "completed"})


class VectorStoreGateway:
    """
    Async Qdrant client for point upserts and collection lifecycle.

    Usage::

        store = VectorStoreGateway(collection="doc_chunks")
        await store.upsert(point_id, vector, {"document_id": "...", "text": "..."})
    """

    def __init__(
        self,
        base_url: str | None = None,
        collection: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or settings.QDRANT_URL).rstrip("/")
        self._collection = collection or settings.QDRANT_COLLECTION
        self._timeout = timeout or settings.QDRANT_TIMEOUT
        self._client = client

    @property
    def collection(self) -> str:
        """Collection targeted by ``upsert``."""
        return self._collection

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def upsert(
        self,
        point_id: str,
        vector: list[float],
        payload: Mapping[str, PayloadValue],
    ) -> None:
        """
        Insert or overwrite a single point.

        Args:
            point_id: UUID string identifying the point.
            vector: Embedding, length must match the collection.
            payload: Flat mapping of string keys to primitive values.

        Raises:
            StorageError: If the point is invalid (such as an empty
                vector), the store is unreachable or rejects the write,
                or it returns a malformed acknowledgement.
        """
        try:
            record = StoredRecord(
                point_id=point_id, vector=vector, payload=dict(payload)
            )
        except ValidationError as exc:
            raise StorageError(f"Invalid point {point_id}: {exc}", exc) from exc

        body = {"points": [record.to_point()]}
        data = await self._request(
            "PUT",
            f"/collections/{self._collection}/points",
            json=body,
            params={"wait": "true"},
        )

        result = data.get("result")
        status = result.get("status") if isinstance(result, dict) else None
        if status not in ACCEPTED_STATUSES:
            raise StorageError(
                f"Malformed upsert acknowledgement for point {point_id}: {data!r}"
            )

        logger.debug("Stored point %s in '%s'", point_id, self._collection)

    # ------------------------------------------------------------------
    # Collection lifecycle
    # ------------------------------------------------------------------

    async def create_collection(
        self,
        name: str,
        vector_size: int,
        distance: str = "cosine",
    ) -> None:
        """Create a collection with a fixed vector dimension."""
        if vector_size <= 0:
            raise ConfigurationError(f"vector_size ({vector_size}) must be positive")
        try:
            metric = DISTANCES[distance.lower()]
        except KeyError:
            raise ConfigurationError(
                f"Invalid distance metric '{distance}'. "
                f"Use: {', '.join(DISTANCES)}"
            ) from None

        await self._request(
            "PUT",
            f"/collections/{name}",
            json={"vectors": {"size": vector_size, "distance": metric}},
        )
        logger.info("Collection created: %s (size=%d, %s)", name, vector_size, metric)

    async def delete_collection(self, name: str) -> None:
        """Drop a collection and all of its points."""
        await self._request("DELETE", f"/collections/{name}")
        logger.info("Collection deleted: %s", name)

    async def list_collections(self) -> list[str]:
        """Return the names of all collections."""
        data = await self._request("GET", "/collections")
        try:
            return [item["name"] for item in data["result"]["collections"]]
        except (KeyError, TypeError) as exc:
            raise StorageError(f"Malformed collection listing: {data!r}", exc) from exc

    async def collection_exists(self, name: str) -> bool:
        return name in await self.list_collections()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """
        Send one request and return the decoded ``{"status": "ok"}`` body.

        Raises:
            StorageError: On any transport, status or decoding failure.
        """
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(
                    method, url, timeout=self._timeout, **kwargs
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"Vector store returned {exc.response.status_code} for "
                f"{method} {path}: {exc.response.text}",
                exc,
            ) from exc
        except httpx.HTTPError as exc:
            raise StorageError(
                f"Vector store unreachable ({type(exc).__name__}): {exc}",
                exc,
            ) from exc
        except ValueError as exc:
            raise StorageError(f"Malformed vector store response: {exc}", exc) from exc

        if not isinstance(data, dict) or data.get("status") != "ok":
            raise StorageError(f"Unexpected vector store response: {data!r}")
        return data
