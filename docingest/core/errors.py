"""
Error Taxonomy

Typed exceptions raised by the ingestion pipeline and its gateways.

Propagation:
    - ConfigurationError and NoDocumentsError are fatal to a whole call.
    - Every other kind is caught per document or per chunk by the
      pipeline and turned into an ``IngestionFailure`` entry.
"""

from __future__ import annotations


class IngestionError(Exception):
    """
    Base class for all pipeline errors.

    Attributes:
        cause: The originating exception, if any. Also set as
            ``__cause__`` when raised with ``raise ... from exc``.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConfigurationError(IngestionError):
    """Invalid chunking or concurrency parameters."""


class NoDocumentsError(IngestionError):
    """No document paths were supplied."""


class ExtractionError(IngestionError):
    """Text could not be extracted from a document."""


class UnsupportedFormatError(ExtractionError):
    """File extension has no registered extractor."""


class DocumentIOError(ExtractionError):
    """File is missing, unreadable, or could not be decoded."""


class EmbeddingError(IngestionError):
    """Embedding provider call failed or returned an empty vector."""


class StorageError(IngestionError):
    """Vector store rejected, failed, or malformed an upsert."""


class DeadlineExceededError(IngestionError):
    """Work was abandoned or never started because the call deadline passed."""
