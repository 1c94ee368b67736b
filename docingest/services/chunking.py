"""
Chunking Service

Splits extracted document text into overlapping word windows
suitable for embedding and vector retrieval.

Boundaries are counted in whitespace-delimited words, so a chunk
never splits a word. Identical (text, chunk_size, overlap) inputs
always yield the identical sequence of chunks.
"""

from __future__ import annotations

import logging

from docingest.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE: int = 512
DEFAULT_CHUNK_OVERLAP: int = 50


def validate_chunk_params(chunk_size: int, overlap: int) -> None:
    """
    Raise ConfigurationError unless ``chunk_size > overlap >= 0``.

    A non-positive step would never advance the window.
    """
    if chunk_size <= 0:
        raise ConfigurationError(f"chunk_size ({chunk_size}) must be positive")
    if overlap < 0:
        raise ConfigurationError(f"overlap ({overlap}) must not be negative")
    if overlap >= chunk_size:
        raise ConfigurationError(
            f"overlap ({overlap}) must be less than chunk_size ({chunk_size})"
        )


def chunk_text(text: str, chunk_size: int, overlap: int) -> list[str]:
    """
    Split ``text`` into overlapping chunks of at most ``chunk_size`` words.

    Args:
        text: Source text. Any whitespace separates words.
        chunk_size: Maximum words per chunk.
        overlap: Words shared between consecutive chunks.

    Returns:
        Space-joined word windows in document order. Empty or
        whitespace-only text yields an empty list.

    Raises:
        ConfigurationError: If the parameters cannot make progress.
    """
    validate_chunk_params(chunk_size, overlap)

    words = text.split()
    step = chunk_size - overlap
    chunks: list[str] = []

    for start in range(0, len(words), step):
        end = min(start + chunk_size, len(words))
        chunks.append(" ".join(words[start:end]))
        if end == len(words):
            break

    return chunks


class TextChunker:
    """
    Configured word chunker.

    Parameters are validated once at construction so a bad
    configuration fails before any document is touched.

    Usage::

        chunker = TextChunker(chunk_size=5, chunk_overlap=2)
        chunker.split("The quick brown fox jumps over the lazy dog")

    Args:
        chunk_size: Maximum words per chunk.
        chunk_overlap: Words shared between consecutive chunks.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> None:
        validate_chunk_params(chunk_size, chunk_overlap)
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    @property
    def chunk_size(self) -> int:
        """Maximum words per chunk."""
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        """Words shared between consecutive chunks."""
        return self._chunk_overlap

    def split(self, text: str) -> list[str]:
        """Split ``text`` with the configured window."""
        chunks = chunk_text(text, self._chunk_size, self._chunk_overlap)
        logger.debug(
            "Split %d chars into %d chunks (size=%d, overlap=%d)",
            len(text),
            len(chunks),
            self._chunk_size,
            self._chunk_overlap,
        )
        return chunks
