"""
Text Extraction Service

File processing step of the ingestion pipeline.
Extracts text from plain-text and CSV files, computes SHA-256
hashes for idempotent point IDs, and collects file metadata.

Supported formats:
    - Plain text (.txt): returned verbatim (UTF-8)
    - CSV (.csv): cells joined with ", ", one row per line

Filenames following ``<department>_<document-type>_<reference-id>.<ext>``
also yield classification metadata.
"""

from __future__ import annotations

import asyncio
import csv
import hashlib
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from docingest.core.errors import DocumentIOError, UnsupportedFormatError
from docingest.models.schemas import DocumentMetadata

logger = logging.getLogger(__name__)

FILE_TYPES: Final[dict[str, str]] = {".txt": "text", ".csv": "csv"}
SUPPORTED_EXTENSIONS: Final[frozenset[str]] = frozenset(FILE_TYPES)


@dataclass(frozen=True)
class ExtractedText:
    """Result of a successful extraction."""

    content: str
    file_hash: str
    metadata: DocumentMetadata


def classify_filename(filename: str) -> dict[str, str]:
    """
    Parse classification fields from a filename.

    ``hr_policy_REF-001.txt`` -> department ``hr``, document_type
    ``policy``, reference_id ``REF-001``. Names with fewer than three
    underscore-separated parts yield an empty mapping.
    """
    parts = Path(filename).stem.split("_")
    if len(parts) < 3:
        return {}
    return {
        "department": parts[0],
        "document_type": parts[1],
        "reference_id": "_".join(parts[2:]),
    }


class TextExtractor:
    """
    Async text extractor for document ingestion.

    Blocking I/O (file reads, CSV parsing) is offloaded to a thread
    pool via asyncio.to_thread so many documents can be extracted
    concurrently from the event loop.

    Usage::

        extractor = TextExtractor()
        extracted = await extractor.extract(Path("hr_policy_001.txt"))
        print(extracted.file_hash, extracted.metadata.department)
    """

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def extract(self, file_path: Path) -> ExtractedText:
        """
        Extract the text content of a file.

        Args:
            file_path: Absolute or relative path to the source file.

        Returns:
            ExtractedText with content, SHA-256 hash and metadata.

        Raises:
            UnsupportedFormatError: If the extension is not supported.
            DocumentIOError: If the file is missing, unreadable or
                cannot be decoded.
        """
        suffix = file_path.suffix.lower()
        if suffix not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFormatError(
                f"Unsupported file type: '{suffix or file_path.name}'. "
                f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
            )

        try:
            raw = await asyncio.to_thread(file_path.read_bytes)
        except (OSError, ValueError) as exc:
            # ValueError: pathlib rejects names such as ones with a NUL byte
            raise DocumentIOError(f"Cannot read {file_path}: {exc}", exc) from exc

        try:
            if suffix == ".csv":
                content = await asyncio.to_thread(self._parse_csv, raw)
            else:
                content = raw.decode("utf-8")
        except (UnicodeDecodeError, csv.Error) as exc:
            raise DocumentIOError(f"Cannot decode {file_path}: {exc}", exc) from exc

        metadata = DocumentMetadata(
            filename=file_path.name,
            file_size=len(raw),
            file_type=FILE_TYPES[suffix],
            **classify_filename(file_path.name),
        )

        logger.info(
            "Extracted %s: %s (%d bytes)",
            metadata.file_type,
            file_path.name,
            len(raw),
        )

        return ExtractedText(
            content=content,
            file_hash=self._compute_hash(raw),
            metadata=metadata,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _compute_hash(data: bytes) -> str:
        """Compute SHA-256 hex digest of raw bytes."""
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def _parse_csv(raw: bytes) -> str:
        """
        Render CSV rows as ``"a, b, c\\n"`` lines.

        This is a *synchronous* helper; call via ``asyncio.to_thread``.
        """
        reader = csv.reader(io.StringIO(raw.decode("utf-8"), newline=""))
        return "".join(", ".join(row) + "\n" for row in reader if row)
