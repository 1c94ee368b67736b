"""
docingest Configuration

Centralized settings for the ingestion pipeline.
All values are loaded from environment variables or a .env file,
with defaults suitable for a local Ollama + Qdrant setup.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Optional env vars:
        OLLAMA_BASE_URL (http://localhost:11434), EMBEDDING_MODEL,
        EMBEDDING_TIMEOUT (30.0), QDRANT_URL (http://localhost:6333),
        QDRANT_COLLECTION (doc_chunks), QDRANT_TIMEOUT (10.0),
        CHUNK_SIZE (512), CHUNK_OVERLAP (50),
        EXTRACTION_CONCURRENCY (4), EMBEDDING_CONCURRENCY (8),
        MAX_RETRIES (1), RETRY_DELAY_SECONDS (1.0),
        INGESTION_TIMEOUT (unset), LOG_LEVEL (INFO), LOG_FORMAT (default)
    """

    PROJECT_NAME: str = "docingest"

    # Embedding provider (Ollama)
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    EMBEDDING_MODEL: str = "snowflake-arctic-embed:22m"
    EMBEDDING_TIMEOUT: float = 30.0

    # Vector store (Qdrant REST API)
    QDRANT_URL: str = "http://localhost:6333"
    QDRANT_COLLECTION: str = "doc_chunks"
    QDRANT_TIMEOUT: float = 10.0

    # Chunking, counted in words
    CHUNK_SIZE: int = 512
    CHUNK_OVERLAP: int = 50

    # Concurrency caps per pipeline phase
    EXTRACTION_CONCURRENCY: int = 4
    EMBEDDING_CONCURRENCY: int = 8

    # Retry policy for embedding and storage calls
    MAX_RETRIES: int = 1
    RETRY_DELAY_SECONDS: float = 1.0

    # Overall deadline for one ingestion call, in seconds
    INGESTION_TIMEOUT: float | None = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "default"  # "default", "simple" (message only) or "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )


settings = Settings()
