"""docingest — document chunking, embedding and vector-store ingestion."""

__version__ = "0.1.0"
