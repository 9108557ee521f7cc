"""Storage backends for the embedding index."""

from .base import EmbeddingRecord, IndexStats, NoteMetadata, VectorStore
from .duckdb import DuckDBVectorStore

__all__ = [
    "EmbeddingRecord",
    "IndexStats",
    "NoteMetadata",
    "VectorStore",
    "DuckDBVectorStore",
]
