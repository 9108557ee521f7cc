"""
Storage interfaces and data models for the embedding index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence


@dataclass(frozen=True)
class NoteMetadata:
    """Descriptive metadata captured for an indexed note."""

    title: str
    path: str
    modified_at: float
    tags: frozenset[str] = field(default_factory=frozenset)
    outgoing_links: tuple[str, ...] = ()


@dataclass(frozen=True)
class EmbeddingRecord:
    """One embedded note, keyed by its path."""

    id: str
    vector: tuple[float, ...]
    snippet: str
    metadata: NoteMetadata
    indexed_at: float


@dataclass(frozen=True)
class IndexStats:
    """Summary of what the store currently holds."""

    total_records: int
    dimension: int | None
    last_indexed_at: float | None
    by_folder: dict[str, int]


class VectorStore(Protocol):
    """Protocol for persistence operations used by indexing and search."""

    def put(
        self,
        id: str,
        vector: Sequence[float],
        snippet: str,
        metadata: NoteMetadata,
    ) -> None:
        """Insert or overwrite the record for *id*."""

    def get(self, id: str) -> EmbeddingRecord | None:
        """Return the record for *id* if present."""

    def delete(self, id: str) -> None:
        """Remove the record for *id*; absent ids are ignored."""

    def scan_all(self) -> list[EmbeddingRecord]:
        """Return every stored record, in no particular order."""

    def needs_reindex(self, id: str, current_modified_at: float) -> bool:
        """Return True if *id* is missing or older than *current_modified_at*."""

    def count(self) -> int:
        """Count stored records."""

    def clear(self) -> None:
        """Drop every record."""

    def stats(self) -> IndexStats:
        """Summarize the store contents."""
