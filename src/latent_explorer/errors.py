"""
Typed errors raised by the retrieval and layout engine.

``NoIndexedDocuments`` and ``NoMatchesFound`` derive from ``EmptyResult``
rather than from the failure branch: they describe valid, low-information
outcomes and callers are expected to render them, not report them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .indexing.maintainer import IndexReport


class LatentExplorerError(Exception):
    """Base class for every error raised by latent_explorer."""


class StorageError(LatentExplorerError):
    """The vector store is unavailable, uninitialized or corrupt."""


class DimensionMismatch(LatentExplorerError):
    """Two vectors that must share a dimensionality do not."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Vector dimensions don't match: expected {expected}, got {actual}. "
            "The index was probably built with a different embedding model."
        )
        self.expected = expected
        self.actual = actual


class EmbeddingServiceUnavailable(LatentExplorerError):
    """The embedding collaborator timed out, was unreachable or answered garbage."""


class ConceptGenerationError(LatentExplorerError):
    """A term generator failed; extractors degrade this to zero concepts."""


class TooManyFailures(LatentExplorerError):
    """A batch indexing run was aborted by the failure circuit breaker."""

    def __init__(self, message: str, report: IndexReport) -> None:
        super().__init__(message)
        self.report = report


class EmptyResult(Exception):
    """Base class for expected empty-result states."""


class NoIndexedDocuments(EmptyResult):
    """The vector store holds no records yet."""

    def __init__(self) -> None:
        super().__init__("No indexed notes found. Index the vault first.")


class NoMatchesFound(EmptyResult):
    """Ranking produced no documents for the query."""

    def __init__(self, query: str) -> None:
        super().__init__(f"No notes matched {query!r}.")
        self.query = query
