"""
Latent Explorer - semantic search and concept maps over a markdown vault.

Notes are embedded into a local DuckDB index. A query is ranked against the
index with embedding similarity plus folder/title boosts, the neighbourhood
is summarized as concept terms, and the concepts are laid out around the
query with a small force-directed simulation.

Example usage:
    >>> from latent_explorer import DuckDBVectorStore, Settings
    >>> from latent_explorer.engine import make_coordinator
    >>> store = DuckDBVectorStore("index.duckdb")
    >>> result = make_coordinator(store, Settings.from_env()).search("memory")
"""

from .config import Settings, resolve_db_path
from .errors import (
    ConceptGenerationError,
    DimensionMismatch,
    EmbeddingServiceUnavailable,
    EmptyResult,
    LatentExplorerError,
    NoIndexedDocuments,
    NoMatchesFound,
    StorageError,
    TooManyFailures,
)
from .embeddings import EmbeddingProvider, LocalEmbeddingClient
from .indexing import IndexMaintainer, IndexOutcome, IndexReport, NoteDocument, VaultSource
from .layout import ForceLayoutEngine, LayoutConfig, LayoutPoint
from .search import SearchResult, SemanticSearchCoordinator
from .storage import DuckDBVectorStore, EmbeddingRecord, NoteMetadata

__all__ = [
    # Configuration
    "Settings",
    "resolve_db_path",
    # Errors
    "ConceptGenerationError",
    "DimensionMismatch",
    "EmbeddingServiceUnavailable",
    "EmptyResult",
    "LatentExplorerError",
    "NoIndexedDocuments",
    "NoMatchesFound",
    "StorageError",
    "TooManyFailures",
    # Components
    "EmbeddingProvider",
    "LocalEmbeddingClient",
    "IndexMaintainer",
    "IndexOutcome",
    "IndexReport",
    "NoteDocument",
    "VaultSource",
    "ForceLayoutEngine",
    "LayoutConfig",
    "LayoutPoint",
    "SearchResult",
    "SemanticSearchCoordinator",
    "DuckDBVectorStore",
    "EmbeddingRecord",
    "NoteMetadata",
]
