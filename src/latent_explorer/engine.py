"""
Wire the engine components together from ``Settings``.

The CLI and the server share these builders; library callers are free to
construct the components directly instead.
"""

from __future__ import annotations

from .concepts import build_concept_extractor
from .config import Settings
from .embeddings import Embedder, build_embedder
from .indexing import IndexMaintainer, VaultSource
from .search import SemanticSearchCoordinator
from .storage import VectorStore


def make_embedder(settings: Settings) -> Embedder:
    return build_embedder(
        settings.embedding_backend,
        local_url=settings.local_embedding_url,
        timeout=settings.embed_timeout,
    )


def make_coordinator(
    store: VectorStore,
    settings: Settings,
    embedder: Embedder | None = None,
) -> SemanticSearchCoordinator:
    embedder = embedder or make_embedder(settings)
    extractor = build_concept_extractor(settings, embedder, store=store)
    return SemanticSearchCoordinator(store, embedder, extractor, settings=settings)


def make_maintainer(
    store: VectorStore,
    settings: Settings,
    vault: str | None = None,
    embedder: Embedder | None = None,
) -> IndexMaintainer:
    source = VaultSource(vault) if vault is not None else None
    return IndexMaintainer(
        store,
        embedder or make_embedder(settings),
        source=source,
        settings=settings,
    )
