"""
Semantic search orchestration.

Embeds a query, ranks the indexed notes, extracts surrounding concepts and
lays them out. Every collaborator is injected, so several coordinators can
coexist (one per view, one per test).
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..config import Settings
from ..embeddings import Embedder
from ..errors import EmbeddingServiceUnavailable, NoIndexedDocuments, NoMatchesFound
from ..layout import ForceLayoutEngine, LayoutPoint
from ..storage import EmbeddingRecord, VectorStore
from .ranker import RankingWeights, ScoredDocument, query_tokens, rank

if TYPE_CHECKING:
    from ..concepts import ConceptCandidate, ConceptExtractor

logger = logging.getLogger(__name__)


class SearchState(str, enum.Enum):
    IDLE = "idle"
    EMBEDDING = "embedding"
    RANKING = "ranking"
    EXTRACTING_CONCEPTS = "extracting_concepts"
    LAYING_OUT = "laying_out"
    READY = "ready"
    FAILED = "failed"


@dataclass
class SearchResult:
    """Everything a view needs to render one query."""

    query_text: str
    query_vector: list[float]
    documents: list[ScoredDocument]
    concepts: list[ConceptCandidate]
    layout: list[LayoutPoint] = field(default_factory=list)

    def position_of(self, term: str) -> LayoutPoint | None:
        for point in self.layout:
            if not point.fixed and point.label == term:
                return point
        return None


def notes_for_concept(store: VectorStore, term: str) -> list[EmbeddingRecord]:
    """Indexed notes whose title or path contains *term*, case-insensitively."""
    needle = term.strip().lower()
    if not needle:
        return []
    matches = [
        record
        for record in store.scan_all()
        if needle in record.metadata.title.lower() or needle in record.id.lower()
    ]
    return sorted(matches, key=lambda record: record.id)


class SemanticSearchCoordinator:
    """Run one query through embed → rank → extract concepts → lay out."""

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        extractor: ConceptExtractor,
        *,
        layout_engine: ForceLayoutEngine | None = None,
        settings: Settings | None = None,
        weights: RankingWeights | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.extractor = extractor
        self.layout_engine = layout_engine or ForceLayoutEngine()
        self.settings = settings or Settings()
        self.weights = weights
        self.state = SearchState.IDLE
        self.current: SearchResult | None = None

    def search(self, query_text: str) -> SearchResult:
        """Run *query_text* and make the result the current one.

        Raises ``EmbeddingServiceUnavailable`` when the query cannot be
        embedded, and the empty-result states ``NoIndexedDocuments`` /
        ``NoMatchesFound``.
        """
        query = query_text.strip()
        if not query:
            raise ValueError("Please enter a search query")

        # A new query supersedes whatever layout is on screen.
        if self.current is not None:
            self.layout_engine.discard()
            self.current = None

        try:
            return self._run(query)
        except Exception:
            self.state = SearchState.FAILED
            raise

    def notes_for_concept(self, term: str) -> list[EmbeddingRecord]:
        return notes_for_concept(self.store, term)

    def _run(self, query: str) -> SearchResult:
        settings = self.settings
        normalized = query.lower()
        min_length = (self.weights or RankingWeights()).min_token_length
        query_terms = query_tokens(normalized, min_length=min_length) or [normalized]

        self.state = SearchState.EMBEDDING
        query_vector = self._embed_query(query)

        self.state = SearchState.RANKING
        records = self.store.scan_all()
        if not records:
            raise NoIndexedDocuments()
        documents = rank(query_vector, normalized, records, settings.top_k, weights=self.weights)
        if not documents:
            raise NoMatchesFound(query)
        logger.info(
            "Ranked %d notes for %r (top score %.3f)",
            len(documents),
            query,
            documents[0].score,
        )

        self.state = SearchState.EXTRACTING_CONCEPTS
        concepts = self.extractor.extract_concepts(
            query_vector,
            query_terms,
            documents[: settings.concept_source_k],
            settings.max_concepts,
        )
        if not concepts:
            logger.info("No concepts extracted for %r", query)

        self.state = SearchState.LAYING_OUT
        layout = self.layout_engine.initialize(concepts, query_label=query)

        result = SearchResult(
            query_text=query,
            query_vector=query_vector,
            documents=documents,
            concepts=concepts,
            layout=layout,
        )
        self.current = result
        self.state = SearchState.READY
        return result

    def _embed_query(self, query: str) -> list[float]:
        try:
            return list(self.embedder.embed_query(query))
        except EmbeddingServiceUnavailable:
            raise
        except TimeoutError as exc:
            raise EmbeddingServiceUnavailable(f"Embedding the query timed out: {exc}") from exc
