"""
Concept extraction: propose terms around a query and rank them by embedding
similarity to it.

Two strategies share the ``ConceptExtractor`` protocol. The local strategy
mines TF-IDF terms from the result notes; the delegated strategy asks a
``TermGenerator`` for candidates. Both embed their candidates in one batch
call and return at most ``max_concepts`` terms, best first, never echoing a
query term.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Protocol, Sequence

from ..embeddings import Embedder
from ..errors import ConceptGenerationError
from ..search.ranker import ScoredDocument, cosine_similarity
from ..storage import EmbeddingRecord, VectorStore
from .generators import (
    MAX_TERM_LENGTH,
    GenAITermGenerator,
    OllamaTermGenerator,
    TermGenerator,
    VocabularyTermGenerator,
    sanitize_terms,
)
from .terms import stride_sample, tf_idf, tokenize

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConceptCandidate:
    """A term proposed as representative of the query's neighbourhood."""

    term: str
    vector: tuple[float, ...]
    query_similarity: float
    support_count: int = 0

    @property
    def has_notes(self) -> bool:
        return self.support_count > 0


class ConceptExtractor(Protocol):
    """Protocol shared by the concept extraction strategies."""

    def extract_concepts(
        self,
        query_vector: Sequence[float],
        query_terms: Iterable[str],
        documents: Sequence[ScoredDocument],
        max_concepts: int,
    ) -> list[ConceptCandidate]:
        ...


def support_count(term: str, documents: Sequence[ScoredDocument]) -> int:
    """Number of documents whose title or path contains *term*."""
    needle = term.lower()
    return sum(
        1
        for doc in documents
        if needle in doc.metadata.title.lower() or needle in doc.metadata.path.lower()
    )


def _exclude_query_terms(terms: Iterable[str], query_terms: Iterable[str]) -> list[str]:
    excluded = {term.lower() for term in query_terms}
    kept: list[str] = []
    for term in terms:
        lowered = term.lower()
        if lowered and lowered not in excluded and lowered not in kept:
            kept.append(lowered)
    return kept


def _rank_terms(
    embedder: Embedder,
    query_vector: Sequence[float],
    terms: list[str],
    documents: Sequence[ScoredDocument],
    max_concepts: int,
) -> list[ConceptCandidate]:
    if not terms or max_concepts <= 0:
        return []
    vectors = embedder.embed_texts(terms)
    candidates = [
        ConceptCandidate(
            term=term,
            vector=tuple(vector),
            query_similarity=cosine_similarity(query_vector, vector),
            support_count=support_count(term, documents),
        )
        for term, vector in zip(terms, vectors)
    ]
    candidates.sort(key=lambda c: (-c.query_similarity, c.term))
    return candidates[:max_concepts]


class LocalStatisticalExtractor:
    """Mine concept terms from the result notes with TF-IDF.

    When a store is given, IDF is computed against a deterministic sample of
    the whole index; otherwise against the result set itself.
    """

    def __init__(
        self,
        embedder: Embedder,
        *,
        store: VectorStore | None = None,
        candidate_pool: int = 20,
        idf_sample_size: int = 500,
        min_token_length: int = 5,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.candidate_pool = candidate_pool
        self.idf_sample_size = idf_sample_size
        self.min_token_length = min_token_length

    def extract_concepts(
        self,
        query_vector: Sequence[float],
        query_terms: Iterable[str],
        documents: Sequence[ScoredDocument],
        max_concepts: int,
    ) -> list[ConceptCandidate]:
        if not documents or max_concepts <= 0:
            return []

        doc_tokens = [
            tokenize(f"{doc.metadata.title} {doc.snippet}", min_length=self.min_token_length)
            for doc in documents
        ]
        scored = tf_idf(doc_tokens, idf_documents=self._idf_corpus())

        pool = max(self.candidate_pool, max_concepts)
        candidates = (term for term, _ in scored if len(term) <= MAX_TERM_LENGTH)
        terms = _exclude_query_terms(candidates, query_terms)[:pool]
        logger.debug("TF-IDF proposed %d candidate terms", len(terms))
        return _rank_terms(self.embedder, query_vector, terms, documents, max_concepts)

    def _idf_corpus(self) -> list[list[str]] | None:
        if self.store is None:
            return None
        records: list[EmbeddingRecord] = sorted(self.store.scan_all(), key=lambda r: r.id)
        sample = stride_sample(records, self.idf_sample_size)
        return [tokenize(f"{r.metadata.title} {r.snippet}", min_length=self.min_token_length) for r in sample]


class DelegatedExtractor:
    """Ask a term generator for candidates and rank them against the query."""

    def __init__(
        self,
        embedder: Embedder,
        generator: TermGenerator,
        *,
        oversample: float = 1.5,
    ) -> None:
        self.embedder = embedder
        self.generator = generator
        self.oversample = oversample

    def extract_concepts(
        self,
        query_vector: Sequence[float],
        query_terms: Iterable[str],
        documents: Sequence[ScoredDocument],
        max_concepts: int,
    ) -> list[ConceptCandidate]:
        if max_concepts <= 0:
            return []
        query_terms = list(query_terms)
        query = " ".join(query_terms)
        requested = math.ceil(max_concepts * self.oversample)

        try:
            raw = self.generator.generate_terms(query, requested)
        except ConceptGenerationError as exc:
            logger.warning("Concept generation failed for %r: %s", query, exc)
            return []

        terms = _exclude_query_terms(sanitize_terms(raw), query_terms)
        if not terms:
            logger.warning("No usable concepts generated for %r", query)
            return []
        return _rank_terms(self.embedder, query_vector, terms, documents, max_concepts)


def collect_vault_terms(records: Iterable[EmbeddingRecord], limit: int) -> list[str]:
    """Most frequent tags and title words across the indexed notes."""
    counts: Counter[str] = Counter()
    for record in records:
        counts.update(tag.lower() for tag in record.metadata.tags)
        counts.update(tokenize(record.metadata.title))
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return sanitize_terms([term for term, _ in ranked])[: max(limit, 0)]


def build_term_generator(
    settings: Settings,
    embedder: Embedder,
    store: VectorStore | None = None,
) -> TermGenerator:
    provider = settings.concept_provider
    if provider == "genai":
        return GenAITermGenerator(timeout=settings.embed_timeout)
    if provider == "ollama":
        return OllamaTermGenerator(
            settings.ollama_url,
            settings.ollama_model,
            timeout=settings.embed_timeout,
        )
    if provider == "vocabulary":
        vault_terms: list[str] = []
        if settings.vocabulary_vault_terms > 0 and store is not None:
            vault_terms = collect_vault_terms(store.scan_all(), settings.vocabulary_vault_terms)
        return VocabularyTermGenerator(embedder, vault_terms=vault_terms)
    raise ValueError(f"Unknown concept provider: {provider!r}")


def build_concept_extractor(
    settings: Settings,
    embedder: Embedder,
    store: VectorStore | None = None,
) -> ConceptExtractor:
    """Map the configured strategy/provider onto a concrete extractor."""
    if settings.concept_strategy == "local":
        return LocalStatisticalExtractor(embedder, store=store)
    if settings.concept_strategy == "delegated":
        return DelegatedExtractor(embedder, build_term_generator(settings, embedder, store))
    raise ValueError(f"Unknown concept strategy: {settings.concept_strategy!r}")
