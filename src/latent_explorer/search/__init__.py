"""Ranking and query orchestration over the embedding index."""

from .coordinator import SearchResult, SearchState, SemanticSearchCoordinator, notes_for_concept
from .ranker import (
    DEFAULT_WEIGHTS,
    RankingWeights,
    ScoredDocument,
    cosine_similarity,
    query_tokens,
    rank,
    score_boost,
)

__all__ = [
    "SearchResult",
    "SearchState",
    "SemanticSearchCoordinator",
    "notes_for_concept",
    "DEFAULT_WEIGHTS",
    "RankingWeights",
    "ScoredDocument",
    "cosine_similarity",
    "query_tokens",
    "rank",
    "score_boost",
]
