"""
Hybrid relevance ranking: embedding similarity plus lexical path/title boosts.

Pure embedding similarity under-ranks short or stub notes. The boosts use the
vault's own organization (folder names and note titles) as a prior.
"""

from __future__ import annotations

import math
import posixpath
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..errors import DimensionMismatch
from ..storage import EmbeddingRecord, NoteMetadata

_SEGMENT_WORD_SPLIT = re.compile(r"[\s\-_]+")
_TOKEN_STRIP = "\"'`.,;:!?()[]{}<>#*"


@dataclass(frozen=True)
class RankingWeights:
    """Additive boost constants; the defaults are tuned values, not laws."""

    path_segment: float = 0.12
    title: float = 0.08
    multi_word: float = 0.15
    min_token_length: int = 4
    abbreviation_min_length: int = 3


DEFAULT_WEIGHTS = RankingWeights()


@dataclass(frozen=True)
class ScoredDocument:
    """A note scored against one query."""

    id: str
    score: float
    vector: tuple[float, ...]
    metadata: NoteMetadata
    similarity: float = 0.0
    boost: float = 0.0
    snippet: str = ""


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*; 0.0 if either has zero norm."""
    if len(a) != len(b):
        raise DimensionMismatch(expected=len(a), actual=len(b))

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0 or norm_b == 0:
        return 0.0
    similarity = dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
    # Rounding can push parallel vectors a hair past 1.
    return max(-1.0, min(1.0, similarity))


def query_tokens(query_text: str, *, min_length: int = DEFAULT_WEIGHTS.min_token_length) -> list[str]:
    """Lower-cased, de-duplicated query words of at least *min_length* chars."""
    tokens: list[str] = []
    for raw in query_text.lower().split():
        token = raw.strip(_TOKEN_STRIP)
        if len(token) >= min_length and token not in tokens:
            tokens.append(token)
    return tokens


def _path_segments(path: str) -> list[str]:
    parts = [part for part in path.lower().split("/") if part]
    if parts:
        stem, ext = posixpath.splitext(parts[-1])
        if ext and stem:
            parts[-1] = stem
    return parts


def _segment_matches(segment: str, word: str, weights: RankingWeights) -> bool:
    for segment_word in _SEGMENT_WORD_SPLIT.split(segment):
        if not segment_word:
            continue
        if word in segment_word:
            return True
        # Folder abbreviations: "sci" matches "science", "comp" matches "computer".
        if len(segment_word) >= weights.abbreviation_min_length and word.startswith(segment_word):
            return True
    return False


def score_boost(
    tokens: Iterable[str],
    metadata: NoteMetadata,
    weights: RankingWeights = DEFAULT_WEIGHTS,
) -> float:
    """Sum of lexical boosts earned by *metadata* for the query *tokens*."""
    words = [token for token in tokens if len(token) >= weights.min_token_length]
    if not words:
        return 0.0

    segments = _path_segments(metadata.path)
    title = metadata.title.lower()
    boost = 0.0
    best_segment_hits = 0

    for segment in segments:
        hits = sum(1 for word in words if _segment_matches(segment, word, weights))
        boost += hits * weights.path_segment
        best_segment_hits = max(best_segment_hits, hits)

    boost += sum(weights.title for word in words if word in title)

    if best_segment_hits >= 2:
        boost += weights.multi_word
    return boost


def rank(
    query_vector: Sequence[float],
    query_text: str,
    records: Iterable[EmbeddingRecord],
    k: int,
    *,
    weights: RankingWeights | None = None,
) -> list[ScoredDocument]:
    """Score *records* against the query and return the best *k*.

    Scores are clamped to [0, 1]; ties go to the lexicographically smaller id.
    """
    weights = weights or DEFAULT_WEIGHTS
    if k <= 0:
        return []

    tokens = query_tokens(query_text, min_length=weights.min_token_length)
    scored: list[ScoredDocument] = []
    for record in records:
        similarity = cosine_similarity(query_vector, record.vector)
        boost = score_boost(tokens, record.metadata, weights)
        scored.append(
            ScoredDocument(
                id=record.id,
                score=min(1.0, max(0.0, similarity + boost)),
                vector=record.vector,
                metadata=record.metadata,
                similarity=similarity,
                boost=boost,
                snippet=record.snippet,
            )
        )

    scored.sort(key=lambda doc: (-doc.score, doc.id))
    return scored[:k]
