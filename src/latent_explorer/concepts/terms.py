"""
Term statistics for local concept discovery.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from typing import Iterable, Sequence

_MARKUP = re.compile(r"[#*_`\[\]()]")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NUMBER = re.compile(r"^\d+$")
_URL = re.compile(r"^(https?|ftp|file)")

STOP_WORDS: frozenset[str] = frozenset(
    """
    the be to of and a in that have it for not on with as you do at this but his
    from they we say her she or an will my one all would there their what so up
    out if about who get which go me when make can like time no just him know
    take people into year your good some could them see other than then now look
    only come its over think also back after use two how our work first well way
    even new want because any these give day most us is was are been has had
    were said did having may should does being such through where much those
    very here yeah really something things thing more many mean means kind sort
    type types maybe perhaps question questions answer answers seems seem might
    must shall need needs needed probably actually basically literally generally
    usually often sometimes always never every each either neither both few
    several between among before during within without against since until
    while though although however therefore thus hence whether going doing made
    making used using called call found find given became become comes goes gone
    went enough quite rather somewhat fairly pretty almost nearly hardly barely
    simply merely certainly surely indeed thought knew tell told feel felt show
    shown tried asked help helped turn turned about above below again further
    once another
    """.split()
)


def tokenize(text: str, *, min_length: int = 5, stop_words: frozenset[str] = STOP_WORDS) -> list[str]:
    """Split note text into lower-cased candidate terms.

    Markup punctuation is stripped; URLs, pure numbers, stop words and short
    tokens are dropped.
    """
    tokens: list[str] = []
    for raw in _MARKUP.sub(" ", text.lower()).split():
        if len(raw) < min_length or raw in stop_words:
            continue
        if _NUMBER.match(raw) or _URL.match(raw):
            continue
        cleaned = _NON_ALNUM.sub("", raw)
        if len(cleaned) < min_length or cleaned in stop_words or _NUMBER.match(cleaned):
            continue
        tokens.append(cleaned)
    return tokens


def document_frequencies(documents: Iterable[Sequence[str]]) -> tuple[Counter[str], int]:
    """Count, per term, how many token lists contain it."""
    frequencies: Counter[str] = Counter()
    total = 0
    for tokens in documents:
        frequencies.update(set(tokens))
        total += 1
    return frequencies, total


def tf_idf(
    documents: Sequence[Sequence[str]],
    *,
    idf_documents: Sequence[Sequence[str]] | None = None,
) -> list[tuple[str, float]]:
    """Score terms of *documents* by term frequency times smoothed IDF.

    IDF is computed against *idf_documents* when given (typically a corpus
    sample), otherwise against *documents* themselves. Results are sorted by
    descending score, ties broken alphabetically.
    """
    term_counts: Counter[str] = Counter()
    for tokens in documents:
        term_counts.update(tokens)
    if not term_counts:
        return []

    frequencies, total = document_frequencies(idf_documents if idf_documents is not None else documents)
    scored = [
        (term, count * (math.log((1 + total) / (1 + frequencies.get(term, 0))) + 1.0))
        for term, count in term_counts.items()
    ]
    scored.sort(key=lambda item: (-item[1], item[0]))
    return scored


def stride_sample(items: Sequence, limit: int) -> list:
    """Deterministically pick at most *limit* evenly spaced items."""
    if limit <= 0:
        return []
    if len(items) <= limit:
        return list(items)
    step = len(items) / limit
    return [items[int(i * step)] for i in range(limit)]
