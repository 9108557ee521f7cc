"""Indexing components for latent_explorer."""

from .maintainer import IndexMaintainer, IndexOutcome, IndexReport, truncate_words
from .notes import NoteDocument, VaultSource, extract_tags, extract_wikilinks

__all__ = [
    "IndexMaintainer",
    "IndexOutcome",
    "IndexReport",
    "truncate_words",
    "NoteDocument",
    "VaultSource",
    "extract_tags",
    "extract_wikilinks",
]
