"""Concept discovery around a query."""

from .extractor import (
    ConceptCandidate,
    ConceptExtractor,
    DelegatedExtractor,
    LocalStatisticalExtractor,
    build_concept_extractor,
    build_term_generator,
    collect_vault_terms,
    support_count,
)
from .generators import (
    GenAITermGenerator,
    OllamaTermGenerator,
    TermGenerator,
    VocabularyTermGenerator,
    sanitize_terms,
)

__all__ = [
    "ConceptCandidate",
    "ConceptExtractor",
    "DelegatedExtractor",
    "LocalStatisticalExtractor",
    "build_concept_extractor",
    "build_term_generator",
    "collect_vault_terms",
    "support_count",
    "GenAITermGenerator",
    "OllamaTermGenerator",
    "TermGenerator",
    "VocabularyTermGenerator",
    "sanitize_terms",
]
