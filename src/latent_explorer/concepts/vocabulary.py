"""
Curated seed vocabulary for offline exploration of the embedding space.
"""

from __future__ import annotations

from typing import Iterable

_DOMAINS: dict[str, tuple[str, ...]] = {
    "technology": (
        "algorithm", "database", "programming", "software", "hardware", "network",
        "encryption", "protocol", "interface", "compiler", "architecture", "distributed",
        "blockchain", "cryptocurrency", "machine-learning", "artificial-intelligence",
        "neural-network", "deep-learning", "data-structure", "graph-theory", "complexity",
        "optimization", "cloud-computing", "virtualization", "container", "microservices",
        "frontend", "backend", "framework", "library", "repository", "version-control",
        "deployment",
    ),
    "philosophy": (
        "philosophy", "metaphysics", "epistemology", "ontology", "phenomenology",
        "existentialism", "pragmatism", "rationalism", "empiricism", "idealism",
        "materialism", "dualism", "monism", "consciousness", "qualia", "intentionality",
        "ethics", "morality", "virtue", "deontology", "consequentialism", "utilitarianism",
        "aesthetics", "sublime", "transcendental", "essence", "existence", "substance",
        "causality", "determinism", "free-will", "necessity", "contingency", "universals",
    ),
    "systems": (
        "process", "relational", "holistic", "emergence", "self-organization",
        "autopoiesis", "homeostasis", "feedback", "recursion", "fractal", "hierarchy",
        "topology", "connectivity", "centrality", "modularity", "dynamics", "evolution",
        "adaptation", "resilience", "robustness", "entropy", "information", "pattern",
    ),
    "mathematics": (
        "mathematics", "algebra", "geometry", "calculus", "analysis", "number-theory",
        "set-theory", "category-theory", "group-theory", "logic", "proposition",
        "predicate", "inference", "deduction", "induction", "proof", "theorem", "axiom",
        "conjecture", "function", "mapping", "transformation", "isomorphism", "symmetry",
        "invariance", "continuity",
    ),
    "science": (
        "physics", "mechanics", "thermodynamics", "electromagnetism", "quantum",
        "relativity", "spacetime", "gravity", "energy", "momentum", "particle", "wave",
        "entanglement", "chemistry", "molecule", "reaction", "biology", "organism",
        "gene", "protein", "ecology", "ecosystem", "biodiversity", "symbiosis",
    ),
    "society": (
        "economics", "market", "equilibrium", "efficiency", "game-theory", "strategy",
        "cooperation", "competition", "coordination", "institution", "governance",
        "regulation", "policy", "incentive", "sociology", "culture", "norms", "identity",
        "anthropology", "ritual", "myth", "symbol", "interpretation", "psychology",
        "cognition", "perception", "emotion", "motivation", "behavior",
    ),
    "art": (
        "creativity", "imagination", "expression", "representation", "music", "rhythm",
        "harmony", "melody", "composition", "improvisation", "painting", "sculpture",
        "photography", "design", "literature", "poetry", "narrative", "metaphor",
        "symbolism", "proportion",
    ),
    "language": (
        "language", "semantics", "syntax", "pragmatics", "grammar", "communication",
        "dialogue", "discourse", "rhetoric", "persuasion", "semiotics", "signifier",
        "reference", "context", "linguistics", "phonetics", "morphology", "etymology",
        "translation",
    ),
    "knowledge": (
        "knowledge", "understanding", "wisdom", "insight", "intuition", "reason",
        "learning", "memory", "attention", "reasoning", "judgment", "concept", "category",
        "abstraction", "generalization", "analogy", "model", "theory", "hypothesis",
        "explanation", "prediction", "mental-model", "schema", "prototype",
    ),
    "spirituality": (
        "spirituality", "mysticism", "transcendence", "enlightenment", "awakening",
        "meditation", "contemplation", "mindfulness", "presence", "awareness", "unity",
        "nonduality", "emptiness", "sacred", "profane", "divine", "immanence",
    ),
}


def _dedupe(terms: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for term in terms:
        lowered = term.lower()
        if lowered and lowered not in seen:
            seen.add(lowered)
            ordered.append(lowered)
    return ordered


CORE_VOCABULARY: tuple[str, ...] = tuple(
    _dedupe(term for terms in _DOMAINS.values() for term in terms)
)


def core_vocabulary() -> list[str]:
    return list(CORE_VOCABULARY)


def merge_with_vault_terms(vault_terms: Iterable[str]) -> list[str]:
    """Core vocabulary followed by vault terms it does not already contain."""
    return _dedupe([*CORE_VOCABULARY, *vault_terms])
