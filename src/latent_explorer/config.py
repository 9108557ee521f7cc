"""
Configuration helpers for the local index and the search engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any


DEFAULT_DB_PATH = "~/.latent_explorer/index.duckdb"
ENV_DB_PATH = "LATENT_EXPLORER_DB_PATH"
ENV_PREFIX = "LATENT_EXPLORER_"


def resolve_db_path(override_path: str | None = None) -> str:
    """
    Resolve the DuckDB path from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) LATENT_EXPLORER_DB_PATH
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH) or DEFAULT_DB_PATH
    resolved = Path(raw_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


@dataclass(frozen=True)
class Settings:
    """Tunable defaults for indexing, search and concept extraction."""

    top_k: int = 50
    concept_source_k: int = 20
    max_concepts: int = 18
    min_text_length: int = 50
    max_embed_words: int = 500
    snippet_length: int = 500
    batch_size: int = 5
    max_failures: int = 5
    min_successes: int = 10
    embed_timeout: float = 30.0
    concept_strategy: str = "delegated"
    concept_provider: str = "vocabulary"
    vocabulary_vault_terms: int = 0
    embedding_backend: str = "genai"
    local_embedding_url: str = "http://localhost:8765"
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama2"
    frame_interval: float = 1 / 30
    max_ticks: int = 600
    settle_energy: float = 1e-6
    settle_force: float = 1e-5

    @classmethod
    def from_env(cls, **overrides: Any) -> Settings:
        """Build settings from ``LATENT_EXPLORER_*`` variables.

        Keyword overrides that are not ``None`` win over the environment.
        """
        values: dict[str, Any] = {}
        for field in fields(cls):
            raw = os.getenv(f"{ENV_PREFIX}{field.name.upper()}")
            if raw is None:
                continue
            default = field.default
            if isinstance(default, bool):
                values[field.name] = raw.strip().lower() in {"1", "true", "yes", "on"}
            elif isinstance(default, int):
                values[field.name] = int(raw)
            elif isinstance(default, float):
                values[field.name] = float(raw)
            else:
                values[field.name] = raw.strip()
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
