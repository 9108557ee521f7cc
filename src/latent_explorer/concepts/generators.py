"""
Term generators: external or offline sources of candidate concept terms.

Every generator returns free text that has been run through
``sanitize_terms``; failures raise ``ConceptGenerationError`` and are degraded
to zero concepts by the extractor.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Iterable, Protocol

import httpx
from google.genai import Client as GenAIClient
from google.genai import errors as genai_errors
from google.genai.types import HttpOptions
from pydantic import BaseModel, Field, ValidationError

from ..embeddings import Embedder
from ..errors import ConceptGenerationError, EmbeddingServiceUnavailable
from ..search.ranker import cosine_similarity
from .vocabulary import core_vocabulary, merge_with_vault_terms

logger = logging.getLogger(__name__)

MIN_TERM_LENGTH = 3
MAX_TERM_LENGTH = 29

_LEADING_BULLET = re.compile(r"^[-*•\d.)\s]+")
_TERM_SHAPE = re.compile(r"^[a-z][a-z-]*[a-z]$")
_FILLER = re.compile(r"^(example|here|are|the|terms|for)\b")

PROMPT_TEMPLATE = """You are a semantic concept generator. Generate {count} related terms for: "{query}"

Rules:
- Return ONLY single words or hyphenated-terms
- No explanations, numbers, or extra text
- Related to the topic semantically

Example for "computer-science": algorithm, programming, software, database, network, compiler, data-structure, artificial-intelligence, machine-learning, operating-system

Now generate {count} terms for "{query}":"""


class ConceptTerms(BaseModel):
    """Structured response requested from LLM term generators."""

    terms: list[str] = Field(description="Single words or hyphenated terms, lowercase")


class TermGenerator(Protocol):
    """Anything that proposes candidate concept terms for a query."""

    def generate_terms(self, query: str, count: int) -> list[str]:
        ...


def sanitize_terms(raw: str | Iterable[Any], count: int | None = None) -> list[str]:
    """Normalize free-text generator output into short alphabetic terms.

    Accepts a comma/newline separated string or an iterable of items; items
    that are not strings are dropped. Numbering and bullets are stripped,
    terms are lower-cased and de-duplicated, and anything that is not a
    letters-and-hyphens token of 3..29 chars is discarded.
    """
    if isinstance(raw, str):
        pieces: list[Any] = re.split(r"[,\n]", raw)
    elif raw is None:
        pieces = []
    else:
        pieces = [part for item in raw if isinstance(item, str) for part in re.split(r"[,\n]", item)]

    terms: list[str] = []
    for piece in pieces:
        if not isinstance(piece, str):
            continue
        term = _LEADING_BULLET.sub("", piece.strip().lower()).strip().strip(".\"'")
        if _FILLER.match(term):
            continue
        term = re.sub(r"\s+", "-", term)
        if not (MIN_TERM_LENGTH <= len(term) <= MAX_TERM_LENGTH):
            continue
        if term.count("-") > 2 or not _TERM_SHAPE.match(term):
            continue
        if term not in terms:
            terms.append(term)
        if count is not None and len(terms) >= count:
            break
    return terms


class GenAITermGenerator:
    """Generate related terms with a Google GenAI text model."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float = 30.0,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("LATENT_EXPLORER_CONCEPT_MODEL", "gemini-2.5-flash")
        if client is not None:
            self._client = client
        else:
            resolved_key = api_key or os.getenv("GOOGLE_API_KEY")
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set the environment variable."
                )
            self._client = GenAIClient(
                api_key=resolved_key,
                http_options=HttpOptions(timeout=int(timeout * 1000)),
            )

    def generate_terms(self, query: str, count: int) -> list[str]:
        try:
            response = self._client.models.generate_content(
                model=self.model,
                contents=PROMPT_TEMPLATE.format(count=count, query=query),
                config={
                    "temperature": 0.8,
                    "response_mime_type": "application/json",
                    "response_json_schema": ConceptTerms.model_json_schema(),
                },
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            raise ConceptGenerationError(f"GenAI concept generation failed: {exc}") from exc

        text = getattr(response, "text", None)
        if not text:
            raise ConceptGenerationError("GenAI returned an empty response")
        try:
            parsed = ConceptTerms.model_validate_json(text)
        except ValidationError:
            # Models sometimes ignore the schema and answer with a plain list.
            return sanitize_terms(text, count)
        return sanitize_terms(parsed.terms, count)


class OllamaTermGenerator:
    """Generate related terms with a local Ollama model."""

    def __init__(
        self,
        endpoint: str = "http://localhost:11434",
        model: str = "llama2",
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = httpx.Client(base_url=self.endpoint, transport=transport)

    def close(self) -> None:
        self._client.close()

    def generate_terms(self, query: str, count: int) -> list[str]:
        try:
            response = self._client.post(
                "/api/generate",
                json={
                    "model": self.model,
                    "prompt": PROMPT_TEMPLATE.format(count=count, query=query)
                    + "\nFormat as a comma-separated list.",
                    "stream": False,
                    "options": {"temperature": 0.8, "num_predict": 300},
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ConceptGenerationError(
                f"Failed to reach Ollama at {self.endpoint}: {exc}"
            ) from exc

        text = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise ConceptGenerationError("Ollama response has no text")
        terms = sanitize_terms(text, count)
        logger.debug("Ollama generated %d concepts for %r", len(terms), query)
        return terms


class VocabularyTermGenerator:
    """Offline generator ranking a curated vocabulary against the query.

    The vocabulary is embedded once, in one batch call, and cached.
    """

    def __init__(self, embedder: Embedder, *, vault_terms: Iterable[str] = ()) -> None:
        self.embedder = embedder
        extra = list(vault_terms)
        self.vocabulary = merge_with_vault_terms(extra) if extra else core_vocabulary()
        self._vectors: list[list[float]] | None = None

    def generate_terms(self, query: str, count: int) -> list[str]:
        if count <= 0:
            return []
        try:
            if self._vectors is None:
                self._vectors = self.embedder.embed_texts(self.vocabulary)
            query_vector = self.embedder.embed_query(query)
        except EmbeddingServiceUnavailable as exc:
            raise ConceptGenerationError(f"Could not embed the vocabulary: {exc}") from exc
        ranked = sorted(
            zip(self.vocabulary, self._vectors),
            key=lambda item: (-cosine_similarity(query_vector, item[1]), item[0]),
        )
        return [term for term, _ in ranked[:count]]
