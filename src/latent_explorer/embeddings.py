"""
Embedding providers for vector-based semantic search.

Two backends share the ``Embedder`` protocol: the Google GenAI embedding API
and a local embedding server speaking a small JSON protocol
(``GET /health``, ``POST /embed``). Both surface every transport failure,
timeout and malformed response as ``EmbeddingServiceUnavailable`` and never
fall back to placeholder vectors.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx
from google.genai import Client as GenAIClient
from google.genai import errors as genai_errors
from google.genai.types import HttpOptions

from .errors import EmbeddingServiceUnavailable

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "gemini-embedding-001"
_DEFAULT_DIM = 768
_DEFAULT_BATCH_SIZE = 50
_DEFAULT_TIMEOUT = 30.0
_HEALTH_CHECK_TEXT = "health check"


@dataclass(frozen=True)
class EmbeddingHealth:
    """Reachability and model identity of an embedding backend."""

    healthy: bool
    model: str
    dimensions: int | None
    detail: str = ""


@runtime_checkable
class Embedder(Protocol):
    """Protocol for embedding backends used by indexing and search."""

    model: str

    def embed_query(self, query: str) -> list[float]:
        """Embed a single text."""
        ...

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed texts, returning vectors in input order."""
        ...

    def health(self) -> EmbeddingHealth:
        """Report whether the backend is reachable and which model it serves."""
        ...


def _validate_vector(values: Any, source: str) -> list[float]:
    if not isinstance(values, (list, tuple)) or not values:
        raise EmbeddingServiceUnavailable(f"Invalid embedding response from {source}")
    try:
        return [float(v) for v in values]
    except (TypeError, ValueError) as exc:
        raise EmbeddingServiceUnavailable(
            f"Invalid embedding response from {source}: {exc}"
        ) from exc


class EmbeddingProvider:
    """Generate text embeddings via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        batch_size: int | None = None,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("LATENT_EXPLORER_EMBEDDING_MODEL", _DEFAULT_MODEL)
        self.dim = dim or int(os.getenv("LATENT_EXPLORER_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.batch_size = batch_size or int(
            os.getenv("LATENT_EXPLORER_EMBEDDING_BATCH_SIZE", str(_DEFAULT_BATCH_SIZE))
        )
        self.timeout = timeout or _DEFAULT_TIMEOUT

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
                http_options=HttpOptions(timeout=int(self.timeout * 1000)),
            )

    def embed_texts(
        self,
        texts: list[str],
        *,
        task_type: str = "RETRIEVAL_DOCUMENT",
    ) -> list[list[float]]:
        """Embed a list of texts in batches.

        Returns a list of embedding vectors in the same order as *texts*.
        """
        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            all_embeddings.extend(self._embed(batch, task_type=task_type))
        return all_embeddings

    def embed_query(self, query: str) -> list[float]:
        """Embed a single query text for retrieval."""
        return self._embed([query], task_type="RETRIEVAL_QUERY")[0]

    def health(self) -> EmbeddingHealth:
        try:
            vector = self.embed_query(_HEALTH_CHECK_TEXT)
        except EmbeddingServiceUnavailable as exc:
            return EmbeddingHealth(healthy=False, model=self.model, dimensions=None, detail=str(exc))
        return EmbeddingHealth(healthy=True, model=self.model, dimensions=len(vector))

    def _embed(self, batch: list[str], *, task_type: str) -> list[list[float]]:
        try:
            result = self._client.models.embed_content(
                model=self.model,
                contents=batch,
                config={
                    "task_type": task_type,
                    "output_dimensionality": self.dim,
                },
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            logger.warning("Embedding request to %s failed: %s", self.model, exc)
            raise EmbeddingServiceUnavailable(
                f"Embedding service error ({self.model}): {exc}"
            ) from exc

        embeddings = getattr(result, "embeddings", None) or []
        if len(embeddings) != len(batch):
            raise EmbeddingServiceUnavailable(
                f"Embedding service returned {len(embeddings)} vectors for {len(batch)} texts"
            )
        return [_validate_vector(emb.values, self.model) for emb in embeddings]


class LocalEmbeddingClient:
    """Client for a local embedding server (e.g. all-MiniLM-L6-v2 on port 8765)."""

    def __init__(
        self,
        base_url: str = "http://localhost:8765",
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        health_timeout: float = 5.0,
        batch_size: int = 32,
        max_workers: int = 8,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.health_timeout = health_timeout
        self.batch_size = batch_size
        self.max_workers = max_workers
        self.model = "unknown"
        self.dim: int | None = None
        self._healthy = False
        self._client = httpx.Client(base_url=self.base_url, transport=transport)

    def close(self) -> None:
        self._client.close()

    @property
    def is_ready(self) -> bool:
        return self._healthy

    def health(self) -> EmbeddingHealth:
        try:
            response = self._client.get("/health", timeout=self.health_timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._healthy = False
            return EmbeddingHealth(
                healthy=False,
                model=self.model,
                dimensions=self.dim,
                detail=f"Cannot connect to embedding server at {self.base_url}: {exc}",
            )

        status = str(payload.get("status", ""))
        if status != "ok":
            self._healthy = False
            return EmbeddingHealth(
                healthy=False,
                model=self.model,
                dimensions=self.dim,
                detail=f"Embedding server health check failed: {status or 'no status'}",
            )

        self.model = str(payload.get("model", self.model))
        dimensions = payload.get("dimensions")
        self.dim = int(dimensions) if isinstance(dimensions, int) else self.dim
        self._healthy = True
        logger.info("Embedding server connected: %s (%sd)", self.model, self.dim)
        return EmbeddingHealth(healthy=True, model=self.model, dimensions=self.dim)

    def embed_query(self, query: str) -> list[float]:
        self._ensure_ready()
        try:
            response = self._client.post("/embed", json={"text": query}, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            # Force a fresh health check before the next request.
            self._healthy = False
            logger.warning("Embedding request to %s failed: %s", self.base_url, exc)
            raise EmbeddingServiceUnavailable(
                f"Embedding server at {self.base_url} failed: {exc}"
            ) from exc
        if not isinstance(payload, dict):
            raise EmbeddingServiceUnavailable(f"Invalid embedding response from {self.base_url}")
        return _validate_vector(payload.get("embedding"), self.base_url)

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* with concurrent requests, preserving input order.

        The server embeds one text per request, so each batch of
        ``batch_size`` texts is sent in parallel over the shared client.
        """
        if not texts:
            return []
        self._ensure_ready()
        embeddings: list[list[float]] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for start in range(0, len(texts), self.batch_size):
                batch = texts[start : start + self.batch_size]
                embeddings.extend(executor.map(self.embed_query, batch))
        return embeddings

    def _ensure_ready(self) -> None:
        if self._healthy:
            return
        status = self.health()
        if not status.healthy:
            raise EmbeddingServiceUnavailable(
                f"{status.detail}. Make sure the embedding server is running "
                f"and listening on {self.base_url}."
            )


def build_embedder(
    backend: str,
    *,
    local_url: str = "http://localhost:8765",
    timeout: float = _DEFAULT_TIMEOUT,
) -> EmbeddingProvider | LocalEmbeddingClient:
    """Return the embedding backend named by *backend* (``genai`` or ``local``)."""
    if backend == "genai":
        return EmbeddingProvider(timeout=timeout)
    if backend == "local":
        return LocalEmbeddingClient(local_url, timeout=timeout)
    raise ValueError(f"Unknown embedding backend: {backend!r}")
