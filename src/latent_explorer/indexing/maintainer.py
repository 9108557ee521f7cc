"""
Keep the embedding index in sync with the vault.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable

from ..config import Settings
from ..embeddings import Embedder
from ..errors import DimensionMismatch, EmbeddingServiceUnavailable, TooManyFailures
from ..storage import NoteMetadata, VectorStore
from .notes import NoteDocument, VaultSource

logger = logging.getLogger(__name__)

# Per-note failures that are recorded instead of aborting the run.
# StorageError is not listed; a broken store fails the whole run.
_DOCUMENT_ERRORS: tuple[type[Exception], ...] = (
    EmbeddingServiceUnavailable,
    DimensionMismatch,
    ValueError,
    OSError,
)


class IndexOutcome(str, enum.Enum):
    INDEXED = "indexed"
    SKIPPED = "skipped"


@dataclass
class IndexReport:
    """Summary of a batch indexing run."""

    indexed: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)


def truncate_words(text: str, max_words: int) -> str:
    """Keep the first *max_words* whitespace-separated words."""
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + "..."


class IndexMaintainer:
    """Index notes one at a time or in bulk, and react to note lifecycle events."""

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        *,
        source: VaultSource | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.source = source
        self.settings = settings or Settings()

    def index_document(self, doc: NoteDocument) -> IndexOutcome:
        """Embed and store *doc* unless it is too short or unchanged."""
        settings = self.settings
        if len(doc.text) < settings.min_text_length:
            logger.debug("Skipping %s: shorter than %d chars", doc.id, settings.min_text_length)
            return IndexOutcome.SKIPPED
        if not self.store.needs_reindex(doc.id, doc.modified_at):
            logger.debug("Skipping %s: unchanged since last index", doc.id)
            return IndexOutcome.SKIPPED

        text = truncate_words(doc.text, settings.max_embed_words)
        vectors = self.embedder.embed_texts([text])
        if len(vectors) != 1:
            raise EmbeddingServiceUnavailable(
                f"Expected one embedding for {doc.id}, got {len(vectors)}"
            )

        metadata = NoteMetadata(
            title=doc.title,
            path=doc.path,
            modified_at=doc.modified_at,
            tags=frozenset(doc.tags),
            outgoing_links=doc.outgoing_links,
        )
        self.store.put(doc.id, vectors[0], doc.text[: settings.snippet_length], metadata)
        logger.debug("Indexed %s", doc.id)
        return IndexOutcome.INDEXED

    def reindex_all(self, documents: Iterable[NoteDocument | str] | None = None) -> IndexReport:
        """Index every note, in batches, tripping the breaker on early failures.

        *documents* may hold ``NoteDocument`` objects or ids to read from the
        source; by default every note of the source is visited. Records that
        were committed before ``TooManyFailures`` is raised stay committed.
        """
        items = list(documents) if documents is not None else self._require_source().list_documents()
        settings = self.settings
        report = IndexReport()
        batch_size = max(settings.batch_size, 1)
        logger.info("Indexing %d notes", len(items))

        for start in range(0, len(items), batch_size):
            for item in items[start : start + batch_size]:
                doc_id = item if isinstance(item, str) else item.id
                try:
                    doc = self._require_source().read_document(item) if isinstance(item, str) else item
                    outcome = self.index_document(doc)
                except _DOCUMENT_ERRORS as exc:
                    report.failed += 1
                    report.errors.append((doc_id, str(exc)))
                    logger.warning("Failed to index %s: %s", doc_id, exc)
                    if report.failed > settings.max_failures and report.indexed < settings.min_successes:
                        raise TooManyFailures(
                            f"Too many indexing failures ({report.failed}). Last error: {exc}",
                            report,
                        ) from exc
                    continue

                if outcome is IndexOutcome.INDEXED:
                    report.indexed += 1
                else:
                    report.skipped += 1
            logger.info("Progress: %d/%d notes processed", min(start + batch_size, len(items)), len(items))

        logger.info(
            "Indexing complete: %d indexed, %d skipped, %d failed",
            report.indexed,
            report.skipped,
            report.failed,
        )
        return report

    def remove_document(self, doc_id: str) -> None:
        self.store.delete(doc_id)
        logger.debug("Removed %s from the index", doc_id)

    def on_modified(self, doc_id: str) -> IndexOutcome:
        """Re-read *doc_id* from the source and index it; a vanished note is removed."""
        doc = self._require_source().get_document(doc_id)
        if doc is None:
            self.remove_document(doc_id)
            return IndexOutcome.SKIPPED
        return self.index_document(doc)

    def on_deleted(self, doc_id: str) -> None:
        self.remove_document(doc_id)

    def _require_source(self) -> VaultSource:
        if self.source is None:
            raise ValueError("IndexMaintainer has no note source configured")
        return self.source
