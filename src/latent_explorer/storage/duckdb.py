"""
DuckDB storage backend for the embedding index.
"""

from __future__ import annotations

import logging
import posixpath
import threading
import time
from pathlib import Path
from typing import Any, Sequence

import duckdb

from ..errors import DimensionMismatch, StorageError
from .base import EmbeddingRecord, IndexStats, NoteMetadata

logger = logging.getLogger(__name__)

_RECORD_COLUMNS = (
    "id, vector, snippet, title, path, modified_at, tags, outgoing_links, indexed_at"
)


class DuckDBVectorStore:
    """DuckDB-backed persistence for per-note embedding records.

    The connection is opened lazily. A failed open raises ``StorageError`` and
    is attempted again on the next call.
    """

    def __init__(
        self,
        db_path: str,
        *,
        read_only: bool = False,
        initialize: bool = True,
    ) -> None:
        self.db_path = str(Path(db_path).expanduser().resolve())
        self.read_only = read_only
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._closed = False
        self._lock = threading.Lock()
        if not read_only:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        if initialize and not read_only:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            self._closed = True

    def initialize(self) -> None:
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS embeddings (
                id VARCHAR PRIMARY KEY,
                vector DOUBLE[] NOT NULL,
                snippet VARCHAR NOT NULL,
                title VARCHAR NOT NULL,
                path VARCHAR NOT NULL,
                modified_at DOUBLE NOT NULL,
                tags VARCHAR[] NOT NULL,
                outgoing_links VARCHAR[] NOT NULL,
                indexed_at DOUBLE NOT NULL
            );
            """
        )

    def put(
        self,
        id: str,
        vector: Sequence[float],
        snippet: str,
        metadata: NoteMetadata,
    ) -> None:
        values = [float(v) for v in vector]
        if not values:
            raise ValueError(f"Refusing to store an empty vector for {id!r}")

        row = self._fetchone(
            "SELECT len(vector) FROM embeddings WHERE id <> ? LIMIT 1",
            [id],
        )
        if row is not None and int(row[0]) != len(values):
            raise DimensionMismatch(expected=int(row[0]), actual=len(values))

        self._execute(
            f"""
            INSERT INTO embeddings ({_RECORD_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                vector = excluded.vector,
                snippet = excluded.snippet,
                title = excluded.title,
                path = excluded.path,
                modified_at = excluded.modified_at,
                tags = excluded.tags,
                outgoing_links = excluded.outgoing_links,
                indexed_at = excluded.indexed_at
            """,
            [
                id,
                values,
                snippet,
                metadata.title,
                metadata.path,
                float(metadata.modified_at),
                sorted(metadata.tags),
                list(metadata.outgoing_links),
                time.time(),
            ],
        )

    def get(self, id: str) -> EmbeddingRecord | None:
        row = self._fetchone(
            f"SELECT {_RECORD_COLUMNS} FROM embeddings WHERE id = ? LIMIT 1",
            [id],
        )
        if row is None:
            return None
        return self._row_to_record(row)

    def delete(self, id: str) -> None:
        self._execute("DELETE FROM embeddings WHERE id = ?", [id])

    def scan_all(self) -> list[EmbeddingRecord]:
        rows = self._fetchall(f"SELECT {_RECORD_COLUMNS} FROM embeddings")
        return [self._row_to_record(row) for row in rows]

    def needs_reindex(self, id: str, current_modified_at: float) -> bool:
        row = self._fetchone(
            "SELECT modified_at FROM embeddings WHERE id = ? LIMIT 1",
            [id],
        )
        if row is None:
            return True
        return float(row[0]) < float(current_modified_at)

    def count(self) -> int:
        row = self._fetchone("SELECT COUNT(*) FROM embeddings")
        return int(row[0]) if row else 0

    def clear(self) -> None:
        self._execute("DELETE FROM embeddings")

    def stats(self) -> IndexStats:
        rows = self._fetchall("SELECT id, len(vector), indexed_at FROM embeddings")
        by_folder: dict[str, int] = {}
        dimension: int | None = None
        last_indexed_at: float | None = None
        for note_id, dim, indexed_at in rows:
            folder = posixpath.dirname(str(note_id)) or "root"
            by_folder[folder] = by_folder.get(folder, 0) + 1
            dimension = int(dim)
            if last_indexed_at is None or float(indexed_at) > last_indexed_at:
                last_indexed_at = float(indexed_at)
        ordered = dict(sorted(by_folder.items(), key=lambda item: (-item[1], item[0])))
        return IndexStats(
            total_records=len(rows),
            dimension=dimension,
            last_indexed_at=last_indexed_at,
            by_folder=ordered,
        )

    def _connection(self) -> duckdb.DuckDBPyConnection:
        if self._closed:
            raise StorageError(f"Vector store at {self.db_path} is closed")
        if self._conn is None:
            try:
                self._conn = duckdb.connect(self.db_path, read_only=self.read_only)
            except duckdb.Error as exc:
                raise StorageError(
                    f"Cannot open vector store at {self.db_path}: {exc}"
                ) from exc
            logger.debug("Opened vector store at %s", self.db_path)
        return self._conn

    def _execute(self, sql: str, params: list[Any] | None = None) -> None:
        with self._lock:
            try:
                self._connection().execute(sql, params or [])
            except duckdb.Error as exc:
                raise StorageError(f"Vector store operation failed: {exc}") from exc

    def _fetchone(self, sql: str, params: list[Any] | None = None) -> tuple[Any, ...] | None:
        with self._lock:
            try:
                return self._connection().execute(sql, params or []).fetchone()
            except duckdb.Error as exc:
                raise StorageError(f"Vector store query failed: {exc}") from exc

    def _fetchall(self, sql: str, params: list[Any] | None = None) -> list[tuple[Any, ...]]:
        with self._lock:
            try:
                return self._connection().execute(sql, params or []).fetchall()
            except duckdb.Error as exc:
                raise StorageError(f"Vector store query failed: {exc}") from exc

    @staticmethod
    def _row_to_record(row: tuple[Any, ...]) -> EmbeddingRecord:
        return EmbeddingRecord(
            id=str(row[0]),
            vector=tuple(float(v) for v in row[1]),
            snippet=str(row[2]),
            metadata=NoteMetadata(
                title=str(row[3]),
                path=str(row[4]),
                modified_at=float(row[5]),
                tags=frozenset(str(tag) for tag in row[6]),
                outgoing_links=tuple(str(link) for link in row[7]),
            ),
            indexed_at=float(row[8]),
        )
