"""Tests for the DuckDB vector store."""

from __future__ import annotations

from pathlib import Path

import pytest

from latent_explorer.errors import DimensionMismatch, StorageError
from latent_explorer.storage import DuckDBVectorStore, NoteMetadata

from conftest import make_metadata


def test_put_then_get_roundtrips_metadata(store: DuckDBVectorStore) -> None:
    metadata = NoteMetadata(
        title="Neural Networks",
        path="AI/Neural Networks.md",
        modified_at=1700000000.5,
        tags=frozenset({"ml", "research"}),
        outgoing_links=("Memory", "Brain"),
    )
    store.put("AI/Neural Networks.md", [0.1, 0.2, 0.3], "snippet text", metadata)

    record = store.get("AI/Neural Networks.md")

    assert record is not None
    assert record.vector == (0.1, 0.2, 0.3)
    assert record.snippet == "snippet text"
    assert record.metadata == metadata
    assert record.indexed_at > 0


def test_get_missing_returns_none(store: DuckDBVectorStore) -> None:
    assert store.get("nope.md") is None


def test_put_overwrites_existing_record(store: DuckDBVectorStore) -> None:
    store.put("a.md", [1.0, 0.0], "old", make_metadata("a.md", modified_at=1.0))
    store.put("a.md", [0.0, 1.0], "new", make_metadata("a.md", modified_at=2.0))

    record = store.get("a.md")

    assert store.count() == 1
    assert record is not None
    assert record.vector == (0.0, 1.0)
    assert record.snippet == "new"
    assert record.metadata.modified_at == 2.0


def test_dimension_mismatch_is_rejected(store: DuckDBVectorStore) -> None:
    store.put("a.md", [1.0, 0.0, 0.0], "a", make_metadata("a.md"))

    with pytest.raises(DimensionMismatch) as excinfo:
        store.put("b.md", [1.0, 0.0], "b", make_metadata("b.md"))

    assert excinfo.value.expected == 3
    assert excinfo.value.actual == 2
    assert store.get("b.md") is None


def test_single_record_may_change_dimension(store: DuckDBVectorStore) -> None:
    store.put("a.md", [1.0, 0.0, 0.0], "a", make_metadata("a.md"))
    store.put("a.md", [1.0, 0.0], "a", make_metadata("a.md"))

    record = store.get("a.md")
    assert record is not None
    assert len(record.vector) == 2


def test_empty_vector_is_rejected(store: DuckDBVectorStore) -> None:
    with pytest.raises(ValueError):
        store.put("a.md", [], "a", make_metadata("a.md"))


def test_delete_is_idempotent(store: DuckDBVectorStore) -> None:
    store.put("a.md", [1.0], "a", make_metadata("a.md"))

    store.delete("a.md")
    store.delete("a.md")

    assert store.get("a.md") is None
    assert store.count() == 0


def test_needs_reindex(store: DuckDBVectorStore) -> None:
    assert store.needs_reindex("a.md", 5.0) is True

    store.put("a.md", [1.0], "a", make_metadata("a.md", modified_at=5.0))

    assert store.needs_reindex("a.md", 5.0) is False
    assert store.needs_reindex("a.md", 4.0) is False
    assert store.needs_reindex("a.md", 6.0) is True


def test_scan_all_and_stats(store: DuckDBVectorStore) -> None:
    store.put("AI/one.md", [1.0, 0.0], "1", make_metadata("AI/one.md"))
    store.put("AI/two.md", [0.0, 1.0], "2", make_metadata("AI/two.md"))
    store.put("top.md", [1.0, 1.0], "3", make_metadata("top.md"))

    ids = sorted(record.id for record in store.scan_all())
    stats = store.stats()

    assert ids == ["AI/one.md", "AI/two.md", "top.md"]
    assert stats.total_records == 3
    assert stats.dimension == 2
    assert stats.by_folder == {"AI": 2, "root": 1}
    assert stats.last_indexed_at is not None


def test_stats_of_empty_store(store: DuckDBVectorStore) -> None:
    stats = store.stats()

    assert stats.total_records == 0
    assert stats.dimension is None
    assert stats.last_indexed_at is None
    assert stats.by_folder == {}


def test_clear_drops_everything(store: DuckDBVectorStore) -> None:
    store.put("a.md", [1.0], "a", make_metadata("a.md"))
    store.put("b.md", [2.0], "b", make_metadata("b.md"))

    store.clear()

    assert store.scan_all() == []


def test_records_survive_reopen(tmp_path: Path) -> None:
    db_path = str(tmp_path / "index.duckdb")
    first = DuckDBVectorStore(db_path)
    first.put("a.md", [1.0, 2.0], "a", make_metadata("a.md"))
    first.close()

    second = DuckDBVectorStore(db_path, read_only=True, initialize=False)
    try:
        record = second.get("a.md")
    finally:
        second.close()

    assert record is not None
    assert record.vector == (1.0, 2.0)


def test_closed_store_raises_storage_error(tmp_path: Path) -> None:
    vector_store = DuckDBVectorStore(str(tmp_path / "index.duckdb"))
    vector_store.close()

    with pytest.raises(StorageError):
        vector_store.scan_all()


def test_missing_read_only_database_raises_storage_error(tmp_path: Path) -> None:
    vector_store = DuckDBVectorStore(
        str(tmp_path / "missing.duckdb"), read_only=True, initialize=False
    )

    with pytest.raises(StorageError):
        vector_store.count()
