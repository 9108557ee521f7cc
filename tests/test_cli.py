"""CLI tests for indexing, search and index inspection commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

import latent_explorer.main as main_module
from latent_explorer.storage import DuckDBVectorStore

from conftest import FakeEmbedder


@pytest.fixture()
def runner(monkeypatch) -> CliRunner:
    monkeypatch.setattr(main_module, "make_embedder", lambda settings: FakeEmbedder())
    monkeypatch.setenv("LATENT_EXPLORER_CONCEPT_STRATEGY", "delegated")
    monkeypatch.setenv("LATENT_EXPLORER_CONCEPT_PROVIDER", "vocabulary")
    return CliRunner()


def _index(runner: CliRunner, vault: Path, db_path: Path):
    return runner.invoke(main_module.app, ["index", str(vault), "--db-path", str(db_path)])


def test_index_command_reports_counts(runner: CliRunner, vault: Path, tmp_path: Path) -> None:
    db_path = tmp_path / "index.duckdb"

    result = _index(runner, vault, db_path)

    assert result.exit_code == 0, result.output
    assert "Indexed 4 notes" in result.output
    assert "1 skipped" in result.output

    store = DuckDBVectorStore(str(db_path), read_only=True, initialize=False)
    try:
        assert store.count() == 4
    finally:
        store.close()


def test_index_command_missing_vault(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(
        main_module.app,
        ["index", str(tmp_path / "missing"), "--db-path", str(tmp_path / "index.duckdb")],
    )

    assert result.exit_code == 1
    assert "No such directory" in result.output


def test_index_command_circuit_breaker(monkeypatch, vault: Path, tmp_path: Path) -> None:
    for i in range(6):
        (vault / f"extra-{i}.md").write_text("A note long enough to be embedded by the indexer. " * 2)
    monkeypatch.setattr(
        main_module, "make_embedder", lambda settings: FakeEmbedder(unavailable=True)
    )

    result = _index(CliRunner(), vault, tmp_path / "index.duckdb")

    assert result.exit_code == 1
    assert "Too many indexing failures" in result.output


def test_search_command_prints_notes_and_concepts(
    runner: CliRunner, vault: Path, tmp_path: Path
) -> None:
    db_path = tmp_path / "index.duckdb"
    _index(runner, vault, db_path)

    result = runner.invoke(
        main_module.app,
        ["search", "quantum physics", "--db-path", str(db_path), "--ticks", "20"],
    )

    assert result.exit_code == 0, result.output
    assert "Physics" in result.output
    assert "Concepts" in result.output


def test_search_on_empty_index_is_a_notice(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(
        main_module.app,
        ["search", "memory", "--db-path", str(tmp_path / "empty.duckdb")],
    )

    assert result.exit_code == 0
    assert "No indexed notes found" in result.output


def test_search_with_embedding_outage_fails(
    monkeypatch, runner: CliRunner, vault: Path, tmp_path: Path
) -> None:
    db_path = tmp_path / "index.duckdb"
    _index(runner, vault, db_path)
    monkeypatch.setattr(
        main_module, "make_embedder", lambda settings: FakeEmbedder(unavailable=True)
    )

    result = runner.invoke(main_module.app, ["search", "memory", "--db-path", str(db_path)])

    assert result.exit_code == 1
    assert "embedding server is down" in result.output


def test_search_rejects_unknown_strategy(runner: CliRunner, vault: Path, tmp_path: Path) -> None:
    db_path = tmp_path / "index.duckdb"
    _index(runner, vault, db_path)

    result = runner.invoke(
        main_module.app,
        ["search", "memory", "--db-path", str(db_path), "--strategy", "polarity"],
    )

    assert result.exit_code == 1
    assert "Unknown concept strategy" in result.output


def test_stats_concept_notes_and_remove(runner: CliRunner, vault: Path, tmp_path: Path) -> None:
    db_path = str(tmp_path / "index.duckdb")
    _index(runner, vault, Path(db_path))

    stats = runner.invoke(main_module.app, ["stats", "--db-path", db_path])
    assert stats.exit_code == 0
    assert "Indexed notes: 4" in stats.output
    assert "AI" in stats.output

    notes = runner.invoke(main_module.app, ["concept-notes", "memory", "--db-path", db_path])
    assert notes.exit_code == 0
    assert "AI/Memory.md" in notes.output

    removed = runner.invoke(main_module.app, ["remove", "AI/Memory.md", "--db-path", db_path])
    assert removed.exit_code == 0

    notes = runner.invoke(main_module.app, ["concept-notes", "memory", "--db-path", db_path])
    assert "No notes found" in notes.output
