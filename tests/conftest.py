from __future__ import annotations

from pathlib import Path

import pytest

from latent_explorer.embeddings import EmbeddingHealth
from latent_explorer.errors import EmbeddingServiceUnavailable
from latent_explorer.storage import DuckDBVectorStore, NoteMetadata

# Each keyword owns one axis; the last axis is a small bias so that no text
# embeds to the zero vector.
KEYWORDS: tuple[str, ...] = (
    "neural",
    "network",
    "learning",
    "memory",
    "brain",
    "quantum",
    "physics",
    "recipe",
    "cooking",
    "garden",
    "philosophy",
    "ethics",
)


def keyword_vector(text: str) -> list[float]:
    lowered = text.lower()
    return [float(lowered.count(keyword)) for keyword in KEYWORDS] + [0.1]


class FakeEmbedder:
    """Deterministic keyword-count embedder that records its calls."""

    model = "fake-keywords"

    def __init__(self, *, fail_on: tuple[str, ...] = (), unavailable: bool = False) -> None:
        self.fail_on = fail_on
        self.unavailable = unavailable
        self.query_calls: list[str] = []
        self.batch_calls: list[list[str]] = []

    @property
    def dim(self) -> int:
        return len(KEYWORDS) + 1

    def _check(self, text: str) -> None:
        if self.unavailable:
            raise EmbeddingServiceUnavailable("embedding server is down")
        if any(marker in text for marker in self.fail_on):
            raise EmbeddingServiceUnavailable(f"cannot embed {text[:20]!r}")

    def embed_query(self, query: str) -> list[float]:
        self.query_calls.append(query)
        self._check(query)
        return keyword_vector(query)

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.batch_calls.append(list(texts))
        for text in texts:
            self._check(text)
        return [keyword_vector(text) for text in texts]

    def health(self) -> EmbeddingHealth:
        if self.unavailable:
            return EmbeddingHealth(healthy=False, model=self.model, dimensions=None, detail="down")
        return EmbeddingHealth(healthy=True, model=self.model, dimensions=self.dim)


def make_metadata(path: str, *, modified_at: float = 1.0, title: str | None = None) -> NoteMetadata:
    stem = path.rsplit("/", 1)[-1]
    if stem.endswith(".md"):
        stem = stem[:-3]
    return NoteMetadata(title=title or stem, path=path, modified_at=modified_at)


@pytest.fixture()
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def store(tmp_path: Path):
    vector_store = DuckDBVectorStore(str(tmp_path / "index.duckdb"))
    yield vector_store
    vector_store.close()


@pytest.fixture()
def vault(tmp_path: Path) -> Path:
    """A small vault of markdown notes on a few distinct topics."""
    root = tmp_path / "vault"
    (root / "AI").mkdir(parents=True)
    (root / "Kitchen").mkdir()
    (root / ".obsidian").mkdir()

    (root / "AI" / "Neural Networks.md").write_text(
        "---\ntags: [ml, research]\n---\n"
        "Neural network models learn representations. Neural learning links to [[Memory|recall]] "
        "and to [[Brain]]. #deep-learning\n"
    )
    (root / "AI" / "Memory.md").write_text(
        "Memory consolidation in the brain and in neural network training loops. "
        "Working memory limits learning speed.\n"
    )
    (root / "Kitchen" / "Bread Recipe.md").write_text(
        "A simple recipe for sourdough. Cooking takes patience; the recipe needs a starter "
        "and a hot oven.\n"
    )
    (root / "Physics.md").write_text(
        "Quantum physics describes small scales. Quantum effects and physics experiments.\n"
    )
    (root / "stub.md").write_text("too short\n")
    (root / ".obsidian" / "workspace.md").write_text("editor state " * 20)
    return root
