import logging
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from typer import Argument, Option, Typer

from .config import Settings, resolve_db_path
from .engine import make_coordinator, make_embedder, make_maintainer
from .errors import EmptyResult, LatentExplorerError, TooManyFailures
from .search import notes_for_concept
from .storage import DuckDBVectorStore

app = Typer(help="Semantic search and concept maps over a markdown vault.")
console = Console()

DbPathOption = Annotated[
    Optional[str],
    Option("--db-path", help="DuckDB index path (default: ~/.latent_explorer/index.duckdb)."),
]


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/] {message}")
    raise typer.Exit(code=1)


def _open_store(db_path: str | None) -> DuckDBVectorStore:
    try:
        return DuckDBVectorStore(resolve_db_path(db_path))
    except LatentExplorerError as exc:
        _fail(str(exc))


@app.callback()
def main(
    verbose: Annotated[bool, Option("--verbose", "-v", help="Log debug output.")] = False,
) -> None:
    configure_logging(verbose)


@app.command()
def index(
    vault: Annotated[str, Argument(help="Folder of markdown notes to index.")],
    db_path: DbPathOption = None,
    backend: Annotated[
        Optional[str],
        Option("--backend", help="Embedding backend: genai or local."),
    ] = None,
) -> None:
    """Embed every note of VAULT into the index."""
    settings = Settings.from_env(embedding_backend=backend)
    store = _open_store(db_path)
    try:
        maintainer = make_maintainer(store, settings, vault, embedder=make_embedder(settings))
        with console.status("Indexing notes..."):
            report = maintainer.reindex_all()
    except TooManyFailures as exc:
        partial = exc.report
        console.print(
            f"[yellow]Indexed {partial.indexed} notes before aborting "
            f"({partial.failed} failures).[/]"
        )
        _fail(str(exc))
    except (LatentExplorerError, ValueError) as exc:
        _fail(str(exc))
    finally:
        store.close()

    summary = f"[bold green]Indexed {report.indexed} notes[/] ({report.skipped} skipped"
    if report.failed:
        summary += f", [red]{report.failed} failed[/]"
    console.print(summary + ")")
    for doc_id, message in report.errors[:5]:
        console.print(f"  [red]✗[/] {doc_id}: {message}")


@app.command()
def search(
    query: Annotated[str, Argument(help="What to search for.")],
    db_path: DbPathOption = None,
    strategy: Annotated[
        Optional[str],
        Option("--strategy", help="Concept strategy: local or delegated."),
    ] = None,
    provider: Annotated[
        Optional[str],
        Option("--provider", help="Term generator for the delegated strategy: genai, ollama or vocabulary."),
    ] = None,
    backend: Annotated[
        Optional[str],
        Option("--backend", help="Embedding backend: genai or local."),
    ] = None,
    ticks: Annotated[int, Option("--ticks", help="Layout simulation steps to run before printing.")] = 300,
    limit: Annotated[int, Option("--limit", "-n", help="Number of notes to show.")] = 10,
) -> None:
    """Rank notes against QUERY and print the surrounding concepts."""
    settings = Settings.from_env(
        concept_strategy=strategy,
        concept_provider=provider,
        embedding_backend=backend,
    )
    store = _open_store(db_path)
    try:
        coordinator = make_coordinator(store, settings, embedder=make_embedder(settings))
        with console.status("Searching semantic space..."):
            result = coordinator.search(query)
            energy = coordinator.layout_engine.settle(ticks)
    except EmptyResult as exc:
        console.print(f"[yellow]{exc}[/]")
        return
    except (LatentExplorerError, ValueError) as exc:
        _fail(str(exc))
    finally:
        store.close()

    notes = Table(title=f"Notes for “{result.query_text}”")
    notes.add_column("#", justify="right")
    notes.add_column("Score", justify="right")
    notes.add_column("Title", style="bold")
    notes.add_column("Path", style="dim")
    for position, doc in enumerate(result.documents[:limit], start=1):
        notes.add_row(str(position), f"{doc.score:.3f}", doc.metadata.title, doc.id)
    console.print(notes)

    if not result.concepts:
        console.print("[yellow]No concepts found around this query.[/]")
        return

    concepts = Table(title=f"Concepts (energy {energy:.2e} after {ticks} ticks)")
    concepts.add_column("Term", style="bold cyan")
    concepts.add_column("Similarity", justify="right")
    concepts.add_column("Notes", justify="right")
    concepts.add_column("x", justify="right")
    concepts.add_column("y", justify="right")
    for concept in result.concepts:
        point = result.position_of(concept.term)
        x, y = (point.x, point.y) if point is not None else (0.0, 0.0)
        concepts.add_row(
            concept.term,
            f"{concept.query_similarity:.0%}",
            str(concept.support_count),
            f"{x:+.3f}",
            f"{y:+.3f}",
        )
    console.print(concepts)


@app.command()
def stats(db_path: DbPathOption = None) -> None:
    """Show what the index holds."""
    store = _open_store(db_path)
    try:
        summary = store.stats()
    except LatentExplorerError as exc:
        _fail(str(exc))
    finally:
        store.close()

    console.print(f"[bold]Indexed notes:[/] {summary.total_records}")
    console.print(f"[bold]Dimensions:[/] {summary.dimension or '-'}")
    if not summary.by_folder:
        return
    table = Table(title="Notes by folder")
    table.add_column("Folder")
    table.add_column("Notes", justify="right")
    for folder, count in sorted(summary.by_folder.items(), key=lambda item: (-item[1], item[0])):
        table.add_row(folder, str(count))
    console.print(table)


@app.command("concept-notes")
def concept_notes(
    term: Annotated[str, Argument(help="Concept term to look up.")],
    db_path: DbPathOption = None,
) -> None:
    """List indexed notes whose title or path mentions TERM."""
    store = _open_store(db_path)
    try:
        records = notes_for_concept(store, term)
    except LatentExplorerError as exc:
        _fail(str(exc))
    finally:
        store.close()

    if not records:
        console.print(f"[yellow]No notes found for “{term}”.[/]")
        return
    for record in records:
        console.print(f"- [bold]{record.metadata.title}[/] [dim]{record.id}[/]")


@app.command()
def remove(
    doc_id: Annotated[str, Argument(metavar="ID", help="Vault-relative path of the note.")],
    db_path: DbPathOption = None,
) -> None:
    """Drop one note from the index."""
    store = _open_store(db_path)
    try:
        store.delete(doc_id)
    except LatentExplorerError as exc:
        _fail(str(exc))
    finally:
        store.close()
    console.print(f"Removed [bold]{doc_id}[/] from the index.")


@app.command()
def serve(
    host: Annotated[str, Option("--host", help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, Option("--port", help="Port to listen on.")] = 8000,
) -> None:
    """Run the HTTP/WebSocket server."""
    from .server import run_server

    run_server(host=host, port=port)
