"""
FastAPI server for Latent Explorer.

Exposes search, indexing and index status over HTTP, and streams the concept
layout simulation to the browser over a WebSocket.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from .config import Settings, resolve_db_path
from .engine import make_coordinator, make_embedder, make_maintainer
from .errors import (
    DimensionMismatch,
    EmbeddingServiceUnavailable,
    EmptyResult,
    LatentExplorerError,
    StorageError,
    TooManyFailures,
)
from .indexing import IndexReport
from .layout import LayoutPoint, kinetic_energy
from .search import SearchResult, SemanticSearchCoordinator, notes_for_concept
from .search.ranker import ScoredDocument
from .storage import DuckDBVectorStore

logger = logging.getLogger(__name__)

app = FastAPI(title="Latent Explorer", description="Semantic search and concept maps over a markdown vault")

_vault_locks: dict[str, asyncio.Lock] = {}


def _get_vault_lock(vault: str) -> asyncio.Lock:
    """Return a per-vault asyncio lock, creating one if needed."""
    normalized = str(Path(vault).resolve())
    if normalized not in _vault_locks:
        _vault_locks[normalized] = asyncio.Lock()
    return _vault_locks[normalized]


class SearchRequest(BaseModel):
    """Request model for search queries."""

    query: str
    db_path: str | None = None
    strategy: str | None = None
    provider: str | None = None
    limit: int = Field(default=50, ge=1)


class IndexRequest(BaseModel):
    """Request model for index build/refresh."""

    vault: str
    db_path: str | None = None
    backend: str | None = None


def _report_payload(report: IndexReport) -> dict[str, Any]:
    return {
        "indexed": report.indexed,
        "skipped": report.skipped,
        "failed": report.failed,
        "errors": [{"id": doc_id, "message": message} for doc_id, message in report.errors],
    }


def _error_response(exc: Exception) -> JSONResponse:
    """Map a typed engine error onto an HTTP status."""
    if isinstance(exc, EmptyResult):
        return JSONResponse({"error": str(exc), "empty": True}, status_code=404)
    if isinstance(exc, EmbeddingServiceUnavailable):
        return JSONResponse({"error": str(exc)}, status_code=503)
    if isinstance(exc, TooManyFailures):
        return JSONResponse(
            {"error": str(exc), "report": _report_payload(exc.report)},
            status_code=502,
        )
    if isinstance(exc, DimensionMismatch):
        return JSONResponse({"error": str(exc)}, status_code=409)
    if isinstance(exc, ValueError):
        return JSONResponse({"error": str(exc)}, status_code=400)
    if isinstance(exc, LatentExplorerError):
        return JSONResponse({"error": str(exc)}, status_code=500)
    logger.exception("Unexpected server error")
    return JSONResponse({"error": str(exc)}, status_code=500)


def _document_payload(doc: ScoredDocument) -> dict[str, Any]:
    return {
        "id": doc.id,
        "title": doc.metadata.title,
        "path": doc.metadata.path,
        "score": doc.score,
        "similarity": doc.similarity,
        "boost": doc.boost,
        "snippet": doc.snippet,
        "tags": sorted(doc.metadata.tags),
    }


def _point_payload(point: LayoutPoint) -> dict[str, Any]:
    return {"label": point.label, "x": point.x, "y": point.y, "fixed": point.fixed}


def _result_payload(result: SearchResult, limit: int | None = None) -> dict[str, Any]:
    documents = result.documents if limit is None else result.documents[:limit]
    return {
        "query": result.query_text,
        "documents": [_document_payload(doc) for doc in documents],
        "concepts": [
            {
                "term": concept.term,
                "similarity": concept.query_similarity,
                "support_count": concept.support_count,
                "has_notes": concept.has_notes,
            }
            for concept in result.concepts
        ],
        "layout": [_point_payload(point) for point in result.layout],
    }


def _run_search(settings: Settings, db_path: str | None, query: str) -> tuple[SemanticSearchCoordinator, SearchResult]:
    store = DuckDBVectorStore(resolve_db_path(db_path))
    try:
        coordinator = make_coordinator(store, settings, embedder=make_embedder(settings))
        return coordinator, coordinator.search(query)
    finally:
        store.close()


@app.post("/api/search")
async def search_notes(request: SearchRequest):
    """Rank notes against a query and return the concepts around it."""
    settings = Settings.from_env(
        concept_strategy=request.strategy,
        concept_provider=request.provider,
    )
    try:
        _, result = await asyncio.to_thread(_run_search, settings, request.db_path, request.query)
    except Exception as exc:
        return _error_response(exc)
    return _result_payload(result, request.limit)


def _run_index(settings: Settings, vault: str, db_path: str | None) -> IndexReport:
    store = DuckDBVectorStore(resolve_db_path(db_path))
    try:
        maintainer = make_maintainer(store, settings, vault, embedder=make_embedder(settings))
        return maintainer.reindex_all()
    finally:
        store.close()


@app.post("/api/index")
async def build_index(request: IndexRequest):
    """Build or refresh the index for a vault."""
    vault_path = Path(request.vault).expanduser().resolve()
    if not vault_path.exists():
        return JSONResponse({"error": "Path not found"}, status_code=404)
    if not vault_path.is_dir():
        return JSONResponse({"error": "Not a directory"}, status_code=400)

    settings = Settings.from_env(embedding_backend=request.backend)
    lock = _get_vault_lock(str(vault_path))
    try:
        async with lock:
            report = await asyncio.to_thread(_run_index, settings, str(vault_path), request.db_path)
    except Exception as exc:
        return _error_response(exc)
    return {"vault": str(vault_path), **_report_payload(report)}


@app.get("/api/index/status")
async def index_status(db_path: str | None = None):
    """Report whether an index exists and what it holds."""
    resolved_db_path = resolve_db_path(db_path)
    if not Path(resolved_db_path).exists():
        return {"indexed": False, "db_path": resolved_db_path}

    def _stats():
        store = DuckDBVectorStore(resolved_db_path, read_only=True, initialize=False)
        try:
            return store.stats()
        finally:
            store.close()

    try:
        stats = await asyncio.to_thread(_stats)
    except StorageError as exc:
        return _error_response(exc)
    return {
        "indexed": stats.total_records > 0,
        "db_path": resolved_db_path,
        "note_count": stats.total_records,
        "dimensions": stats.dimension,
        "last_indexed_at": stats.last_indexed_at,
        "by_folder": stats.by_folder,
    }


@app.get("/api/concepts/{term}/notes")
async def concept_notes(term: str, db_path: str | None = None):
    """List indexed notes whose title or path mentions a concept."""

    def _lookup():
        store = DuckDBVectorStore(resolve_db_path(db_path))
        try:
            return notes_for_concept(store, term)
        finally:
            store.close()

    try:
        records = await asyncio.to_thread(_lookup)
    except Exception as exc:
        return _error_response(exc)
    return {
        "term": term,
        "notes": [
            {"id": record.id, "title": record.metadata.title, "snippet": record.snippet}
            for record in records
        ],
    }


@app.get("/api/health")
async def health(backend: str | None = None):
    """Check that the configured embedding backend answers."""
    settings = Settings.from_env(embedding_backend=backend)
    try:
        embedder = make_embedder(settings)
        status = await asyncio.to_thread(embedder.health)
    except ValueError as exc:
        return JSONResponse(
            {"status": "unavailable", "backend": settings.embedding_backend, "detail": str(exc)},
            status_code=503,
        )
    payload = {
        "status": "ok" if status.healthy else "unavailable",
        "backend": settings.embedding_backend,
        "model": status.model,
        "dimensions": status.dimensions,
        "detail": status.detail,
    }
    return JSONResponse(payload, status_code=200 if status.healthy else 503)


class LayoutMessage(BaseModel):
    """A query message sent over the layout WebSocket."""

    query: str = ""
    db_path: str | None = None
    strategy: str | None = None
    provider: str | None = None
    interval: float | None = Field(default=None, ge=0)
    max_ticks: int | None = Field(default=None, ge=1)


async def _read_messages(websocket: WebSocket, queue: "asyncio.Queue[str | None]") -> None:
    try:
        while True:
            await queue.put(await websocket.receive_text())
    except WebSocketDisconnect:
        pass
    finally:
        await queue.put(None)


async def _send_error(websocket: WebSocket, exc: Exception) -> None:
    event = "empty" if isinstance(exc, EmptyResult) else "error"
    await websocket.send_json({"type": event, "data": {"message": str(exc)}})


def _parse_message(raw: str) -> LayoutMessage:
    try:
        return LayoutMessage.model_validate_json(raw)
    except ValidationError as exc:
        detail = exc.errors(include_url=False)[0]
        location = ".".join(str(part) for part in detail["loc"]) or "message"
        raise ValueError(f"Invalid message ({location}): {detail['msg']}") from exc


@app.websocket("/ws/layout")
async def websocket_layout(websocket: WebSocket):
    """
    WebSocket endpoint streaming the concept layout simulation.

    Protocol:
    1. Client sends: {"query": "...", "db_path"?, "strategy"?, "provider"?,
       "interval"?, "max_ticks"?}
    2. Server sends {"type": "result", ...} then {"type": "frame", ...} per tick
    3. Server sends {"type": "settled", ...} once the layout is at rest or
       ticks run out
    4. Any new query message replaces the current layout
    """
    await websocket.accept()
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    reader = asyncio.create_task(_read_messages(websocket, queue))

    try:
        raw = await queue.get()
        while raw is not None:
            try:
                message = _parse_message(raw)
                query = message.query.strip()
                if not query:
                    raise ValueError("No query provided")
                settings = Settings.from_env(
                    concept_strategy=message.strategy,
                    concept_provider=message.provider,
                )
                coordinator, result = await asyncio.to_thread(
                    _run_search, settings, message.db_path, query
                )
            except Exception as exc:
                await _send_error(websocket, exc)
                raw = await queue.get()
                continue

            await websocket.send_json({"type": "result", "data": _result_payload(result)})
            raw = await _stream_frames(
                websocket,
                queue,
                coordinator,
                interval=settings.frame_interval if message.interval is None else message.interval,
                max_ticks=settings.max_ticks if message.max_ticks is None else message.max_ticks,
                settings=settings,
            )
    except WebSocketDisconnect:
        pass
    finally:
        reader.cancel()


async def _stream_frames(
    websocket: WebSocket,
    queue: "asyncio.Queue[str | None]",
    coordinator: SemanticSearchCoordinator,
    *,
    interval: float,
    max_ticks: int,
    settings: Settings,
) -> str | None:
    """Tick and send frames until the layout settles or a new message arrives.

    The layout counts as settled once both the kinetic energy and the largest
    net force fall below their thresholds; a layout that has only just
    started moving has little energy but is still far from equilibrium.
    """
    engine = coordinator.layout_engine
    points = engine.points
    tick = 0
    energy = kinetic_energy(points)
    while tick < max_ticks:
        engine.tick()
        tick += 1
        energy = kinetic_energy(points)
        await websocket.send_json(
            {
                "type": "frame",
                "data": {
                    "tick": tick,
                    "energy": energy,
                    "points": [_point_payload(point) for point in points],
                },
            }
        )
        if energy < settings.settle_energy and engine.residual_force() < settings.settle_force:
            break
        try:
            return await asyncio.wait_for(queue.get(), timeout=interval)
        except asyncio.TimeoutError:
            continue

    await websocket.send_json({"type": "settled", "data": {"tick": tick, "energy": energy}})
    return await queue.get()


def run_server(host: str = "127.0.0.1", port: int = 8000):
    """Run the FastAPI server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
