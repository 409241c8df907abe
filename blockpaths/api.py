"""FastAPI routes for the block-stacking sandbox and block-edge path queries.

Two modes:
- Stateful sandbox (`/blocks`, `/select`, `/undo`, `/redo`, `/path-count`,
  `/shortest-paths`) driven by a 3D front end.
- Stateless analysis (`/analyze`) over an explicit block snapshot.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from blockpaths.edge_graph import build_block_edge_graph
from blockpaths.path_counting import PathCountResult, all_shortest_paths, shortest_path_count
from blockpaths.sandbox import DEFAULT_SNAP_RADIUS, BlockSandbox, CornerSelection, SandboxError
from blockpaths.utils import point_label, serializable_distance, to_serializable_path, to_serializable_point

logger = logging.getLogger(__name__)

DEFAULT_MAX_PATHS = 2000


@dataclass
class SandboxState:
    """In-memory state for the live sandbox session."""

    sandbox: BlockSandbox = field(default_factory=BlockSandbox)


STATE = SandboxState()


class ColumnPoint(BaseModel):
    """Ground position; snapped to the nearest block column."""

    model_config = ConfigDict(allow_inf_nan=False)

    x: float
    z: float


class WorldPoint(BaseModel):
    """World coordinate in block units."""

    model_config = ConfigDict(allow_inf_nan=False)

    x: float
    y: float
    z: float

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


class SelectionResponse(BaseModel):
    point_a: dict[str, float] | None = None
    point_b: dict[str, float] | None = None
    label_a: str | None = None
    label_b: str | None = None
    complete: bool = False


class HistoryResponse(BaseModel):
    """Result of an undo/redo step."""

    changed: bool
    block_count: int
    can_undo: bool
    can_redo: bool
    selection: SelectionResponse


class PathCountResponse(BaseModel):
    """Shortest distance (null when unreachable) and shortest-path count."""

    distance: int | None
    count: int
    reachable: bool
    label_a: str | None = None
    label_b: str | None = None


class ShortestPathsResponse(PathCountResponse):
    paths: list[list[dict[str, float]]]


class AnalyzeRequest(BaseModel):
    """Request payload for a stateless query on an explicit block snapshot."""

    blocks: list[WorldPoint]
    a: WorldPoint
    b: WorldPoint
    block_size: float = Field(default=1.0, gt=0)
    enumerate_paths: bool = False
    max_paths: int | None = Field(default=None, ge=1)


def _serialize_selection(selection: CornerSelection) -> SelectionResponse:
    return SelectionResponse(
        point_a=to_serializable_point(selection.point_a) if selection.point_a else None,
        point_b=to_serializable_point(selection.point_b) if selection.point_b else None,
        label_a=point_label(selection.point_a),
        label_b=point_label(selection.point_b),
        complete=selection.complete,
    )


def _count_payload(result: PathCountResult, point_a: Any, point_b: Any) -> dict[str, Any]:
    return {
        "distance": serializable_distance(result.distance),
        "count": result.count,
        "reachable": result.reachable,
        "label_a": point_label(point_a),
        "label_b": point_label(point_b),
    }


def _history_response(changed: bool) -> HistoryResponse:
    sandbox = STATE.sandbox
    return HistoryResponse(
        changed=changed,
        block_count=len(sandbox.blocks),
        can_undo=sandbox.can_undo,
        can_redo=sandbox.can_redo,
        selection=_serialize_selection(sandbox.selection),
    )


def _selection_or_400() -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Get both selected corners or raise 400."""
    try:
        return STATE.sandbox.require_selection()
    except SandboxError as exc:
        raise HTTPException(status_code=400, detail=f"Selection incomplete: {exc}") from exc


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="BlockPaths API", version="0.3.0")

    raw_origins = os.getenv("BLOCKPATHS_CORS_ORIGINS", "*").strip()
    if raw_origins == "*":
        cors_origins = ["*"]
        allow_credentials = False
    else:
        cors_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
        allow_credentials = True

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    block_size = float(os.getenv("BLOCKPATHS_BLOCK_SIZE", "1.0"))
    max_paths_default = int(os.getenv("BLOCKPATHS_MAX_PATHS", str(DEFAULT_MAX_PATHS)))
    snap_radius = float(os.getenv("BLOCKPATHS_SNAP_RADIUS", str(DEFAULT_SNAP_RADIUS)))

    # A new size only replaces a sandbox with no recorded history.
    if STATE.sandbox.block_size != block_size:
        if STATE.sandbox.history_length == 0:
            STATE.sandbox = BlockSandbox(block_size=block_size)
        else:
            logger.warning(
                "Keeping live sandbox with block_size=%s; BLOCKPATHS_BLOCK_SIZE=%s not applied",
                STATE.sandbox.block_size,
                block_size,
            )

    @app.get("/health")
    def health() -> dict[str, Any]:
        """Health endpoint with current sandbox summary."""
        sandbox = STATE.sandbox
        return {
            "status": "ok",
            "version": app.version,
            "block_size": sandbox.block_size,
            "block_count": len(sandbox.blocks),
            "selection_complete": sandbox.selection.complete,
        }

    @app.get("/blocks")
    async def get_blocks() -> dict[str, Any]:
        sandbox = STATE.sandbox
        return {
            "block_size": sandbox.block_size,
            "blocks": to_serializable_path(sandbox.blocks),
            "columns": [
                {"x": x, "z": z, "height": height}
                for (x, z), height in sandbox.column_heights().items()
            ],
        }

    @app.post("/blocks")
    async def place_block(payload: ColumnPoint) -> dict[str, Any]:
        """Stack one block on the column nearest to the given ground point."""
        try:
            center = STATE.sandbox.place_block(payload.x, payload.z)
        except SandboxError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid block position: {exc}") from exc
        return {"center": to_serializable_point(center), "block_count": len(STATE.sandbox.blocks)}

    @app.post("/clear", response_model=HistoryResponse)
    async def clear_blocks() -> HistoryResponse:
        STATE.sandbox.clear_blocks()
        return _history_response(changed=True)

    @app.post("/reset-selection", response_model=HistoryResponse)
    async def reset_selection() -> HistoryResponse:
        STATE.sandbox.reset_selection()
        return _history_response(changed=True)

    @app.post("/reset", response_model=HistoryResponse)
    async def reset() -> HistoryResponse:
        """Drop all blocks, selection and history."""
        STATE.sandbox.reset()
        return _history_response(changed=True)

    @app.post("/undo", response_model=HistoryResponse)
    async def undo() -> HistoryResponse:
        return _history_response(changed=STATE.sandbox.undo())

    @app.post("/redo", response_model=HistoryResponse)
    async def redo() -> HistoryResponse:
        return _history_response(changed=STATE.sandbox.redo())

    @app.get("/selection", response_model=SelectionResponse)
    async def get_selection() -> SelectionResponse:
        return _serialize_selection(STATE.sandbox.selection)

    @app.post("/select", response_model=SelectionResponse)
    async def select_corner(payload: WorldPoint) -> SelectionResponse:
        """Snap a clicked point to the nearest block corner and select it."""
        sandbox = STATE.sandbox
        corner = sandbox.nearest_corner(payload.as_tuple(), max_distance=snap_radius)
        if corner is None:
            raise HTTPException(status_code=400, detail="No block corner near the selected point")

        try:
            selection = sandbox.select_corner(corner)
        except SandboxError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid selection: {exc}") from exc
        return _serialize_selection(selection)

    @app.get("/path-count", response_model=PathCountResponse)
    async def path_count() -> PathCountResponse:
        """Shortest edge distance and path count between selected corners."""
        point_a, point_b = _selection_or_400()
        result = STATE.sandbox.path_count()
        return PathCountResponse(**_count_payload(result, point_a, point_b))

    @app.get("/shortest-paths", response_model=ShortestPathsResponse)
    async def shortest_paths(max_paths: int | None = Query(default=None, ge=1)) -> ShortestPathsResponse:
        """Enumerate all shortest paths between selected corners.

        Paths are counted first; enumeration is refused with 413 when the
        count exceeds `max_paths`.
        """
        point_a, point_b = _selection_or_400()
        limit = max_paths or max_paths_default

        sandbox = STATE.sandbox
        graph = build_block_edge_graph(sandbox.snapshot(), block_size=sandbox.block_size)
        result = shortest_path_count(graph, point_a, point_b)
        if result.count > limit:
            logger.warning("Refusing to enumerate %d shortest paths (limit %d)", result.count, limit)
            raise HTTPException(
                status_code=413,
                detail=f"Too many shortest paths to enumerate: {result.count} > max_paths={limit}",
            )

        paths = all_shortest_paths(graph, point_a, point_b)
        return ShortestPathsResponse(
            **_count_payload(result, point_a, point_b),
            paths=[to_serializable_path(p) for p in paths],
        )

    @app.post("/analyze", response_model=ShortestPathsResponse)
    async def analyze(payload: AnalyzeRequest) -> ShortestPathsResponse:
        """Count (and optionally enumerate) shortest paths on an explicit snapshot."""
        limit = payload.max_paths or max_paths_default
        point_a = payload.a.as_tuple()
        point_b = payload.b.as_tuple()

        try:
            graph = build_block_edge_graph(
                [block.as_tuple() for block in payload.blocks],
                block_size=payload.block_size,
            )
            result = shortest_path_count(graph, point_a, point_b)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid analysis query: {exc}") from exc
        except Exception as exc:  # pragma: no cover - safety net
            raise HTTPException(status_code=500, detail=f"Unexpected analysis error: {exc}") from exc

        paths: list[list[dict[str, float]]] = []
        if payload.enumerate_paths:
            if result.count > limit:
                logger.warning("Refusing to enumerate %d shortest paths (limit %d)", result.count, limit)
                raise HTTPException(
                    status_code=413,
                    detail=f"Too many shortest paths to enumerate: {result.count} > max_paths={limit}",
                )
            paths = [to_serializable_path(p) for p in all_shortest_paths(graph, point_a, point_b)]

        return ShortestPathsResponse(**_count_payload(result, point_a, point_b), paths=paths)

    return app
