"""Utility helpers shared across blockpaths modules.

Purpose:
- Snap free-form coordinates onto the block grid.
- Convert points and paths to JSON-friendly payload types.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from blockpaths.edge_graph import format_point


def snap(value: float, block_size: float = 1.0) -> float:
    """Round `value` to the nearest multiple of `block_size`, halves rounding up."""
    if block_size <= 0:
        raise ValueError("block_size must be > 0")
    return float(math.floor(value / block_size + 0.5) * block_size)


def to_serializable_point(point: Sequence[float]) -> dict[str, float]:
    """Convert an `(x, y, z)` tuple to a JSON-friendly dictionary."""
    return {"x": float(point[0]), "y": float(point[1]), "z": float(point[2])}


def to_serializable_path(path: Iterable[Sequence[float]]) -> list[dict[str, float]]:
    """Convert a sequence of `(x, y, z)` points to dictionaries."""
    return [to_serializable_point(p) for p in path]


def serializable_distance(distance: int | float) -> int | None:
    """Map an infinite distance to None; JSON has no infinity."""
    if math.isinf(distance):
        return None
    return int(distance)


def point_label(point: Sequence[float] | None) -> str | None:
    """Positional vertex label for a point, e.g. `"0.50,0.00,-0.50"`."""
    if point is None:
        return None
    return format_point(point)
