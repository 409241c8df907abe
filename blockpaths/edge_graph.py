"""Block-edge graph construction for stacked cubes.

Graph convention:
- one node per physical cube corner, keyed by its half-block lattice index
- one undirected edge per cube edge, stored in both adjacency directions

Keys count half block edges from the origin, so corners shared by touching
cubes map to the same key whatever the block size. Centers must therefore
sit on the half-block grid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import numpy as np

logger = logging.getLogger(__name__)

Point3D = tuple[float, float, float]
VertexKey = tuple[int, int, int]

# Largest deviation from a lattice point, in half-block units, still treated as on it.
LATTICE_TOLERANCE = 0.01

# Beyond this index a float64 coordinate cannot tell neighbouring corners apart.
MAX_LATTICE_INDEX = 2**52

# Corner sign pattern per cube corner index (x, y, z).
CORNER_OFFSETS = np.array(
    [
        (-0.5, -0.5, -0.5),
        (0.5, -0.5, -0.5),
        (-0.5, 0.5, -0.5),
        (0.5, 0.5, -0.5),
        (-0.5, -0.5, 0.5),
        (0.5, -0.5, 0.5),
        (-0.5, 0.5, 0.5),
        (0.5, 0.5, 0.5),
    ],
    dtype=np.float64,
)

# Corner index pairs forming the 12 cube edges.
CUBE_EDGES: tuple[tuple[int, int], ...] = (
    (0, 1),
    (1, 3),
    (3, 2),
    (2, 0),
    (4, 5),
    (5, 7),
    (7, 6),
    (6, 4),
    (0, 4),
    (1, 5),
    (2, 6),
    (3, 7),
)


@dataclass(slots=True)
class BlockEdgeGraph:
    """Corner vertices and cube-edge adjacency for one block snapshot."""

    vertices: dict[VertexKey, Point3D] = field(default_factory=dict)
    adjacency: dict[VertexKey, set[VertexKey]] = field(default_factory=dict)
    block_size: float = 1.0

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def edge_count(self) -> int:
        """Number of undirected edges."""
        return sum(len(nbrs) for nbrs in self.adjacency.values()) // 2

    def resolve(self, point: Sequence[float]) -> VertexKey | None:
        """Return the vertex key for `point`, or None if no corner sits there."""
        try:
            key = vertex_key(point, block_size=self.block_size)
        except ValueError:
            return None
        return key if key in self.vertices else None

    def has_vertex(self, point: Sequence[float]) -> bool:
        return self.resolve(point) is not None

    def point_of(self, key: VertexKey) -> Point3D:
        return self.vertices[key]

    def neighbors(self, key: VertexKey) -> set[VertexKey]:
        return self.adjacency.get(key, set())


def lattice_indices(coords: Sequence[float] | np.ndarray, block_size: float = 1.0) -> np.ndarray:
    """Map coordinates to integer multiples of half a block.

    Args:
        coords: Array-like of coordinates, any shape.
        block_size: Cube edge length.

    Returns:
        int64 array of the same shape.

    Raises:
        ValueError: If a coordinate is not finite, is too large to index,
            or is not on the half-block grid.
    """
    if block_size <= 0:
        raise ValueError("block_size must be > 0")

    scaled = np.asarray(coords, dtype=np.float64) / (float(block_size) / 2)
    if not np.all(np.isfinite(scaled)):
        raise ValueError("coordinates must be finite")
    if np.any(np.abs(scaled) >= MAX_LATTICE_INDEX):
        raise ValueError("coordinates are out of the supported range")

    nearest = np.rint(scaled)
    if np.any(np.abs(scaled - nearest) > LATTICE_TOLERANCE):
        raise ValueError("coordinates are not on the half-block grid")
    return nearest.astype(np.int64)


def vertex_key(point: Sequence[float], block_size: float = 1.0) -> VertexKey:
    """Quantize a 3D point to its canonical vertex key.

    Args:
        point: `(x, y, z)` coordinate.
        block_size: Cube edge length of the graph the key belongs to.

    Returns:
        Integer triple counting half block edges from the origin per axis.

    Raises:
        ValueError: If the point is not three finite numbers on the
            half-block grid.
    """
    arr = np.asarray(point, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError("point must have exactly 3 coordinates")
    if not np.all(np.isfinite(arr)):
        raise ValueError("point coordinates must be finite")

    x, y, z = lattice_indices(arr, block_size=block_size)
    return int(x), int(y), int(z)


def format_point(point: Sequence[float]) -> str:
    """Render a point as a positional label, e.g. `"0.50,-0.50,1.50"`."""
    # + 0.0 turns -0.0 into 0.0
    return ",".join(f"{float(value) + 0.0:.2f}" for value in point)


def format_vertex_key(key: VertexKey, block_size: float = 1.0) -> str:
    """Render a vertex key as the positional label of its corner."""
    half = float(block_size) / 2
    return format_point([value * half for value in key])


def _as_centers(blocks: Iterable[Sequence[float]]) -> np.ndarray:
    """Validate block centers and stack them into an (N, 3) array."""
    rows = [tuple(block) for block in blocks]
    if not rows:
        return np.zeros((0, 3), dtype=np.float64)

    if any(len(row) != 3 for row in rows):
        raise ValueError("Each block center must have exactly 3 coordinates")

    centers = np.asarray(rows, dtype=np.float64)
    if not np.all(np.isfinite(centers)):
        raise ValueError("Block centers must be finite")
    return centers


def block_corners(blocks: Iterable[Sequence[float]], block_size: float = 1.0) -> np.ndarray:
    """Compute the 8 corners of every block.

    Args:
        blocks: Block center positions.
        block_size: Cube edge length.

    Returns:
        Array of shape (N, 8, 3) ordered like `CORNER_OFFSETS`.
    """
    if block_size <= 0:
        raise ValueError("block_size must be > 0")

    centers = _as_centers(blocks)
    return centers[:, None, :] + CORNER_OFFSETS[None, :, :] * float(block_size)


def build_block_edge_graph(
    blocks: Iterable[Sequence[float]],
    block_size: float = 1.0,
) -> BlockEdgeGraph:
    """Build the corner/edge graph for a block snapshot.

    Duplicate blocks and input order do not affect the result. The first
    block contributing a corner fixes that vertex's stored point.

    Args:
        blocks: Block center positions `(x, y, z)`, multiples of half a block.
        block_size: Cube edge length.

    Returns:
        BlockEdgeGraph; empty when `blocks` is empty.

    Raises:
        ValueError: On a non-positive block size or a center that is not
            three finite coordinates on the half-block grid.
    """
    corners = block_corners(blocks, block_size=block_size)
    try:
        keys = lattice_indices(corners, block_size=block_size)
    except ValueError as exc:
        raise ValueError(f"Invalid block centers: {exc}") from exc

    graph = BlockEdgeGraph(block_size=float(block_size))
    vertices = graph.vertices
    adjacency = graph.adjacency

    for block_idx in range(corners.shape[0]):
        corner_keys: list[VertexKey] = [
            (int(k[0]), int(k[1]), int(k[2])) for k in keys[block_idx]
        ]

        for corner_idx, key in enumerate(corner_keys):
            if key not in vertices:
                x, y, z = corners[block_idx, corner_idx]
                vertices[key] = (float(x), float(y), float(z))
                adjacency[key] = set()

        for i0, i1 in CUBE_EDGES:
            k0 = corner_keys[i0]
            k1 = corner_keys[i1]
            adjacency[k0].add(k1)
            adjacency[k1].add(k0)

    logger.debug(
        "Built block edge graph: blocks=%d vertices=%d edges=%d",
        corners.shape[0],
        graph.vertex_count,
        graph.edge_count,
    )
    return graph
