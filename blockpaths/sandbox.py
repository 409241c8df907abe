"""Block-stacking sandbox state with corner selection and undo/redo.

Blocks are placed on ground columns and stack upward. Every mutation is
recorded as an action; undo/redo move an index through the action list and
rebuild state by replaying actions from the beginning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from blockpaths.edge_graph import Point3D, block_corners, build_block_edge_graph, lattice_indices
from blockpaths.path_counting import PathCountResult, all_shortest_paths, shortest_path_count
from blockpaths.utils import snap

logger = logging.getLogger(__name__)

DEFAULT_SNAP_RADIUS = 0.3

ColumnKey = tuple[int, int]


class SandboxError(ValueError):
    """Invalid sandbox operation (bad selection, incomplete query)."""


@dataclass(slots=True, frozen=True)
class CornerSelection:
    """Selected endpoints A and B."""

    point_a: Point3D | None = None
    point_b: Point3D | None = None

    @property
    def complete(self) -> bool:
        return self.point_a is not None and self.point_b is not None


@dataclass(slots=True, frozen=True)
class SandboxAction:
    """One undoable step: `place`, `select`, `clear` or `reset`."""

    kind: str
    position: Point3D | None = None
    selection: CornerSelection | None = None


@dataclass
class BlockSandbox:
    """Placed blocks, column heights, selection and action history."""

    block_size: float = 1.0
    blocks: list[Point3D] = field(default_factory=list)
    selection: CornerSelection = field(default_factory=CornerSelection)
    _stack_heights: dict[ColumnKey, int] = field(default_factory=dict, init=False, repr=False)
    _history: list[SandboxAction] = field(default_factory=list, init=False, repr=False)
    _history_index: int = field(default=-1, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.block_size <= 0:
            raise ValueError("block_size must be > 0")

    # Queries

    def snapshot(self) -> tuple[Point3D, ...]:
        """Immutable copy of the current block centers."""
        return tuple(self.blocks)

    def _column_key(self, x: float, z: float) -> ColumnKey:
        kx, kz = lattice_indices((x, z), block_size=self.block_size)
        return int(kx), int(kz)

    def column_height(self, x: float, z: float) -> int:
        """Number of blocks stacked on the column containing `(x, z)`."""
        gx = snap(x, self.block_size)
        gz = snap(z, self.block_size)
        return self._stack_heights.get(self._column_key(gx, gz), 0)

    def column_heights(self) -> dict[tuple[float, float], int]:
        half = self.block_size / 2
        return {
            (kx * half, kz * half): height
            for (kx, kz), height in sorted(self._stack_heights.items())
        }

    @property
    def can_undo(self) -> bool:
        return self._history_index >= 0

    @property
    def can_redo(self) -> bool:
        return self._history_index < len(self._history) - 1

    @property
    def history_length(self) -> int:
        return len(self._history)

    def nearest_corner(
        self,
        point: Sequence[float],
        max_distance: float = DEFAULT_SNAP_RADIUS,
    ) -> Point3D | None:
        """Return the block corner closest to `point` within `max_distance`."""
        if not self.blocks:
            return None

        corners = block_corners(self.blocks, block_size=self.block_size).reshape(-1, 3)
        target = np.asarray(point, dtype=np.float64)
        if target.shape != (3,):
            raise ValueError("point must have exactly 3 coordinates")

        dists = np.linalg.norm(corners - target, axis=1)
        best = int(np.argmin(dists))
        if float(dists[best]) >= max_distance:
            return None
        x, y, z = corners[best]
        return float(x), float(y), float(z)

    # Mutations

    def place_block(self, x: float, z: float) -> Point3D:
        """Stack a block on the column nearest to `(x, z)` and return its center.

        Raises:
            SandboxError: If the position is not finite or is out of range.
        """
        gx = snap(x, self.block_size)
        gz = snap(z, self.block_size)
        try:
            self._column_key(gx, gz)
        except ValueError as exc:
            raise SandboxError(f"Cannot place block at ({x}, {z}): {exc}") from exc
        height = self.column_height(gx, gz)
        gy = height * self.block_size + self.block_size / 2
        center = (gx, float(gy), gz)

        self._record(SandboxAction(kind="place", position=center))
        logger.info("Placed block at %s (column height %d)", center, height + 1)
        return center

    def select_corner(self, point: Sequence[float]) -> CornerSelection:
        """Select a block corner as A, then B; a third pick starts over.

        Raises:
            SandboxError: If `point` is not a corner of any placed block.
        """
        graph = build_block_edge_graph(self.blocks, block_size=self.block_size)
        key = graph.resolve(point)
        if key is None:
            raise SandboxError("Selected point is not a corner of any placed block")

        corner = graph.point_of(key)
        current = self.selection
        if current.point_a is None:
            selection = CornerSelection(point_a=corner)
        elif current.point_b is None:
            selection = CornerSelection(point_a=current.point_a, point_b=corner)
        else:
            selection = CornerSelection(point_a=corner)

        self._record(SandboxAction(kind="select", selection=selection))
        logger.info("Selection updated: A=%s B=%s", selection.point_a, selection.point_b)
        return selection

    def clear_blocks(self) -> None:
        """Remove all blocks; the selection is kept."""
        self._record(SandboxAction(kind="clear"))
        logger.info("Cleared all blocks")

    def reset_selection(self) -> None:
        self._record(SandboxAction(kind="reset"))

    def undo(self) -> bool:
        """Step back one action. Returns False when there is nothing to undo."""
        if not self.can_undo:
            return False
        self._history_index -= 1
        self._replay()
        return True

    def redo(self) -> bool:
        """Re-apply the next undone action. Returns False at the end of history."""
        if not self.can_redo:
            return False
        self._history_index += 1
        self._replay()
        return True

    def reset(self) -> None:
        """Drop blocks, selection and history. Not undoable."""
        self._clear_state()
        self._history.clear()
        self._history_index = -1
        logger.info("Sandbox reset")

    # Path queries on the current snapshot

    def require_selection(self) -> tuple[Point3D, Point3D]:
        if not self.selection.complete:
            raise SandboxError("Select both corner A and corner B first")
        return self.selection.point_a, self.selection.point_b  # type: ignore[return-value]

    def path_count(self) -> PathCountResult:
        point_a, point_b = self.require_selection()
        graph = build_block_edge_graph(self.snapshot(), block_size=self.block_size)
        return shortest_path_count(graph, point_a, point_b)

    def shortest_paths(self) -> list[list[Point3D]]:
        point_a, point_b = self.require_selection()
        graph = build_block_edge_graph(self.snapshot(), block_size=self.block_size)
        return all_shortest_paths(graph, point_a, point_b)

    # History internals

    def _record(self, action: SandboxAction) -> None:
        del self._history[self._history_index + 1 :]
        self._history.append(action)
        self._history_index += 1
        self._apply(action)

    def _clear_state(self) -> None:
        self.blocks.clear()
        self._stack_heights.clear()
        self.selection = CornerSelection()

    def _replay(self) -> None:
        self._clear_state()
        for action in self._history[: self._history_index + 1]:
            self._apply(action)

    def _apply(self, action: SandboxAction) -> None:
        if action.kind == "place" and action.position is not None:
            x, _, z = action.position
            self.blocks.append(action.position)
            key = self._column_key(x, z)
            self._stack_heights[key] = self._stack_heights.get(key, 0) + 1
        elif action.kind == "select":
            self.selection = action.selection or CornerSelection()
        elif action.kind == "clear":
            self.blocks.clear()
            self._stack_heights.clear()
        elif action.kind == "reset":
            self.selection = CornerSelection()
        else:
            raise ValueError(f"Unknown sandbox action: {action.kind}")
