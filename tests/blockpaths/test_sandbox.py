"""Unit tests for blockpaths.sandbox."""

from __future__ import annotations

import math

import pytest

from blockpaths.edge_graph import build_block_edge_graph
from blockpaths.path_counting import UNREACHABLE, PathCountResult
from blockpaths.sandbox import BlockSandbox, CornerSelection, SandboxError


def _sandbox_with_cube() -> BlockSandbox:
    sandbox = BlockSandbox()
    sandbox.place_block(0.0, 0.0)
    return sandbox


def test_place_block_snaps_and_stacks() -> None:
    """Blocks snap to the nearest column and stack upward."""
    sandbox = BlockSandbox()

    first = sandbox.place_block(0.2, -0.3)
    second = sandbox.place_block(-0.1, 0.4)
    other = sandbox.place_block(1.6, 0.0)

    assert first == (0.0, 0.5, 0.0)
    assert second == (0.0, 1.5, 0.0)
    assert other == (2.0, 0.5, 0.0)
    assert sandbox.column_height(0.0, 0.0) == 2
    assert sandbox.column_heights() == {(0.0, 0.0): 2, (2.0, 0.0): 1}
    assert sandbox.snapshot() == (first, second, other)


def test_place_block_respects_block_size() -> None:
    """Snapping and stacking scale with the block size."""
    sandbox = BlockSandbox(block_size=2.0)

    assert sandbox.place_block(1.2, 0.0) == (2.0, 1.0, 0.0)
    assert sandbox.place_block(2.4, 0.0) == (2.0, 3.0, 0.0)


def test_invalid_block_size_raises() -> None:
    """A sandbox needs a positive block size."""
    with pytest.raises(ValueError, match="block_size"):
        BlockSandbox(block_size=0)


def test_select_corner_cycles_a_then_b_then_restart() -> None:
    """Picks set A, then B, and a third pick starts over."""
    sandbox = _sandbox_with_cube()

    first = sandbox.select_corner((-0.5, 0.0, -0.5))
    second = sandbox.select_corner((0.5, 1.0, 0.5))
    third = sandbox.select_corner((0.5, 0.0, 0.5))

    assert first == CornerSelection(point_a=(-0.5, 0.0, -0.5))
    assert second.complete
    assert second.point_b == (0.5, 1.0, 0.5)
    assert third == CornerSelection(point_a=(0.5, 0.0, 0.5))


def test_select_non_corner_raises() -> None:
    """Only block corners can be selected."""
    sandbox = _sandbox_with_cube()

    with pytest.raises(SandboxError, match="not a corner"):
        sandbox.select_corner((0.0, 0.5, 0.0))


def test_path_queries_use_current_selection() -> None:
    """Count and enumeration run between the selected corners."""
    sandbox = _sandbox_with_cube()
    sandbox.select_corner((-0.5, 0.0, -0.5))
    sandbox.select_corner((0.5, 1.0, 0.5))

    result = sandbox.path_count()

    assert (result.distance, result.count) == (3, 6)
    assert len(sandbox.shortest_paths()) == 6


def test_path_queries_require_complete_selection() -> None:
    """Path queries need both corners selected."""
    sandbox = _sandbox_with_cube()
    sandbox.select_corner((-0.5, 0.0, -0.5))

    with pytest.raises(SandboxError, match="Select both"):
        sandbox.path_count()


def test_stale_selection_after_clear_is_unreachable() -> None:
    """Clearing blocks keeps the selection, which becomes unreachable."""
    sandbox = _sandbox_with_cube()
    sandbox.select_corner((-0.5, 0.0, -0.5))
    sandbox.select_corner((0.5, 1.0, 0.5))

    sandbox.clear_blocks()

    assert sandbox.selection.complete
    assert sandbox.path_count() == UNREACHABLE
    assert math.isinf(sandbox.path_count().distance)
    assert sandbox.shortest_paths() == []


def test_undo_redo_replays_history() -> None:
    """Undo and redo step through placed blocks."""
    sandbox = BlockSandbox()
    sandbox.place_block(0.0, 0.0)
    sandbox.place_block(0.0, 0.0)

    assert sandbox.undo() is True
    assert sandbox.snapshot() == ((0.0, 0.5, 0.0),)
    assert sandbox.column_height(0.0, 0.0) == 1

    assert sandbox.redo() is True
    assert sandbox.column_height(0.0, 0.0) == 2
    assert sandbox.redo() is False


def test_new_action_after_undo_truncates_redo() -> None:
    """A new action after undo discards the redo tail."""
    sandbox = BlockSandbox()
    sandbox.place_block(0.0, 0.0)
    sandbox.place_block(1.0, 0.0)
    sandbox.undo()

    sandbox.place_block(0.0, 1.0)

    assert not sandbox.can_redo
    assert sandbox.history_length == 2
    assert sandbox.snapshot() == ((0.0, 0.5, 0.0), (0.0, 0.5, 1.0))


def test_undo_past_start_empties_sandbox() -> None:
    """Undoing every action returns to an empty sandbox."""
    sandbox = _sandbox_with_cube()
    sandbox.select_corner((-0.5, 0.0, -0.5))

    assert sandbox.undo() is True
    assert sandbox.selection == CornerSelection()
    assert sandbox.undo() is True
    assert sandbox.snapshot() == ()
    assert sandbox.undo() is False


def test_undo_restores_previous_selection_and_cleared_blocks() -> None:
    """Undo brings back cleared blocks and earlier selections."""
    sandbox = _sandbox_with_cube()
    sandbox.select_corner((-0.5, 0.0, -0.5))
    sandbox.select_corner((0.5, 0.0, -0.5))
    sandbox.clear_blocks()

    sandbox.undo()
    assert len(sandbox.blocks) == 1

    sandbox.undo()
    assert sandbox.selection == CornerSelection(point_a=(-0.5, 0.0, -0.5))


def test_reset_selection_is_undoable() -> None:
    """Resetting the selection is recorded in history."""
    sandbox = _sandbox_with_cube()
    sandbox.select_corner((-0.5, 0.0, -0.5))

    sandbox.reset_selection()
    assert sandbox.selection == CornerSelection()

    sandbox.undo()
    assert sandbox.selection.point_a == (-0.5, 0.0, -0.5)


def test_reset_drops_history() -> None:
    """A full reset cannot be undone."""
    sandbox = _sandbox_with_cube()
    sandbox.select_corner((-0.5, 0.0, -0.5))

    sandbox.reset()

    assert sandbox.snapshot() == ()
    assert sandbox.selection == CornerSelection()
    assert not sandbox.can_undo
    assert not sandbox.can_redo


def test_nearest_corner_snaps_within_radius() -> None:
    """Clicks near a corner snap onto it; distant clicks do not."""
    sandbox = _sandbox_with_cube()

    assert sandbox.nearest_corner((0.45, 0.05, 0.4)) == (0.5, 0.0, 0.5)
    assert sandbox.nearest_corner((0.0, 0.5, 0.0)) is None
    assert BlockSandbox().nearest_corner((0.0, 0.0, 0.0)) is None


@pytest.mark.parametrize("block_size", [0.01, 0.03, 0.05, 0.07, 0.15, 2.5])
def test_adjacent_blocks_connect_at_non_unit_sizes(block_size: float) -> None:
    """Neighbouring placed blocks share corners at any block size."""
    half = block_size / 2
    for k in range(40):
        sandbox = BlockSandbox(block_size=block_size)
        sandbox.place_block(k * block_size, 0.0)
        sandbox.place_block((k + 1) * block_size, 0.0)

        graph = build_block_edge_graph(sandbox.snapshot(), block_size=block_size)
        assert graph.vertex_count == 12, k

        sandbox.select_corner((k * block_size - half, 0.0, -half))
        sandbox.select_corner(((k + 1) * block_size + half, 0.0, -half))
        assert sandbox.path_count() == PathCountResult(distance=2, count=1), k


def test_column_heights_at_non_unit_size() -> None:
    """Column positions are reported as multiples of the block size."""
    sandbox = BlockSandbox(block_size=0.15)
    sandbox.place_block(0.30, 0.0)
    sandbox.place_block(0.31, 0.0)
    sandbox.place_block(0.45, 0.0)

    heights = sandbox.column_heights()

    assert sorted(heights.values()) == [1, 2]
    assert [x for x, _ in heights] == pytest.approx([0.30, 0.45])
    assert sandbox.column_height(0.30, 0.0) == 2


def test_place_block_out_of_range_raises() -> None:
    """Positions too large to index are rejected and leave history untouched."""
    sandbox = BlockSandbox()

    with pytest.raises(SandboxError, match="supported range"):
        sandbox.place_block(1e300, 0.0)

    assert sandbox.history_length == 0
    assert sandbox.snapshot() == ()
