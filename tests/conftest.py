"""Pytest global fixtures and test isolation hooks."""

from __future__ import annotations

import pytest

from blockpaths.api import STATE
from blockpaths.sandbox import BlockSandbox


@pytest.fixture(autouse=True)
def reset_sandbox_state() -> None:
    """Reset the in-memory sandbox before each test."""
    STATE.sandbox = BlockSandbox()


@pytest.fixture()
def single_cube() -> list[tuple[float, float, float]]:
    """One unit cube resting on the ground at the origin column."""
    return [(0.0, 0.5, 0.0)]


@pytest.fixture()
def flat_square() -> list[tuple[float, float, float]]:
    """Four ground-level cubes forming a 2x2 square."""
    return [(0.0, 0.5, 0.0), (1.0, 0.5, 0.0), (0.0, 0.5, 1.0), (1.0, 0.5, 1.0)]
