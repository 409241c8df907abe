"""Shortest-path distance, counting and enumeration over block-edge graphs.

All queries are unweighted breadth-first searches from endpoint A:
- `shortest_path_count` labels BFS layers and accumulates path counts
- `all_shortest_paths` labels layers, then walks the shortest-path DAG

An endpoint that is not a corner of the graph is a normal outcome, reported
as an infinite distance with zero paths, never as an exception.

Usage example:
    >>> from blockpaths.edge_graph import build_block_edge_graph
    >>> from blockpaths.path_counting import shortest_path_count
    >>> graph = build_block_edge_graph([(0.0, 0.5, 0.0)])
    >>> shortest_path_count(graph, (-0.5, 0.0, -0.5), (0.5, 1.0, 0.5))
    PathCountResult(distance=3, count=6)
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from blockpaths.edge_graph import BlockEdgeGraph, Point3D, VertexKey, build_block_edge_graph

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PathCountResult:
    """Shortest distance in edge hops and number of distinct shortest paths.

    `distance` is `math.inf` and `count` is 0 when B cannot be reached.
    """

    distance: int | float
    count: int

    @property
    def reachable(self) -> bool:
        return self.count > 0


UNREACHABLE = PathCountResult(distance=math.inf, count=0)


def _bfs_layers(
    graph: BlockEdgeGraph,
    source: VertexKey,
    count_paths: bool = False,
) -> tuple[dict[VertexKey, int], dict[VertexKey, int]]:
    """Label every vertex reachable from `source` with its BFS layer.

    When `count_paths` is set, also accumulate the number of shortest paths
    from `source`: count(v) is the sum of count(u) over neighbors u in the
    layer directly before v. Edges into the same or an earlier layer are
    ignored.
    """
    dist: dict[VertexKey, int] = {source: 0}
    count: dict[VertexKey, int] = {source: 1} if count_paths else {}
    q: deque[VertexKey] = deque([source])

    while q:
        u = q.popleft()
        d = dist[u]
        for v in graph.neighbors(u):
            dv = dist.get(v)
            if dv is None:
                dist[v] = d + 1
                if count_paths:
                    count[v] = count[u]
                q.append(v)
            elif count_paths and dv == d + 1:
                count[v] += count[u]

    return dist, count


def _resolve_endpoints(
    graph: BlockEdgeGraph,
    point_a: Sequence[float] | None,
    point_b: Sequence[float] | None,
) -> tuple[VertexKey, VertexKey] | None:
    if point_a is None or point_b is None:
        return None
    start = graph.resolve(point_a)
    goal = graph.resolve(point_b)
    if start is None or goal is None:
        return None
    return start, goal


def shortest_path_count(
    graph: BlockEdgeGraph,
    point_a: Sequence[float] | None,
    point_b: Sequence[float] | None,
) -> PathCountResult:
    """Compute shortest edge distance and shortest-path count from A to B.

    Args:
        graph: Graph built by `build_block_edge_graph`.
        point_a: Start corner `(x, y, z)`.
        point_b: End corner `(x, y, z)`.

    Returns:
        PathCountResult. Unresolved or unreachable endpoints give
        `distance=math.inf, count=0`.
    """
    endpoints = _resolve_endpoints(graph, point_a, point_b)
    if endpoints is None:
        logger.debug("Path count skipped: endpoint not in graph")
        return UNREACHABLE

    start, goal = endpoints
    dist, count = _bfs_layers(graph, start, count_paths=True)
    if goal not in dist:
        return UNREACHABLE

    result = PathCountResult(distance=dist[goal], count=count[goal])
    logger.debug("Path count: distance=%d count=%d", result.distance, result.count)
    return result


def _next_layer(
    graph: BlockEdgeGraph,
    dist: dict[VertexKey, int],
    dist_to_goal: dict[VertexKey, int],
    target: int,
    key: VertexKey,
) -> list[VertexKey]:
    """Neighbors of `key` one layer further out that still lie on a shortest path, in key order."""
    nxt = dist[key] + 1
    return sorted(
        n
        for n in graph.neighbors(key)
        if dist.get(n) == nxt and dist_to_goal.get(n) == target - nxt
    )


def iter_shortest_paths(
    graph: BlockEdgeGraph,
    point_a: Sequence[float] | None,
    point_b: Sequence[float] | None,
) -> Iterator[list[Point3D]]:
    """Lazily yield every shortest path from A to B as a list of 3D points.

    Walks the shortest-path DAG depth-first with an explicit stack, so long
    structures do not hit the interpreter recursion limit. A second BFS from
    B restricts the walk to vertices on some shortest A-B path. Paths come
    out in a deterministic order (neighbors visited by ascending vertex key).
    """
    endpoints = _resolve_endpoints(graph, point_a, point_b)
    if endpoints is None:
        return

    start, goal = endpoints
    dist, _ = _bfs_layers(graph, start)
    target = dist.get(goal)
    if target is None:
        return

    if start == goal:
        yield [graph.point_of(start)]
        return

    dist_to_goal, _ = _bfs_layers(graph, goal)

    path: list[VertexKey] = [start]
    stack: list[Iterator[VertexKey]] = [iter(_next_layer(graph, dist, dist_to_goal, target, start))]

    while stack:
        child = next(stack[-1], None)
        if child is None:
            stack.pop()
            path.pop()
            continue

        if child == goal:
            yield [graph.point_of(k) for k in path] + [graph.point_of(goal)]
            continue

        path.append(child)
        stack.append(iter(_next_layer(graph, dist, dist_to_goal, target, child)))


def all_shortest_paths(
    graph: BlockEdgeGraph,
    point_a: Sequence[float] | None,
    point_b: Sequence[float] | None,
) -> list[list[Point3D]]:
    """Enumerate all shortest paths from A to B.

    The number of paths equals `shortest_path_count(...).count` and each path
    holds `distance + 1` points. Cost grows with the number of paths; callers
    should check the count first on large structures.

    Returns:
        List of paths; empty when either endpoint is unresolved or B is
        unreachable.
    """
    paths = list(iter_shortest_paths(graph, point_a, point_b))
    logger.debug("Enumerated %d shortest paths", len(paths))
    return paths


def solve_block_paths(
    blocks: Iterable[Sequence[float]],
    point_a: Sequence[float] | None,
    point_b: Sequence[float] | None,
    block_size: float = 1.0,
) -> PathCountResult:
    """Build a fresh graph from `blocks` and count shortest paths from A to B."""
    graph = build_block_edge_graph(blocks, block_size=block_size)
    return shortest_path_count(graph, point_a, point_b)
