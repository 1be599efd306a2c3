"""Shared pieces of the layout strategies."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from causegraph.config import LayoutConfig
from causegraph.errors import SolverError
from causegraph.solvers import LayeredRequest, LayeredSolver, Point, RankRequest, RankSolver, Solvers
from causegraph.types import Edge, LayoutResult, Node

logger = logging.getLogger(__name__)

Strategy = Callable[[list[Node], list[Edge], LayoutConfig, Solvers], Awaitable[LayoutResult]]


async def call_solver(
    solver: LayeredSolver | RankSolver,
    request: LayeredRequest | RankRequest,
    name: str,
) -> dict[str, Point]:
    """Await one solver call, surfacing any failure as ``SolverError``.

    A solver that answers without a position for some requested node has
    failed too.
    """
    logger.debug("calling %s solver with %d nodes", name, len(request.node_ids))
    try:
        points = await solver.solve(request)  # type: ignore[arg-type]
    except Exception as exc:
        raise SolverError(f"{name} solver failed: {exc}") from exc

    missing = [node_id for node_id in request.node_ids if node_id not in points]
    if missing:
        raise SolverError(f"{name} solver returned no position for {', '.join(missing)}")
    return points


def adjacency(edges: list[Edge]) -> dict[str, set[str]]:
    """Direction-agnostic neighbour sets."""
    neighbours: dict[str, set[str]] = {}
    for edge in edges:
        if edge.source == edge.target:
            continue
        neighbours.setdefault(edge.source, set()).add(edge.target)
        neighbours.setdefault(edge.target, set()).add(edge.source)
    return neighbours
