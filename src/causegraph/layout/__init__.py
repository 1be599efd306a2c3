"""Layout dispatcher.

``layout`` resolves the configuration, checks the graph and hands it to
the strategy registered for ``config.algorithm``. Strategies share one
signature and one output shape; the dispatcher places nothing itself.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from causegraph.config import Algorithm, LayoutConfig, resolve_config
from causegraph.errors import GraphDataError
from causegraph.layout.base import Strategy
from causegraph.layout.clustered import layout_clustered
from causegraph.layout.layered import layout_layered
from causegraph.layout.ranked import layout_ranked
from causegraph.solvers import DEFAULT_SOLVERS, Solvers
from causegraph.types import Edge, LayoutResult, Node

logger = logging.getLogger(__name__)

STRATEGIES: dict[Algorithm, Strategy] = {
    Algorithm.LAYERED: layout_layered,
    Algorithm.RANKED: layout_ranked,
    Algorithm.CLUSTERED: layout_clustered,
}


def check_graph(nodes: list[Node], edges: list[Edge]) -> list[Edge]:
    """Reject duplicate node ids; return the edges whose endpoints both exist.

    Each dropped edge is logged as a warning.
    """
    seen: set[str] = set()
    for node in nodes:
        if node.id in seen:
            raise GraphDataError(f"Duplicate node id: {node.id!r}")
        seen.add(node.id)

    kept: list[Edge] = []
    for edge in edges:
        missing = [end for end in (edge.source, edge.target) if end not in seen]
        if missing:
            logger.warning("skipping edge %s: unknown node %s", edge.key, ", ".join(repr(m) for m in missing))
            continue
        kept.append(edge)
    return kept


async def layout_async(
    nodes: list[Node],
    edges: list[Edge],
    config: Mapping[str, Any] | LayoutConfig | None = None,
    *,
    solvers: Solvers | None = None,
) -> LayoutResult:
    """Lay out ``nodes`` and ``edges`` with the configured strategy.

    Raises:
        LayoutConfigError: the configuration is invalid (raised before any
            layout work).
        GraphDataError: two nodes share an id.
        SolverError: the layered or ranked solver failed.
    """
    resolved = resolve_config(config)
    nodes = list(nodes)
    edges = check_graph(nodes, list(edges))
    if not nodes:
        return LayoutResult()

    logger.debug("layout %s: %d nodes, %d edges", resolved.algorithm.value, len(nodes), len(edges))
    strategy = STRATEGIES[resolved.algorithm]
    return await strategy(nodes, edges, resolved, solvers or DEFAULT_SOLVERS)


def layout(
    nodes: list[Node],
    edges: list[Edge],
    config: Mapping[str, Any] | LayoutConfig | None = None,
    *,
    solvers: Solvers | None = None,
) -> LayoutResult:
    """Synchronous wrapper around ``layout_async``; not for use inside a running event loop."""
    return asyncio.run(layout_async(nodes, edges, config, solvers=solvers))


__all__ = ["STRATEGIES", "check_graph", "layout", "layout_async"]
