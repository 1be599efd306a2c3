"""Rank-assignment solver: Sugiyama-style pipeline over networkx.

Phases:
  1. Cycle removal      (band-aware reversal, then greedy-FAS)
  2. Rank assignment    (longest path with minlen and band floors, tight-tree pull)
  3. Crossing reduction (barycenter sweeps over a dummy-augmented graph)
  4. Coordinates        (stacked ranks, left-packed rows, centers returned)

The solver never sees tiers or subgroups directly: the rank adapter turns
them into ``floors`` bands and zero-weight ordering edges.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import networkx as nx

from causegraph.solvers.base import Point, RankRequest, SolverEdge

logger = logging.getLogger(__name__)

RANKERS = ("longest-path", "tight-tree")
ACYCLICERS = ("greedy",)
ALIGNMENTS = ("UL", "center")

# ─── Cycle Removal (Greedy-FAS) ───────────────────────────────────────────────


def greedy_fas_ordering(graph: nx.DiGraph) -> list[str]:
    """Order nodes so that few edges point backwards (Eades-Lin-Smyth).

    Sinks are peeled off to the tail and sources to the head until only
    cycles remain; then the node with the largest out-minus-in degree goes
    to the head and peeling resumes. Ties follow graph insertion order.
    """
    # dict keeps insertion order; a set would make ties hash-dependent.
    active: dict[str, None] = dict.fromkeys(graph.nodes)

    out_deg: dict[str, int] = {}
    in_deg: dict[str, int] = {}
    for node in graph.nodes:
        out_deg[node] = sum(1 for succ in graph.successors(node) if succ != node)
        in_deg[node] = sum(1 for pred in graph.predecessors(node) if pred != node)

    s1: list[str] = []
    s2: list[str] = []

    def drop(node: str) -> None:
        del active[node]
        for succ in graph.successors(node):
            if succ in active and succ != node:
                in_deg[succ] -= 1
        for pred in graph.predecessors(node):
            if pred in active and pred != node:
                out_deg[pred] -= 1

    while active:
        changed = True
        while changed:
            sinks = [n for n in active if out_deg[n] == 0]
            changed = bool(sinks)
            for sink in sinks:
                drop(sink)
                s2.append(sink)

        changed = True
        while changed:
            sources = [n for n in active if in_deg[n] == 0]
            changed = bool(sources)
            for source in sources:
                drop(source)
                s1.append(source)

        if active:
            best = max(active, key=lambda n: out_deg[n] - in_deg[n])
            drop(best)
            s1.append(best)

    s2.reverse()
    s1.extend(s2)
    return s1


def _add_constraint(graph: nx.DiGraph, src: str, tgt: str, weight: float, minlen: int) -> None:
    """Add src → tgt, merging with an existing edge (weights add, minlen is the max)."""
    if graph.has_edge(src, tgt):
        attrs = graph.edges[src, tgt]
        attrs["weight"] += weight
        attrs["minlen"] = max(attrs["minlen"], minlen)
    else:
        graph.add_edge(src, tgt, weight=weight, minlen=minlen)


def remove_cycles(
    graph: nx.DiGraph, floors: dict[str, int] | None = None
) -> tuple[nx.DiGraph, set[tuple[str, str]]]:
    """Return an acyclic copy of ``graph`` plus the (src, tgt) pairs that were reversed.

    Edges pointing from a higher band to a lower one are reversed first;
    after that only edges inside a band can close a cycle, and those are
    resolved with the greedy-FAS ordering. Self-loops are dropped (and
    reported as reversed).
    """
    floors = floors or {}
    dag: nx.DiGraph = nx.DiGraph()
    dag.add_nodes_from(graph.nodes)
    reversed_edges: set[tuple[str, str]] = set()

    same_band: nx.DiGraph = nx.DiGraph()
    same_band.add_nodes_from(graph.nodes)
    for src, tgt in graph.edges():
        if src != tgt and floors.get(src, 0) == floors.get(tgt, 0):
            same_band.add_edge(src, tgt)
    position = {node: pos for pos, node in enumerate(greedy_fas_ordering(same_band))}

    for src, tgt, attrs in graph.edges(data=True):
        weight = attrs.get("weight", 1.0)
        minlen = attrs.get("minlen", 1)
        if src == tgt:
            reversed_edges.add((src, tgt))
            continue
        src_band, tgt_band = floors.get(src, 0), floors.get(tgt, 0)
        backwards = src_band > tgt_band or (src_band == tgt_band and position[src] > position[tgt])
        if backwards:
            reversed_edges.add((src, tgt))
            _add_constraint(dag, tgt, src, weight, minlen)
        else:
            _add_constraint(dag, src, tgt, weight, minlen)

    return dag, reversed_edges


# ─── Rank Assignment ──────────────────────────────────────────────────────────


def assign_ranks(dag: nx.DiGraph, floors: dict[str, int] | None = None) -> dict[str, int]:
    """Longest-path ranking by fixed-point iteration.

    For each edge u→v: rank[v] >= rank[u] + minlen. For bands: every node
    of a band ranks strictly below the deepest node of all lower bands.
    Repeat until stable.
    """
    floors = floors or {}
    ranks: dict[str, int] = {node: 0 for node in dag.nodes}
    bands: dict[int, list[str]] = {}
    for node in dag.nodes:
        bands.setdefault(floors.get(node, 0), []).append(node)
    band_order = sorted(bands)

    changed = True
    while changed:
        changed = False
        for src, tgt, attrs in dag.edges(data=True):
            need = ranks[src] + attrs.get("minlen", 1)
            if ranks[tgt] < need:
                ranks[tgt] = need
                changed = True

        ceiling = -1
        for band in band_order:
            for node in bands[band]:
                if ranks[node] <= ceiling:
                    ranks[node] = ceiling + 1
                    changed = True
            ceiling = max(ceiling, max(ranks[node] for node in bands[band]))

    return ranks


def tighten_ranks(dag: nx.DiGraph, ranks: dict[str, int], floors: dict[str, int]) -> dict[str, int]:
    """Pull source nodes down next to their successors (tight-tree bias).

    Longest-path ranking leaves every source at rank 0, which stretches
    edges from late-joining branches across many ranks. A source moves down
    to ``min(rank[succ] - minlen)`` as long as it stays above every node of
    a higher band.
    """
    tightened = dict(ranks)
    band_min: dict[int, int] = {}
    for node, rank in tightened.items():
        band = floors.get(node, 0)
        band_min[band] = min(band_min.get(band, rank), rank)

    for node in reversed(list(nx.topological_sort(dag))):
        if dag.in_degree(node) > 0 or dag.out_degree(node) == 0:
            continue
        target = min(tightened[succ] - dag.edges[node, succ].get("minlen", 1) for succ in dag.successors(node))
        band = floors.get(node, 0)
        limits = [rank - 1 for other, rank in band_min.items() if other > band]
        if limits:
            target = min(target, min(limits))
        if target > tightened[node]:
            tightened[node] = target

    return tightened


# ─── Dummy Node Insertion ─────────────────────────────────────────────────────

DUMMY_PREFIX = "__dummy_"


@dataclass
class AugmentedGraph:
    """Visible edges split so that every edge spans exactly one rank.

    Zero-weight ordering edges only constrain ranks; they are left out here
    so they never influence crossing reduction.
    """

    graph: nx.DiGraph
    ranks: dict[str, int]
    rank_count: int


def insert_dummy_nodes(dag: nx.DiGraph, ranks: dict[str, int]) -> AugmentedGraph:
    """Replace each visible edge u→v spanning k > 1 ranks by u → d₁ → … → dₖ₋₁ → v."""
    g: nx.DiGraph = nx.DiGraph()
    g.add_nodes_from(dag.nodes)
    aug_ranks = dict(ranks)

    for counter, (src, tgt, attrs) in enumerate(dag.edges(data=True)):
        if attrs.get("weight", 1.0) <= 0:
            continue
        span = aug_ranks[tgt] - aug_ranks[src]
        if span <= 1:
            g.add_edge(src, tgt)
            continue
        chain_prev = src
        for i in range(span - 1):
            dummy_id = f"{DUMMY_PREFIX}{counter}_{i}"
            g.add_node(dummy_id)
            aug_ranks[dummy_id] = aug_ranks[src] + i + 1
            g.add_edge(chain_prev, dummy_id)
            chain_prev = dummy_id
        g.add_edge(chain_prev, tgt)

    rank_count = (max(aug_ranks.values()) + 1) if aug_ranks else 0
    return AugmentedGraph(graph=g, ranks=aug_ranks, rank_count=rank_count)


# ─── Crossing Minimization (Barycenter) ───────────────────────────────────────

MAX_SWEEPS = 24


def minimise_crossings(aug: AugmentedGraph) -> list[list[str]]:
    """Order each rank with alternating barycenter sweeps.

    The initial order is graph insertion order. Sweeps stop when a full
    top-down + bottom-up pass no longer lowers the crossing count; the best
    ordering seen is returned.
    """
    ordering: list[list[str]] = [[] for _ in range(aug.rank_count)]
    for node_id in aug.graph.nodes:
        ordering[aug.ranks[node_id]].append(node_id)

    best = count_crossings(ordering, aug.graph)
    best_ordering = [list(layer) for layer in ordering]

    for _ in range(MAX_SWEEPS):
        for idx in range(1, aug.rank_count):
            prev = {nid: float(i) for i, nid in enumerate(ordering[idx - 1])}
            current = {nid: float(i) for i, nid in enumerate(ordering[idx])}
            ordering[idx].sort(key=lambda a, p=prev, c=current: _barycenter(a, aug.graph, p, c, "incoming"))

        for idx in range(aug.rank_count - 2, -1, -1):
            nxt = {nid: float(i) for i, nid in enumerate(ordering[idx + 1])}
            current = {nid: float(i) for i, nid in enumerate(ordering[idx])}
            ordering[idx].sort(key=lambda a, n=nxt, c=current: _barycenter(a, aug.graph, n, c, "outgoing"))

        crossings = count_crossings(ordering, aug.graph)
        if crossings >= best:
            break
        best = crossings
        best_ordering = [list(layer) for layer in ordering]

    return best_ordering


def _barycenter(
    node_id: str,
    graph: nx.DiGraph,
    neighbor_pos: dict[str, float],
    current_pos: dict[str, float],
    direction: str,
) -> float:
    """Mean position of the node's neighbours in the adjacent rank.

    A node without neighbours there keeps its current position.
    """
    neighbors = graph.predecessors(node_id) if direction == "incoming" else graph.successors(node_id)
    positions = [neighbor_pos[nb] for nb in neighbors if nb in neighbor_pos]
    if not positions:
        return current_pos[node_id]
    return sum(positions) / len(positions)


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive ranks (inversion count)."""
    total = 0
    for idx in range(len(ordering) - 1):
        tgt_pos: dict[str, int] = {nid: i for i, nid in enumerate(ordering[idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[idx]):
            for nb in graph.successors(src_id):
                if nb in tgt_pos:
                    edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] - ej[0]) * (ei[1] - ej[1]) < 0:
                    total += 1
    return total


# ─── Coordinate Assignment ────────────────────────────────────────────────────


def assign_coordinates(
    ordering: list[list[str]],
    sizes: dict[str, tuple[float, float]],
    *,
    node_sep: float,
    rank_sep: float,
    margin: float = 0,
    align: str = "UL",
) -> dict[str, Point]:
    """Return the center of every node (dummies included).

    Ranks are stacked top-down, each as tall as its tallest node, and
    every node is centered vertically inside its rank. With ``align="UL"``
    rows are packed from the left margin; with ``"center"`` each row is
    centered on the widest one.
    """

    def dims(node_id: str) -> tuple[float, float]:
        return sizes.get(node_id, (0.0, 0.0))

    rank_heights = [max((dims(nid)[1] for nid in layer), default=0.0) for layer in ordering]
    rank_widths = [
        sum(dims(nid)[0] for nid in layer) + node_sep * max(0, len(layer) - 1) for layer in ordering
    ]
    widest = max(rank_widths, default=0.0)

    centers: dict[str, Point] = {}
    top = margin
    for idx, layer in enumerate(ordering):
        x = margin if align == "UL" else margin + (widest - rank_widths[idx]) / 2
        center_y = top + rank_heights[idx] / 2
        for node_id in layer:
            width, _ = dims(node_id)
            centers[node_id] = Point(x + width / 2, center_y)
            x += width + node_sep
        top += rank_heights[idx] + rank_sep

    return centers


# ─── Solver ───────────────────────────────────────────────────────────────────


class SugiyamaRankSolver:
    """Rank-based hierarchical solver; see the module docstring for phases."""

    async def solve(self, request: RankRequest) -> dict[str, Point]:
        return await asyncio.to_thread(self.solve_sync, request)

    def solve_sync(self, request: RankRequest) -> dict[str, Point]:
        if request.ranker not in RANKERS:
            raise ValueError(f"Unknown ranker: {request.ranker!r}")
        if request.acyclicer not in ACYCLICERS:
            raise ValueError(f"Unknown acyclicer: {request.acyclicer!r}")
        if request.align not in ALIGNMENTS:
            raise ValueError(f"Unknown alignment: {request.align!r}")
        if not request.node_ids:
            return {}

        graph = _build_graph(request.node_ids, request.edges)
        dag, reversed_edges = remove_cycles(graph, request.floors)
        ranks = assign_ranks(dag, request.floors)
        if request.ranker == "tight-tree":
            ranks = tighten_ranks(dag, ranks, request.floors)
        aug = insert_dummy_nodes(dag, ranks)
        ordering = minimise_crossings(aug)
        logger.debug(
            "rank solver: %d nodes, %d ranks, %d reversed edges, %d crossings",
            len(request.node_ids),
            aug.rank_count,
            len(reversed_edges),
            count_crossings(ordering, aug.graph),
        )

        centers = assign_coordinates(
            ordering,
            request.sizes,
            node_sep=request.node_sep,
            rank_sep=request.rank_sep,
            margin=request.margin,
            align=request.align,
        )
        return {node_id: centers[node_id] for node_id in request.node_ids}


def _build_graph(node_ids: list[str], edges: list[SolverEdge]) -> nx.DiGraph:
    graph: nx.DiGraph = nx.DiGraph()
    graph.add_nodes_from(node_ids)
    for edge in edges:
        if edge.source not in graph or edge.target not in graph:
            continue
        _add_constraint(graph, edge.source, edge.target, edge.weight, edge.minlen)
    return graph
