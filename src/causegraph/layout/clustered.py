"""Clustered layout: category × tier-bucket clusters with crossing reduction.

Phases:
  1. Partition       nodes into (subgroup, bucket) clusters
  2. Weights         strength-weighted edge totals between clusters
  3. Grid            members of each cluster on a small uniform grid
  4. Ordering        weighted-median sweeps + transpose per bucket layer
  5. Placement       row wrapping and neighbour-centroid X per cluster

Only the crossing-reduction helpers are exposed individually; everything
else is driven by ``clustered_layout``.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import IntEnum

import networkx as nx

from causegraph.config import NEUTRAL_BORDER, NEUTRAL_FILL, LayoutConfig
from causegraph.geometry import Size, estimate
from causegraph.solvers import Solvers
from causegraph.styling import style_edges
from causegraph.types import Edge, LayoutResult, Node, NodeKind, PositionedNode, Tier

logger = logging.getLogger(__name__)

GRID_GAP_X = 25
GRID_GAP_Y = 20
CLUSTER_PADDING = 25
CLUSTER_HEADER = 35
CLUSTER_GAP_X = 40  # between clusters in a row
CLUSTER_GAP_Y = 70  # between bucket layers
ROW_GAP = 45  # between wrapped rows of one layer
PLACEMENT_PASSES = 3

Weight = Callable[[str, str], float]


class Bucket(IntEnum):
    """Vertical layer of a cluster. Causes and effects split by connectivity."""

    LEAF = 0
    ROOT_CAUSE = 1
    DERIVED_CAUSE = 2
    INTERMEDIATE = 3
    OUTCOME = 4
    TERMINAL = 5

    @property
    def slug(self) -> str:
        return _BUCKET_SLUGS[self]

    @property
    def label(self) -> str:
        return _BUCKET_LABELS[self]


_BUCKET_SLUGS = {
    Bucket.LEAF: "leaf",
    Bucket.ROOT_CAUSE: "root-causes",
    Bucket.DERIVED_CAUSE: "derived-causes",
    Bucket.INTERMEDIATE: "scenarios",
    Bucket.OUTCOME: "outcomes",
    Bucket.TERMINAL: "terminal",
}

_BUCKET_LABELS = {
    Bucket.LEAF: "Leaf Nodes",
    Bucket.ROOT_CAUSE: "Root Causes",
    Bucket.DERIVED_CAUSE: "Derived Causes",
    Bucket.INTERMEDIATE: "Scenarios",
    Bucket.OUTCOME: "Outcomes",
    Bucket.TERMINAL: "Terminal Outcomes",
}


@dataclass
class Cluster:
    """Nodes sharing a subgroup and a bucket, laid out as one box."""

    subgroup: str
    bucket: Bucket
    members: list[Node] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    offsets: dict[str, tuple[float, float]] = field(default_factory=dict)
    x: float = 0.0
    y: float = 0.0

    @property
    def key(self) -> str:
        return f"{self.subgroup}:{self.bucket.slug}"

    @property
    def id(self) -> str:
        return f"cluster-{self.key}"


# ─── Partition ────────────────────────────────────────────────────────────────


def bucket_of(node: Node, graph: nx.DiGraph) -> Bucket:
    if node.tier is Tier.LEAF:
        return Bucket.LEAF
    if node.tier is Tier.INTERMEDIATE:
        return Bucket.INTERMEDIATE
    if node.tier is Tier.CAUSE:
        incoming = any(pred != node.id for pred in graph.predecessors(node.id))
        return Bucket.DERIVED_CAUSE if incoming else Bucket.ROOT_CAUSE
    outgoing = any(succ != node.id for succ in graph.successors(node.id))
    return Bucket.OUTCOME if outgoing else Bucket.TERMINAL


def partition(nodes: list[Node], edges: list[Edge]) -> dict[str, Cluster]:
    """Assign every node to its cluster, keyed ``"<subgroup>:<bucket>"``.

    Clusters keep first-appearance order; edges with a missing endpoint do
    not count towards connectivity.
    """
    graph: nx.DiGraph = nx.DiGraph()
    graph.add_nodes_from(node.id for node in nodes)
    graph.add_edges_from((e.source, e.target) for e in edges if e.source in graph and e.target in graph)

    clusters: dict[str, Cluster] = {}
    for node in nodes:
        cluster = Cluster(subgroup=node.group_key, bucket=bucket_of(node, graph))
        clusters.setdefault(cluster.key, cluster).members.append(node)
    return clusters


def cluster_weights(clusters: Mapping[str, Cluster], edges: list[Edge]) -> dict[tuple[str, str], int]:
    """Directed inter-cluster weights: strength weight summed over member edges.

    Edges inside one cluster or with a missing endpoint are ignored.
    """
    owner = {node.id: key for key, cluster in clusters.items() for node in cluster.members}
    weights: dict[tuple[str, str], int] = {}
    for edge in edges:
        src, tgt = owner.get(edge.source), owner.get(edge.target)
        if src is None or tgt is None or src == tgt:
            continue
        weights[src, tgt] = weights.get((src, tgt), 0) + edge.strength.weight
    return weights


def symmetric(weights: Mapping[tuple[str, str], float]) -> Weight:
    """Undirected view of the weight matrix."""

    def weight(a: str, b: str) -> float:
        return weights.get((a, b), 0) + weights.get((b, a), 0)

    return weight


# ─── Grid ─────────────────────────────────────────────────────────────────────


def layout_grid(cluster: Cluster, sizes: Mapping[str, Size], max_columns: int) -> None:
    """Place members on a uniform grid and size the cluster box around it.

    Members are sorted by label (then id); the cell is as large as the
    largest member. Offsets are relative to the cluster's top-left corner.
    """
    members = sorted(cluster.members, key=lambda n: (n.label, n.id))
    cell_w = max(sizes[n.id].width for n in members)
    cell_h = max(sizes[n.id].height for n in members)
    columns = min(max_columns, len(members))
    rows = math.ceil(len(members) / columns)

    cluster.offsets = {}
    for i, node in enumerate(members):
        col, row = i % columns, i // columns
        cluster.offsets[node.id] = (
            CLUSTER_PADDING + col * (cell_w + GRID_GAP_X),
            CLUSTER_PADDING + CLUSTER_HEADER + row * (cell_h + GRID_GAP_Y),
        )
    cluster.width = columns * cell_w + (columns - 1) * GRID_GAP_X + CLUSTER_PADDING * 2
    cluster.height = rows * cell_h + (rows - 1) * GRID_GAP_Y + CLUSTER_PADDING * 2 + CLUSTER_HEADER


# ─── Crossing Reduction ───────────────────────────────────────────────────────

Link = tuple[str, str, float]


def _links(upper: Sequence[str], lower: Sequence[str], weight: Weight) -> list[Link]:
    return [(u, v, w) for u in upper for v in lower if (w := weight(u, v)) > 0]


def _crossings(links: Sequence[Link], upper: Mapping[str, int], lower: Mapping[str, int]) -> float:
    """Sum of w1 * w2 over link pairs whose ends are inverted between the layers."""
    placed = sorted((upper[u], lower[v], w) for u, v, w in links)
    total = 0.0
    for a, (i1, j1, w1) in enumerate(placed):
        for i2, j2, w2 in placed[a + 1 :]:
            if i2 > i1 and j2 < j1:
                total += w1 * w2
    return total


def _positions(layer: Sequence[str]) -> dict[str, int]:
    return {key: i for i, key in enumerate(layer)}


def count_crossings(upper: Sequence[str], lower: Sequence[str], weight: Weight) -> float:
    """Weighted crossings between two adjacent layers.

    Edges (u1, v2) and (u2, v1) cross when u1 is left of u2 and v1 left of
    v2; each crossing costs the product of the two weights.
    """
    return _crossings(_links(upper, lower, weight), _positions(upper), _positions(lower))


def total_crossings(layers: Sequence[Sequence[str]], weight: Weight) -> float:
    return sum(count_crossings(layers[i], layers[i + 1], weight) for i in range(len(layers) - 1))


def _memoised(weight: Weight) -> Weight:
    cache: dict[tuple[str, str], float] = {}

    def cached(a: str, b: str) -> float:
        if (a, b) not in cache:
            cache[a, b] = weight(a, b)
        return cache[a, b]

    return cached


def median_position(
    cluster: str,
    neighbours: Sequence[str],
    weight: Weight,
    position: Mapping[str, int],
) -> float | None:
    """Weighted median of the neighbours' positions, or None without neighbours.

    Each position is counted ``weight`` times; an even count takes the mean
    of the middle two.
    """
    positions: list[int] = []
    for other in neighbours:
        w = int(weight(cluster, other))
        if w > 0:
            positions.extend([position[other]] * w)
    if not positions:
        return None
    positions.sort()
    mid = len(positions) // 2
    if len(positions) % 2 == 0:
        return (positions[mid - 1] + positions[mid]) / 2
    return float(positions[mid])


def initial_order(layer: Sequence[str], weight: Weight, everything: Sequence[str]) -> list[str]:
    """Seed a layer with the most connected clusters in the middle.

    Clusters are ranked by their total weight to ``everything`` (ties by
    key) and then placed alternately right and left of the center.
    """
    totals = {key: sum(weight(key, other) for other in everything if other != key) for key in layer}
    ranked = sorted(layer, key=lambda key: (-totals[key], key))
    order: deque[str] = deque()
    for i, key in enumerate(ranked):
        if i % 2 == 0:
            order.append(key)
        else:
            order.appendleft(key)
    return list(order)


def _sweep(layer: list[str], neighbours: Sequence[str], weight: Weight) -> list[str]:
    position = _positions(neighbours)
    current = _positions(layer)

    def target(key: str) -> float:
        median = median_position(key, neighbours, weight, position)
        return current[key] if median is None else median

    return sorted(layer, key=target)


def _layer_links(layers: Sequence[Sequence[str]], weight: Weight) -> list[list[Link]]:
    """Links between each pair of consecutive layers; membership never changes while ordering."""
    return [_links(layers[i], layers[i + 1], weight) for i in range(len(layers) - 1)]


def _total(layers: Sequence[Sequence[str]], links: Sequence[Sequence[Link]]) -> float:
    return sum(
        _crossings(links[i], _positions(layers[i]), _positions(layers[i + 1])) for i in range(len(links))
    )


def _transpose(layers: list[list[str]], index: int, links: Sequence[Sequence[Link]], max_passes: int) -> None:
    layer = layers[index]
    above = _positions(layers[index - 1]) if index > 0 else None
    below = _positions(layers[index + 1]) if index < len(layers) - 1 else None

    def local() -> float:
        own = _positions(layer)
        count = 0.0
        if above is not None:
            count += _crossings(links[index - 1], above, own)
        if below is not None:
            count += _crossings(links[index], own, below)
        return count

    current = local()
    passes = 0
    improved = True
    while improved and passes < max_passes:
        improved = False
        passes += 1
        for j in range(len(layer) - 1):
            layer[j], layer[j + 1] = layer[j + 1], layer[j]
            candidate = local()
            if candidate < current:
                current = candidate
                improved = True
            else:
                layer[j], layer[j + 1] = layer[j + 1], layer[j]


def transpose_layer(
    layers: list[list[str]],
    index: int,
    weight: Weight,
    max_passes: int,
) -> tuple[float, float]:
    """Swap adjacent clusters of one layer while that strictly lowers crossings.

    Works in place. Returns the total crossing count before and after; a
    swap is only kept when it lowers the count, so ``after <= before``.
    """
    links = _layer_links(layers, weight)
    before = _total(layers, links)
    _transpose(layers, index, links, max_passes)
    return before, _total(layers, links)


def order_clusters(
    layers: list[list[str]],
    weight: Weight,
    *,
    iterations: int = 8,
    max_transpose_passes: int = 3,
) -> list[list[str]]:
    """Reduce weighted crossings between consecutive layers.

    Each iteration runs a top-down and a bottom-up weighted-median sweep,
    then a transpose pass over every layer. ``weight`` is asked at most
    once per ordered pair of clusters.
    """
    weight = _memoised(weight)
    everything = [key for layer in layers for key in layer]
    ordered = [initial_order(layer, weight, everything) for layer in layers]
    links = _layer_links(ordered, weight)
    verbose = logger.isEnabledFor(logging.DEBUG)
    if verbose:
        logger.debug("clustered ordering: %d layers, %s initial crossings", len(ordered), _total(ordered, links))

    for iteration in range(iterations):
        for i in range(1, len(ordered)):
            ordered[i] = _sweep(ordered[i], ordered[i - 1], weight)
        for i in range(len(ordered) - 2, -1, -1):
            ordered[i] = _sweep(ordered[i], ordered[i + 1], weight)
        for i in range(len(ordered)):
            _transpose(ordered, i, links, max_transpose_passes)
        if verbose:
            logger.debug("iteration %d: %s crossings", iteration, _total(ordered, links))

    return ordered


# ─── Placement ────────────────────────────────────────────────────────────────


def wrap_rows(layer: list[Cluster], max_row_width: float) -> list[list[Cluster]]:
    """Split a layer into rows no wider than ``max_row_width`` (one cluster always fits)."""
    rows: list[list[Cluster]] = []
    current: list[Cluster] = []
    width = 0.0
    for cluster in layer:
        grown = width + (CLUSTER_GAP_X if current else 0) + cluster.width
        if current and grown > max_row_width:
            rows.append(current)
            current, width = [cluster], cluster.width
        else:
            current.append(cluster)
            width = grown
    if current:
        rows.append(current)
    return rows


def _row_width(row: list[Cluster]) -> float:
    return sum(c.width for c in row) + CLUSTER_GAP_X * (len(row) - 1)


def place_clusters(layers: list[list[Cluster]], weight: Weight, max_row_width: float) -> None:
    """Assign x/y to every cluster.

    Layers stack top-down; wrapped rows stack inside a layer. Each cluster
    aims at the weighted centroid of its already-placed neighbours in other
    layers, weights decaying with bucket distance, while the row keeps its
    crossing-reduced order and never overlaps.
    """
    layer_rows = [wrap_rows(layer, max_row_width) for layer in layers]
    widest = max((_row_width(row) for rows in layer_rows for row in rows), default=0.0)

    layer_y: list[float] = []
    y = 0.0
    for rows in layer_rows:
        layer_y.append(y)
        height = sum(max(c.height for c in row) for row in rows) + ROW_GAP * (len(rows) - 1)
        y += height + CLUSTER_GAP_Y

    placed: set[str] = set()
    for _ in range(PLACEMENT_PASSES):
        for li, rows in enumerate(layer_rows):
            row_y = layer_y[li]
            for row in rows:
                targets = [_target_x(c, layers, li, weight, placed, widest) for c in row]
                x = max(0.0, (widest - _row_width(row)) / 2)
                for i, cluster in enumerate(row):
                    remaining = sum(c.width + CLUSTER_GAP_X for c in row[i + 1 :])
                    limit = widest - remaining - cluster.width
                    cluster.x = min(max(x, targets[i]), max(x, limit))
                    cluster.y = row_y
                    placed.add(cluster.key)
                    x = cluster.x + cluster.width + CLUSTER_GAP_X
                row_y += max(c.height for c in row) + ROW_GAP


def _target_x(
    cluster: Cluster,
    layers: list[list[Cluster]],
    layer_index: int,
    weight: Weight,
    placed: set[str],
    widest: float,
) -> float:
    total = 0.0
    weighted_x = 0.0
    for li, layer in enumerate(layers):
        if li == layer_index:
            continue
        decay = 1 / abs(layer[0].bucket - cluster.bucket)
        for other in layer:
            if other.key not in placed:
                continue
            w = weight(cluster.key, other.key) * decay
            if w > 0:
                weighted_x += (other.x + other.width / 2) * w
                total += w
    if total == 0:
        return (widest - cluster.width) / 2
    return weighted_x / total - cluster.width / 2


# ─── Strategy ─────────────────────────────────────────────────────────────────


def clustered_layout(nodes: list[Node], edges: list[Edge], config: LayoutConfig) -> LayoutResult:
    """Synchronous body of the clustered strategy."""
    sizes = {node.id: estimate(node, config.node_width) for node in nodes}
    clusters = partition(nodes, edges)
    for cluster in clusters.values():
        layout_grid(cluster, sizes, config.max_cluster_columns)

    weight = symmetric(cluster_weights(clusters, edges))
    buckets = sorted({c.bucket for c in clusters.values()})
    key_layers = [[key for key, c in clusters.items() if c.bucket == bucket] for bucket in buckets]
    key_layers = order_clusters(
        key_layers,
        weight,
        iterations=config.crossing_iterations,
        max_transpose_passes=config.max_transpose_passes,
    )
    layers = [[clusters[key] for key in layer] for layer in key_layers]
    place_clusters(layers, weight, config.max_row_width)

    containers: list[PositionedNode] = []
    content: dict[str, PositionedNode] = {}
    for layer in layers:
        for cluster in layer:
            if not config.hide_containers:
                containers.append(cluster_container(cluster, config))
            for node in cluster.members:
                dx, dy = cluster.offsets[node.id]
                content[node.id] = PositionedNode(
                    id=node.id,
                    kind=NodeKind.CONTENT,
                    x=cluster.x + dx,
                    y=cluster.y + dy,
                    width=sizes[node.id].width,
                    height=sizes[node.id].height,
                    label=node.label,
                    tier=node.tier,
                    subgroup=node.subgroup,
                    source=node,
                )

    logger.debug("clustered layout: %d nodes in %d clusters", len(nodes), len(clusters))
    return LayoutResult(
        nodes=containers + [content[node.id] for node in nodes],
        edges=style_edges(edges, routing=config.edge_routing),
    )


def cluster_container(cluster: Cluster, config: LayoutConfig) -> PositionedNode:
    style = config.subgroup_style(cluster.subgroup)
    return PositionedNode(
        id=cluster.id,
        kind=NodeKind.CLUSTER,
        x=cluster.x,
        y=cluster.y,
        width=cluster.width,
        height=cluster.height,
        label=f"{style.label} ({cluster.bucket.label})",
        tier=cluster.members[0].tier,
        subgroup=cluster.subgroup,
        fill=style.fill or NEUTRAL_FILL,
        border=style.border or NEUTRAL_BORDER,
    )


async def layout_clustered(
    nodes: list[Node],
    edges: list[Edge],
    config: LayoutConfig,
    solvers: Solvers,
) -> LayoutResult:
    return await asyncio.to_thread(clustered_layout, nodes, edges, config)
