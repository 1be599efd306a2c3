"""Layered layout: solver-driven ordering, fixed tier bands.

The layered solver only decides the relative order of nodes. Y is then
overridden per tier so that every tier sits in its own band, and X is
recomputed per row: nodes are ordered (manual ``order``, else barycenter
against the nearest already-placed tier, else solver X), bucketed by
subgroup and packed around ``center_x``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping

from causegraph.config import (
    GROUP_HEADER_HEIGHT,
    GROUP_PADDING,
    LAYOUT_NODE_HEIGHT,
    NODE_WIDTH,
    ROW_NODE_GAP,
    SUBGROUP_GAP,
    SUBGROUP_HEADER_HEIGHT,
    SUBGROUP_PADDING,
    LayoutConfig,
)
from causegraph.containers import (
    TIER_BOTTOM_PADDING,
    derive_container,
    derive_subgroup_container,
    group_by_subgroup,
    group_by_tier,
)
from causegraph.geometry import Size, estimate
from causegraph.layout.base import adjacency, call_solver
from causegraph.solvers import LayerConstraint, LayeredRequest, Solvers, SolverEdge
from causegraph.styling import style_edges
from causegraph.types import DEFAULT_SUBGROUP, Edge, LayoutResult, Node, NodeKind, PositionedNode, Tier

logger = logging.getLogger(__name__)

# Rows are placed in this order; each row is ordered against the nearest
# tier placed before it.
PLACEMENT_ORDER = (Tier.CAUSE, Tier.INTERMEDIATE, Tier.EFFECT, Tier.LEAF)


def layer_constraints(nodes: list[Node]) -> dict[str, LayerConstraint]:
    constraints: dict[str, LayerConstraint] = {}
    for node in nodes:
        if node.tier in (Tier.LEAF, Tier.CAUSE):
            constraints[node.id] = LayerConstraint.FIRST
        elif node.tier is Tier.EFFECT:
            constraints[node.id] = LayerConstraint.LAST
    return constraints


def is_subgrouped(members: list[Node]) -> bool:
    return any(node.group_key != DEFAULT_SUBGROUP for node in members)


# ─── Tier Bands ───────────────────────────────────────────────────────────────


def tier_rows(by_tier: Mapping[Tier, list[Node]], sizes: Mapping[str, Size], config: LayoutConfig) -> dict[Tier, float]:
    """Return the row Y of every present tier.

    The first band's container starts at y=0. Each band is as tall as its
    header, its tallest member and its bottom padding; bands are separated
    by ``tier_gap``.
    """
    rows: dict[Tier, float] = {}
    top = 0.0
    for tier, members in by_tier.items():
        subgrouped = is_subgrouped(members)
        row_y = top + GROUP_HEADER_HEIGHT + GROUP_PADDING
        if subgrouped:
            row_y += SUBGROUP_HEADER_HEIGHT + SUBGROUP_PADDING
        rows[tier] = row_y

        tallest = max(sizes[node.id].height for node in members)
        bottom = row_y + tallest + _bottom_padding(tier, subgrouped)
        top = bottom + config.spacing.tier_gap
    return rows


def _bottom_padding(tier: Tier, subgrouped: bool) -> float:
    return TIER_BOTTOM_PADDING[tier] + (SUBGROUP_PADDING if subgrouped else 0)


# ─── Row Ordering ─────────────────────────────────────────────────────────────


def order_row(
    members: list[Node],
    solver_x: Mapping[str, float],
    reference_x: Mapping[str, float],
    neighbours: Mapping[str, set[str]],
    index: Mapping[str, int],
) -> list[Node]:
    """Order one row left to right.

    If any member sets ``order`` the row follows ascending ``order``
    (unset values last). Otherwise each node is keyed by the mean X of its
    neighbours in ``reference_x``, or by its own solver X when it has none.
    Ties fall back to solver X, then input position.
    """
    if any(node.order is not None for node in members):
        return sorted(
            members,
            key=lambda n: (n.order if n.order is not None else math.inf, solver_x[n.id], index[n.id]),
        )

    def barycenter(node: Node) -> float:
        xs = [reference_x[nb] for nb in neighbours.get(node.id, ()) if nb in reference_x]
        if not xs:
            return solver_x[node.id]
        return sum(xs) / len(xs)

    return sorted(members, key=lambda n: (barycenter(n), solver_x[n.id], index[n.id]))


def subgroup_runs(row: list[Node], config: LayoutConfig) -> list[list[Node]]:
    """Split an ordered row into contiguous subgroup runs.

    Configured subgroups come first in configuration order, then any other
    keys in row order, and the default bucket last.
    """
    buckets = group_by_subgroup(row)
    keys = [key for key in config.subgroups if key in buckets and key != DEFAULT_SUBGROUP]
    keys += [key for key in buckets if key not in keys and key != DEFAULT_SUBGROUP]
    if DEFAULT_SUBGROUP in buckets:
        keys.append(DEFAULT_SUBGROUP)
    return [buckets[key] for key in keys]


def pack_runs(runs: list[list[Node]], sizes: Mapping[str, Size], gap: float, center_x: float) -> dict[str, float]:
    """Lay runs out left to right, centred as a whole on ``center_x``.

    Returns the left X of every node.
    """
    widths = [sum(sizes[n.id].width for n in run) + gap * (len(run) - 1) for run in runs]
    total = sum(widths) + SUBGROUP_GAP * max(0, len(runs) - 1)

    xs: dict[str, float] = {}
    x = center_x - total / 2
    for run, run_width in zip(runs, widths):
        cursor = x
        for node in run:
            xs[node.id] = cursor
            cursor += sizes[node.id].width + gap
        x += run_width + SUBGROUP_GAP
    return xs


def _reference_tier(tier: Tier, placed: list[Tier]) -> Tier | None:
    if not placed:
        return None
    return min(placed, key=lambda t: (abs(t - tier), t))


# ─── Strategy ─────────────────────────────────────────────────────────────────


async def layout_layered(
    nodes: list[Node],
    edges: list[Edge],
    config: LayoutConfig,
    solvers: Solvers,
) -> LayoutResult:
    sizes = {node.id: estimate(node, config.node_width) for node in nodes}
    request = LayeredRequest(
        node_ids=[node.id for node in nodes],
        edges=[SolverEdge(edge.source, edge.target) for edge in edges],
        sizes={node.id: (NODE_WIDTH, LAYOUT_NODE_HEIGHT) for node in nodes},
        constraints=layer_constraints(nodes),
        node_spacing=config.node_spacing,
        layer_spacing=config.layer_spacing,
    )
    raw = await call_solver(solvers.layered, request, "layered")
    solver_x = {node_id: point.x + NODE_WIDTH / 2 for node_id, point in raw.items()}

    by_tier = group_by_tier(nodes)
    rows = tier_rows(by_tier, sizes, config)
    neighbours = adjacency(edges)
    index = {node.id: i for i, node in enumerate(nodes)}

    left: dict[str, float] = {}
    centers: dict[Tier, dict[str, float]] = {}
    placed: list[Tier] = []
    for tier in PLACEMENT_ORDER:
        if tier not in by_tier:
            continue
        reference = _reference_tier(tier, placed)
        reference_x = centers[reference] if reference is not None else {}
        row = order_row(by_tier[tier], solver_x, reference_x, neighbours, index)
        runs = subgroup_runs(row, config) if is_subgrouped(row) else [row]
        xs = pack_runs(runs, sizes, ROW_NODE_GAP + config.spacing.for_tier(tier), config.center_x)
        left.update(xs)
        centers[tier] = {node_id: x + sizes[node_id].width / 2 for node_id, x in xs.items()}
        placed.append(tier)

    positioned = [
        PositionedNode(
            id=node.id,
            kind=NodeKind.CONTENT,
            x=left[node.id],
            y=rows[node.tier],
            width=sizes[node.id].width,
            height=sizes[node.id].height,
            label=node.label,
            tier=node.tier,
            subgroup=node.subgroup,
            source=node,
        )
        for node in nodes
    ]

    containers = [] if config.hide_containers else tier_containers(positioned, config)
    logger.debug("layered layout: %d nodes in %d tiers, %d containers", len(nodes), len(by_tier), len(containers))
    return LayoutResult(
        nodes=containers + positioned,
        edges=style_edges(edges, routing=config.edge_routing),
    )


def tier_containers(positioned: list[PositionedNode], config: LayoutConfig) -> list[PositionedNode]:
    """One fixed-width container per tier, then one per non-default subgroup."""
    containers: list[PositionedNode] = []
    for tier, members in group_by_tier(positioned).items():
        subgrouped = any(m.source is not None and m.source.group_key != DEFAULT_SUBGROUP for m in members)
        header = GROUP_HEADER_HEIGHT + (SUBGROUP_HEADER_HEIGHT + SUBGROUP_PADDING if subgrouped else 0)
        group = derive_container(
            tier,
            members,
            config.center_x,
            config.container_width,
            config.tier_label(tier),
            header_height=header,
            bottom_padding=_bottom_padding(tier, subgrouped),
        )
        if group is not None:
            containers.append(group)
        if not subgrouped:
            continue

        for key, sub_members in group_by_subgroup(members).items():
            if key == DEFAULT_SUBGROUP:
                continue
            style = config.subgroup_style(key)
            sub = derive_subgroup_container(tier, key, sub_members, style.label, fill=style.fill, border=style.border)
            if sub is not None:
                containers.append(sub)
    return containers
