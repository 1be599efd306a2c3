"""Ranked layout: rank-assignment solver plus rank alignment.

Tiers reach the solver as rank floors and as zero-weight ordering edges
that keep tiers apart even where no real edge connects them. The solver
centers nodes of different heights inside a rank; the alignment pass
snaps each visual row back to a shared top edge.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from causegraph.config import (
    GROUP_HEADER_HEIGHT,
    GROUP_PADDING,
    SUBGROUP_GAP,
    SUBGROUP_HEADER_HEIGHT,
    SUBGROUP_PADDING,
    LayoutConfig,
)
from causegraph.containers import derive_container, derive_subgroup_container, group_by_subgroup, group_by_tier
from causegraph.geometry import estimate
from causegraph.layout.base import call_solver
from causegraph.solvers import RankRequest, SolverEdge, Solvers
from causegraph.styling import RANKED_STROKE_WIDTHS, style_edges
from causegraph.types import DEFAULT_SUBGROUP, Edge, LayoutResult, Node, NodeKind, PositionedNode, Tier

logger = logging.getLogger(__name__)

# Space a subgroup header takes above its members.
SUBGROUP_HEADER = SUBGROUP_HEADER_HEIGHT + SUBGROUP_PADDING


def ordering_edges(nodes: list[Node], edges: Iterable[Edge]) -> list[SolverEdge]:
    """Zero-weight edges that push lower tiers down.

    The first leaf/cause node points at every intermediate node (minlen 2)
    and the first intermediate node at every effect (minlen 2). Without
    intermediates the leaf/cause anchor points at every effect (minlen 3).
    Pairs already joined by a real edge are skipped.
    """
    real = {(edge.source, edge.target) for edge in edges}
    top = next((n for n in nodes if n.tier <= Tier.CAUSE), None)
    middle = [n for n in nodes if n.tier is Tier.INTERMEDIATE]
    bottom = [n for n in nodes if n.tier is Tier.EFFECT]

    synthetic: list[SolverEdge] = []

    def link(anchor: Node | None, targets: list[Node], minlen: int) -> None:
        if anchor is None:
            return
        for target in targets:
            if (anchor.id, target.id) not in real:
                synthetic.append(SolverEdge(anchor.id, target.id, weight=0, minlen=minlen))

    if middle:
        link(top, middle, 2)
        link(middle[0], bottom, 2)
    else:
        link(top, bottom, 3)
    return synthetic


def rank_separation(config: LayoutConfig, subgrouped: bool = False) -> float:
    """Vertical gap between ranks, wide enough for a tier header between them.

    Subgrouped graphs also leave room for the subgroup headers.
    """
    gap = config.spacing.tier_gap + GROUP_HEADER_HEIGHT + GROUP_PADDING * 2 + 20
    return gap + SUBGROUP_HEADER if subgrouped else gap


def _is_subgrouped(members: Iterable[PositionedNode]) -> bool:
    return any(m.source is not None and m.source.group_key != DEFAULT_SUBGROUP for m in members)


def align_ranks(positioned: list[PositionedNode], tolerance: float) -> None:
    """Snap nodes whose centers lie within ``tolerance`` to a shared top Y.

    Groups are built first-fit per tier, in Y order; each group takes the
    largest (lowest) top edge among its members.
    """
    for members in group_by_tier(positioned).values():
        groups: list[tuple[float, list[PositionedNode]]] = []
        for node in sorted(members, key=lambda n: n.y + n.height / 2):
            center = node.y + node.height / 2
            for anchor, group in groups:
                if abs(center - anchor) <= tolerance:
                    group.append(node)
                    break
            else:
                groups.append((center, [node]))

        for _, group in groups:
            top = max(node.y for node in group)
            for node in group:
                node.y = top


def separate_subgroups(positioned: list[PositionedNode], node_spacing: float) -> None:
    """Give every subgroup of a tier its own column band so their boxes never overlap.

    Bands are ordered by the mean center X the solver gave their members
    (ties by key) and packed ``SUBGROUP_GAP`` apart around the tier's
    original center. Inside a band each row keeps its solver order and is
    packed ``node_spacing`` apart, centred in the band. Y is untouched.
    """
    for members in group_by_tier(positioned).values():
        runs = group_by_subgroup(members)
        if len(runs) < 2:
            continue
        center = (min(m.x for m in members) + max(m.right for m in members)) / 2

        def mean_center(key: str) -> float:
            return sum(m.x + m.width / 2 for m in runs[key]) / len(runs[key])

        bands: list[tuple[float, list[list[PositionedNode]]]] = []
        for key in sorted(runs, key=lambda k: (mean_center(k), k)):
            rows: dict[float, list[PositionedNode]] = {}
            for node in runs[key]:
                rows.setdefault(node.y, []).append(node)
            ordered = [sorted(row, key=lambda n: (n.x, n.id)) for row in rows.values()]
            width = max(_row_width(row, node_spacing) for row in ordered)
            bands.append((width, ordered))

        total = sum(width for width, _ in bands) + SUBGROUP_GAP * (len(bands) - 1)
        left = center - total / 2
        for width, rows_in_band in bands:
            for row in rows_in_band:
                x = left + (width - _row_width(row, node_spacing)) / 2
                for node in row:
                    node.x = x
                    x += node.width + node_spacing
            left += width + SUBGROUP_GAP


def _row_width(row: list[PositionedNode], node_spacing: float) -> float:
    return sum(n.width for n in row) + node_spacing * (len(row) - 1)


async def layout_ranked(
    nodes: list[Node],
    edges: list[Edge],
    config: LayoutConfig,
    solvers: Solvers,
) -> LayoutResult:
    sizes = {node.id: estimate(node, config.node_width) for node in nodes}
    subgrouped = any(node.group_key != DEFAULT_SUBGROUP for node in nodes)
    request = RankRequest(
        node_ids=[node.id for node in nodes],
        edges=[SolverEdge(edge.source, edge.target) for edge in edges] + ordering_edges(nodes, edges),
        sizes={node_id: (size.width, size.height) for node_id, size in sizes.items()},
        floors={node.id: int(node.tier) for node in nodes},
        node_sep=config.node_spacing,
        rank_sep=rank_separation(config, subgrouped),
        margin=GROUP_HEADER_HEIGHT + GROUP_PADDING + (SUBGROUP_HEADER if subgrouped else 0),
    )
    centers = await call_solver(solvers.ranked, request, "ranked")

    positioned = []
    for node in nodes:
        size = sizes[node.id]
        center = centers[node.id]
        positioned.append(
            PositionedNode(
                id=node.id,
                kind=NodeKind.CONTENT,
                x=center.x - size.width / 2,
                y=center.y - size.height / 2,
                width=size.width,
                height=size.height,
                label=node.label,
                tier=node.tier,
                subgroup=node.subgroup,
                source=node,
            )
        )
    align_ranks(positioned, config.rank_tolerance)
    separate_subgroups(positioned, config.node_spacing)

    containers = [] if config.hide_containers else tier_containers(positioned, config)
    logger.debug("ranked layout: %d nodes, %d containers", len(nodes), len(containers))
    return LayoutResult(
        nodes=containers + positioned,
        edges=style_edges(edges, widths=RANKED_STROKE_WIDTHS, routing=config.edge_routing),
    )


def tier_containers(positioned: list[PositionedNode], config: LayoutConfig) -> list[PositionedNode]:
    """Wrap each tier, centred on its own content and at least ``container_width`` wide.

    A subgrouped tier gets a taller header and one box per non-default
    subgroup, after its tier box.
    """
    containers = []
    for tier, members in group_by_tier(positioned).items():
        subgrouped = _is_subgrouped(members)
        left = min(m.x for m in members)
        right = max(m.right for m in members)
        pad = GROUP_PADDING + (SUBGROUP_PADDING if subgrouped else 0)
        width = max(config.container_width, right - left + pad * 2)
        container = derive_container(
            tier,
            members,
            (left + right) / 2,
            width,
            config.tier_label(tier),
            header_height=GROUP_HEADER_HEIGHT + (SUBGROUP_HEADER if subgrouped else 0),
        )
        if container is not None:
            containers.append(container)
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
