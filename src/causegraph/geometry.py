"""Node geometry estimation.

Layout runs before anything is rendered, so node sizes are estimated from
content: width from the longest text line, height from the number of
sub-items and the node's visual role. Estimates are pure and deterministic,
which keeps layout snapshots stable.
"""

from __future__ import annotations

from dataclasses import dataclass

from causegraph.config import LAYOUT_NODE_HEIGHT, NODE_WIDTH
from causegraph.types import Node, NodeRole

CHAR_WIDTH = 8  # approximate pixels per character
TEXT_PADDING = 40  # horizontal padding inside a node

SUB_ITEM_BASE_HEIGHT = 80
SUB_ITEM_HEIGHT = 28

EXPANDABLE_SIZE = (200, 80)

CLUSTER_BASE_WIDTH = 280
CLUSTER_MAX_WIDTH = 400
CLUSTER_CONTAINER_MAX_WIDTH = 800
CLUSTER_CONTAINER_HEIGHT = 140


@dataclass(frozen=True)
class Size:
    width: float
    height: float


def longest_text(node: Node) -> int:
    """Length of the longest text among the node label and sub-item labels."""
    lengths = [len(node.label)] + [len(item.label) for item in node.sub_items]
    return max(lengths)


def estimate_width(node: Node, min_width: float = NODE_WIDTH) -> float:
    """Width needed to fit the node's longest line, never below ``min_width``."""
    return max(min_width, longest_text(node) * CHAR_WIDTH + TEXT_PADDING)


def estimate(node: Node, node_width: float | None = None) -> Size:
    """Estimate the rendered (width, height) of ``node``.

    ``node_width`` (the ``nodeWidth`` option) fixes the width of content
    nodes; structural roles keep their own sizing.
    """
    if node.role is NodeRole.CLUSTER_CONTAINER:
        children = node.child_count or 3
        return Size(min(CLUSTER_CONTAINER_MAX_WIDTH, 100 + children * 220), CLUSTER_CONTAINER_HEIGHT)

    if node.role is NodeRole.CLUSTER:
        previews = len(node.preview_items)
        height = 60
        if node.description:
            height += 30
        if previews:
            height += 50
        return Size(min(CLUSTER_MAX_WIDTH, CLUSTER_BASE_WIDTH + previews * 20), height)

    if node.role is NodeRole.EXPANDABLE:
        return Size(*EXPANDABLE_SIZE)

    if node.sub_items:
        width = estimate_width(node, NODE_WIDTH + 40)
        height = SUB_ITEM_BASE_HEIGHT + len(node.sub_items) * SUB_ITEM_HEIGHT
    else:
        width = estimate_width(node, NODE_WIDTH + 20)
        height = LAYOUT_NODE_HEIGHT * 7 / 10

    if node_width is not None:
        width = node_width
    return Size(width, height)
