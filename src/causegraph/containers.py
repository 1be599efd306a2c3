"""Group and subgroup containers.

A container is a synthetic, labelled box drawn beneath a set of positioned
nodes. Tier containers share one fixed width centred on the layout axis so
that the bands line up across tiers; subgroup containers hug their own
members horizontally.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TypeVar

from causegraph.config import (
    GROUP_HEADER_HEIGHT,
    GROUP_PADDING,
    SUBGROUP_HEADER_HEIGHT,
    SUBGROUP_PADDING,
    TIER_FILLS,
)
from causegraph.types import DEFAULT_SUBGROUP, Node, NodeKind, PositionedNode, Tier

T = TypeVar("T", Node, PositionedNode)

# Intermediate nodes tend to carry long sub-item lists; effects are usually
# single-line outcomes.
TIER_BOTTOM_PADDING: dict[Tier, float] = {
    Tier.LEAF: GROUP_PADDING,
    Tier.CAUSE: GROUP_PADDING,
    Tier.INTERMEDIATE: GROUP_PADDING + 20,
    Tier.EFFECT: GROUP_PADDING // 2,
}


def group_id(tier: Tier) -> str:
    return f"group-{tier.slug}"


def subgroup_id(tier: Tier, key: str) -> str:
    return f"subgroup-{tier.slug}-{key}"


def _subgroup_of(item: Node | PositionedNode) -> str:
    if isinstance(item, Node):
        return item.group_key
    if item.source is not None:
        return item.source.group_key
    return item.subgroup or DEFAULT_SUBGROUP


def group_by_tier(items: Iterable[T]) -> dict[Tier, list[T]]:
    """Bucket items by tier, in tier order."""
    buckets: dict[Tier, list[T]] = {}
    for item in items:
        if item.tier is None:
            continue
        buckets.setdefault(item.tier, []).append(item)
    return {tier: buckets[tier] for tier in sorted(buckets)}


def group_by_subgroup(items: Iterable[T]) -> dict[str, list[T]]:
    """Bucket items by subgroup key, preserving first-appearance order."""
    buckets: dict[str, list[T]] = {}
    for item in items:
        buckets.setdefault(_subgroup_of(item), []).append(item)
    return buckets


def derive_container(
    tier: Tier,
    members: Sequence[PositionedNode],
    center_x: float,
    container_width: float,
    label: str,
    *,
    fill: str | None = None,
    border: str | None = "transparent",
    header_height: float = GROUP_HEADER_HEIGHT,
    bottom_padding: float | None = None,
) -> PositionedNode | None:
    """Enclose one tier's members in a fixed-width box centred on ``center_x``.

    Returns None when there are no members. The horizontal span ignores the
    members' actual extent so boxes align across tiers. ``bottom_padding``
    replaces the tier's default padding below the lowest member.
    """
    if not members:
        return None

    top = min(m.y for m in members) - header_height - GROUP_PADDING
    if bottom_padding is None:
        bottom_padding = TIER_BOTTOM_PADDING[tier]
    bottom = max(m.bottom for m in members) + bottom_padding

    return PositionedNode(
        id=group_id(tier),
        kind=NodeKind.GROUP,
        x=center_x - container_width / 2,
        y=top,
        width=container_width,
        height=bottom - top,
        label=label,
        tier=tier,
        fill=fill if fill is not None else TIER_FILLS[tier],
        border=border,
    )


def derive_subgroup_container(
    tier: Tier,
    key: str,
    members: Sequence[PositionedNode],
    label: str,
    *,
    fill: str | None = None,
    border: str | None = None,
) -> PositionedNode | None:
    """Enclose a subgroup's members in a box sized to their own column."""
    if not members:
        return None

    left = min(m.x for m in members) - SUBGROUP_PADDING
    right = max(m.right for m in members) + SUBGROUP_PADDING
    top = min(m.y for m in members) - SUBGROUP_HEADER_HEIGHT - SUBGROUP_PADDING
    bottom = max(m.bottom for m in members) + SUBGROUP_PADDING

    return PositionedNode(
        id=subgroup_id(tier, key),
        kind=NodeKind.SUBGROUP,
        x=left,
        y=top,
        width=right - left,
        height=bottom - top,
        label=label,
        tier=tier,
        subgroup=key,
        fill=fill,
        border=border,
    )
