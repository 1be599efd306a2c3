"""Tests for tier and subgroup container derivation."""

from __future__ import annotations

from causegraph.config import (
    GROUP_HEADER_HEIGHT,
    GROUP_PADDING,
    SUBGROUP_HEADER_HEIGHT,
    SUBGROUP_PADDING,
    TIER_FILLS,
)
from causegraph.containers import (
    TIER_BOTTOM_PADDING,
    derive_container,
    derive_subgroup_container,
    group_by_subgroup,
    group_by_tier,
)
from causegraph.types import Node, NodeKind, PositionedNode, Tier


def placed(node_id: str, tier: Tier, x: float, y: float, w: float = 200, h: float = 100, subgroup=None):
    source = Node(id=node_id, tier=tier, label=node_id, subgroup=subgroup)
    return PositionedNode(
        id=node_id, kind=NodeKind.CONTENT, x=x, y=y, width=w, height=h, tier=tier, subgroup=subgroup, source=source
    )


class TestDeriveContainer:
    def test_empty_members(self):
        assert derive_container(Tier.CAUSE, [], 450, 900, "Causes") is None

    def test_fixed_width_centered(self):
        """Horizontal span ignores the members and is centred on center_x."""
        members = [placed("a", Tier.CAUSE, 0, 100), placed("b", Tier.CAUSE, 1200, 100)]
        box = derive_container(Tier.CAUSE, members, 450, 900, "Causes")
        assert box.x == 0
        assert box.width == 900
        assert box.id == "group-cause"
        assert box.kind is NodeKind.GROUP
        assert box.label == "Causes"
        assert box.fill == TIER_FILLS[Tier.CAUSE]

    def test_vertical_span(self):
        members = [placed("a", Tier.CAUSE, 0, 100, h=80), placed("b", Tier.CAUSE, 300, 120, h=100)]
        box = derive_container(Tier.CAUSE, members, 450, 900, "Causes")
        assert box.y == 100 - GROUP_HEADER_HEIGHT - GROUP_PADDING
        assert box.bottom == 220 + GROUP_PADDING

    def test_tier_specific_bottom_padding(self):
        """Intermediate gets extra room below; effect gets less."""
        assert TIER_BOTTOM_PADDING[Tier.INTERMEDIATE] > TIER_BOTTOM_PADDING[Tier.CAUSE]
        assert TIER_BOTTOM_PADDING[Tier.EFFECT] < TIER_BOTTOM_PADDING[Tier.CAUSE]
        box = derive_container(Tier.EFFECT, [placed("e", Tier.EFFECT, 0, 500)], 450, 900, "Effects")
        assert box.bottom == 600 + TIER_BOTTOM_PADDING[Tier.EFFECT]

    def test_encloses_members_for_every_tier(self):
        for tier in Tier:
            members = [placed("a", tier, 100, 300)]
            box = derive_container(tier, members, 200, 900, "x")
            assert box.y < members[0].y
            assert box.bottom > members[0].bottom

    def test_overrides(self):
        members = [placed("a", Tier.CAUSE, 0, 100)]
        box = derive_container(
            Tier.CAUSE, members, 450, 900, "Causes", fill="#fff", header_height=60, bottom_padding=0
        )
        assert box.fill == "#fff"
        assert box.y == 100 - 60 - GROUP_PADDING
        assert box.bottom == 200


class TestDeriveSubgroupContainer:
    def test_hugs_members(self):
        members = [placed("a", Tier.INTERMEDIATE, 100, 300, subgroup="x"), placed("b", Tier.INTERMEDIATE, 340, 300, subgroup="x")]
        box = derive_subgroup_container(Tier.INTERMEDIATE, "x", members, "X", fill="#eef", border="#33f")
        assert box.id == "subgroup-intermediate-x"
        assert box.kind is NodeKind.SUBGROUP
        assert box.x == 100 - SUBGROUP_PADDING
        assert box.right == 540 + SUBGROUP_PADDING
        assert box.y == 300 - SUBGROUP_HEADER_HEIGHT - SUBGROUP_PADDING
        assert box.bottom == 400 + SUBGROUP_PADDING
        assert (box.fill, box.border, box.subgroup) == ("#eef", "#33f", "x")

    def test_empty_members(self):
        assert derive_subgroup_container(Tier.CAUSE, "x", [], "X") is None


class TestGrouping:
    def test_group_by_tier_sorted_by_tier(self):
        nodes = [Node("e", Tier.EFFECT), Node("c", Tier.CAUSE), Node("l", Tier.LEAF), Node("c2", Tier.CAUSE)]
        grouped = group_by_tier(nodes)
        assert list(grouped) == [Tier.LEAF, Tier.CAUSE, Tier.EFFECT]
        assert [n.id for n in grouped[Tier.CAUSE]] == ["c", "c2"]

    def test_group_by_tier_skips_containers(self):
        box = PositionedNode(id="g", kind=NodeKind.GROUP, x=0, y=0, width=1, height=1)
        assert group_by_tier([box]) == {}

    def test_group_by_subgroup_defaults(self):
        nodes = [Node("a", Tier.CAUSE, subgroup="x"), Node("b", Tier.CAUSE), Node("c", Tier.CAUSE, subgroup="x")]
        grouped = group_by_subgroup(nodes)
        assert list(grouped) == ["x", "default"]
        assert [n.id for n in grouped["x"]] == ["a", "c"]

    def test_group_by_subgroup_positioned(self):
        nodes = [placed("a", Tier.CAUSE, 0, 0, subgroup="y"), placed("b", Tier.CAUSE, 0, 0)]
        assert list(group_by_subgroup(nodes)) == ["y", "default"]
