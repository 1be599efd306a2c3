"""Data model shared by the estimator, the layout strategies and renderers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from causegraph.errors import GraphDataError

DEFAULT_SUBGROUP = "default"


class Tier(IntEnum):
    """Ordinal rank of a node; lower tiers are drawn above higher ones."""

    LEAF = 0
    CAUSE = 1
    INTERMEDIATE = 2
    EFFECT = 3

    @property
    def slug(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: str | int | Tier) -> Tier:
        if isinstance(value, Tier):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise GraphDataError(f"Unknown tier: {value!r}") from None
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise GraphDataError(f"Unknown tier: {value!r}") from None


class Strength(str, Enum):
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"

    @property
    def weight(self) -> int:
        """Integer weight used by the clustering layout (weak=1, medium=2, strong=3)."""
        return _STRENGTH_WEIGHTS[self]


_STRENGTH_WEIGHTS = {Strength.WEAK: 1, Strength.MEDIUM: 2, Strength.STRONG: 3}


class Valence(str, Enum):
    """Direction of a causal effect."""

    INCREASES = "increases"
    DECREASES = "decreases"
    MIXED = "mixed"


class Confidence(str, Enum):
    """How well established an edge is. Carried through, never drawn."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NodeRole(str, Enum):
    """Visual role of a node; only the geometry estimator cares about it."""

    CONTENT = "content"
    EXPANDABLE = "expandable"
    CLUSTER = "cluster"
    CLUSTER_CONTAINER = "cluster_container"


class NodeKind(str, Enum):
    """Kind of a positioned node in a layout result."""

    CONTENT = "content"
    GROUP = "group"
    SUBGROUP = "subgroup"
    CLUSTER = "cluster"


class EdgeRouting(str, Enum):
    CURVED = "curved"
    STRAIGHT = "straight"


# ─── Input Graph ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SubItem:
    """A labelled line item rendered inside a node."""

    label: str
    text: str = ""


@dataclass(frozen=True)
class Node:
    """A content item to be placed.

    ``tier`` is never changed by a layout. ``order`` is an optional manual
    rank within the node's row; ``subgroup`` clusters nodes within a tier.
    ``sub_items`` through ``preview_items`` feed the geometry estimator; the
    annotation fields after them are only carried through to the export.
    """

    id: str
    tier: Tier
    label: str = ""
    subgroup: str | None = None
    order: float | None = None
    sub_items: tuple[SubItem, ...] = ()
    role: NodeRole = NodeRole.CONTENT
    description: str | None = None
    child_count: int = 0
    preview_items: tuple[str, ...] = ()
    confidence: float | None = None
    confidence_label: str | None = None
    details: str | None = None
    related_concepts: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()

    @property
    def group_key(self) -> str:
        return self.subgroup or DEFAULT_SUBGROUP

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Node:
        """Build a Node from a loader mapping.

        Accepts ``tier`` or ``type`` for the tier, and the label either flat
        (``label`` / ``subItems``) or nested under ``content``.
        """
        content = data.get("content") or {}
        label = data.get("label", content.get("label", ""))
        raw_items = data.get("subItems", data.get("sub_items", content.get("items", ()))) or ()
        items = tuple(
            SubItem(label=str(item.get("label", "")), text=str(item.get("text", item.get("description", "")) or ""))
            if isinstance(item, Mapping)
            else SubItem(label=str(item))
            for item in raw_items
        )
        tier = data.get("tier", data.get("type"))
        if tier is None:
            raise GraphDataError(f"Node {data.get('id')!r} has no tier")
        role = data.get("role", NodeRole.CONTENT)
        confidence = data.get("confidence")
        return cls(
            id=str(data["id"]),
            tier=Tier.parse(tier),
            label=str(label or ""),
            subgroup=data.get("subgroup") or None,
            order=data.get("order"),
            sub_items=items,
            role=NodeRole(role),
            description=data.get("description"),
            child_count=int(data.get("childCount", data.get("child_count", 0)) or 0),
            preview_items=tuple(data.get("previewItems", data.get("preview_items", ())) or ()),
            confidence=None if confidence is None else float(confidence),
            confidence_label=data.get("confidenceLabel", data.get("confidence_label")),
            details=data.get("details"),
            related_concepts=tuple(data.get("relatedConcepts", data.get("related_concepts", ())) or ()),
            sources=tuple(data.get("sources") or ()),
        )


@dataclass(frozen=True)
class Edge:
    """A directed causal relation between two node ids."""

    source: str
    target: str
    strength: Strength = Strength.MEDIUM
    effect: Valence = Valence.INCREASES
    label: str | None = None
    id: str | None = None
    confidence: Confidence | None = None

    @property
    def key(self) -> str:
        return self.id or f"{self.source}->{self.target}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Edge:
        confidence = data.get("confidence")
        return cls(
            source=str(data["source"]),
            target=str(data["target"]),
            strength=Strength(data.get("strength") or Strength.MEDIUM),
            effect=Valence(data.get("effect") or Valence.INCREASES),
            label=data.get("label"),
            id=data.get("id"),
            confidence=Confidence(confidence) if confidence else None,
        )


# ─── Layout Output ────────────────────────────────────────────────────────────


@dataclass
class PositionedNode:
    """A node with absolute pixel coordinates (top-left corner).

    Container nodes (``kind`` other than CONTENT) are synthetic; they carry a
    fill/border colour and have no ``source`` node.
    """

    id: str
    kind: NodeKind
    x: float
    y: float
    width: float
    height: float
    label: str = ""
    tier: Tier | None = None
    subgroup: str | None = None
    source: Node | None = None
    fill: str | None = None
    border: str | None = None

    @property
    def is_container(self) -> bool:
        return self.kind is not NodeKind.CONTENT

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width


@dataclass(frozen=True)
class StyledEdge:
    """An input edge annotated with stroke attributes."""

    edge: Edge
    stroke: str
    stroke_width: float
    dash: str | None = None
    opacity: float = 0.7
    marker_size: float = 16.0
    routing: EdgeRouting = EdgeRouting.CURVED

    @property
    def source(self) -> str:
        return self.edge.source

    @property
    def target(self) -> str:
        return self.edge.target


@dataclass
class LayoutResult:
    """Uniform output of every layout strategy.

    Containers come first in ``nodes`` so renderers can draw them beneath
    the content nodes.
    """

    nodes: list[PositionedNode] = field(default_factory=list)
    edges: list[StyledEdge] = field(default_factory=list)

    def containers(self) -> list[PositionedNode]:
        return [n for n in self.nodes if n.is_container]

    def content_nodes(self) -> list[PositionedNode]:
        return [n for n in self.nodes if not n.is_container]

    def node(self, node_id: str) -> PositionedNode:
        for n in self.nodes:
            if n.id == node_id:
                return n
        raise KeyError(node_id)
