"""Layout constants and the resolved per-call configuration.

Callers hand ``layout`` a loose mapping (wire keys in camelCase, or
snake_case); ``resolve_config`` validates it once and merges it with the
defaults below into a frozen ``LayoutConfig``. Nothing downstream reads the
raw mapping.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from causegraph.errors import LayoutConfigError
from causegraph.types import EdgeRouting, Tier

# ─── Geometry Constants ───────────────────────────────────────────────────────

NODE_WIDTH = 180  # rendered width of a plain node
LAYOUT_NODE_HEIGHT = 160  # height reserved for a node with a few sub-items

GROUP_PADDING = 20
GROUP_HEADER_HEIGHT = 28

SUBGROUP_PADDING = 12
SUBGROUP_HEADER_HEIGHT = 20
SUBGROUP_GAP = 60  # gap between subgroup runs inside one row

ROW_NODE_GAP = 20  # base gap between neighbours in a row, before tier spacing

# ─── Palettes ─────────────────────────────────────────────────────────────────

DEFAULT_TYPE_LABELS: dict[Tier, str] = {
    Tier.LEAF: "Leaf Nodes",
    Tier.CAUSE: "Causes",
    Tier.INTERMEDIATE: "Intermediate",
    Tier.EFFECT: "Effects",
}

TIER_FILLS: dict[Tier, str] = {
    Tier.LEAF: "rgba(236, 253, 245, 0.4)",
    Tier.CAUSE: "rgba(219, 234, 254, 0.3)",
    Tier.INTERMEDIATE: "rgba(237, 233, 254, 0.3)",
    Tier.EFFECT: "rgba(254, 243, 199, 0.3)",
}

NEUTRAL_FILL = "rgba(100, 116, 139, 0.2)"
NEUTRAL_BORDER = "rgba(100, 116, 139, 0.5)"


class Algorithm(str, Enum):
    LAYERED = "layered"
    RANKED = "ranked"
    CLUSTERED = "clustered"


# Names used by earlier versions of the graph pages.
ALGORITHM_ALIASES: dict[str, Algorithm] = {
    "elk": Algorithm.LAYERED,
    "dagre": Algorithm.RANKED,
    "grouped": Algorithm.CLUSTERED,
}


@dataclass(frozen=True)
class Spacing:
    """Vertical gap between tier bands and extra horizontal spacing per tier."""

    tier_gap: float = 30
    leaf_spacing: float = 0
    cause_spacing: float = 40
    intermediate_spacing: float = 60
    effect_spacing: float = 80

    def for_tier(self, tier: Tier) -> float:
        return {
            Tier.LEAF: self.leaf_spacing,
            Tier.CAUSE: self.cause_spacing,
            Tier.INTERMEDIATE: self.intermediate_spacing,
            Tier.EFFECT: self.effect_spacing,
        }[tier]


@dataclass(frozen=True)
class SubgroupStyle:
    label: str
    fill: str | None = None
    border: str | None = None


@dataclass(frozen=True)
class LayoutConfig:
    """Fully resolved configuration for one layout call."""

    algorithm: Algorithm = Algorithm.LAYERED
    node_width: float | None = None
    spacing: Spacing = field(default_factory=Spacing)
    subgroups: Mapping[str, SubgroupStyle] = field(default_factory=dict)
    type_labels: Mapping[Tier, str] = field(default_factory=lambda: dict(DEFAULT_TYPE_LABELS))
    hide_containers: bool = False
    edge_routing: EdgeRouting = EdgeRouting.CURVED
    container_width: float = 900
    center_x: float = 450
    node_spacing: float = 40
    layer_spacing: float = 80
    rank_tolerance: float = 5
    crossing_iterations: int = 8
    max_transpose_passes: int = 3
    max_row_width: float = 4500
    max_cluster_columns: int = 3

    def tier_label(self, tier: Tier) -> str:
        return self.type_labels.get(tier) or DEFAULT_TYPE_LABELS[tier]

    def subgroup_style(self, key: str) -> SubgroupStyle:
        """Configured style for a subgroup, or an unstyled one labelled with the key."""
        return self.subgroups.get(key) or SubgroupStyle(label=key)


# ─── Resolution ───────────────────────────────────────────────────────────────

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def _normalise(raw: Mapping[str, Any]) -> dict[str, Any]:
    return {_snake(str(k)): v for k, v in raw.items()}


def _number(value: Any, name: str, *, minimum: float | None = 0, strict: bool = False) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise LayoutConfigError(f"{name} must be a number, got {value!r}")
    if minimum is not None and (value < minimum or (strict and value == minimum)):
        bound = ">" if strict else ">="
        raise LayoutConfigError(f"{name} must be {bound} {minimum}, got {value!r}")
    return value


def _integer(value: Any, name: str, *, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise LayoutConfigError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise LayoutConfigError(f"{name} must be >= {minimum}, got {value!r}")
    return value


def _algorithm(value: Any) -> Algorithm:
    if isinstance(value, Algorithm):
        return value
    name = str(value).strip().lower()
    if name in ALGORITHM_ALIASES:
        return ALGORITHM_ALIASES[name]
    try:
        return Algorithm(name)
    except ValueError:
        known = ", ".join(a.value for a in Algorithm)
        raise LayoutConfigError(f"Unknown layout algorithm: {value!r}. Available: {known}") from None


def _spacing(raw: Any) -> Spacing:
    if raw is None:
        return Spacing()
    if not isinstance(raw, Mapping):
        raise LayoutConfigError(f"spacing must be a mapping, got {type(raw).__name__}")
    values = _normalise(raw)
    defaults = Spacing()
    kwargs = {}
    for name in ("tier_gap", "leaf_spacing", "cause_spacing", "intermediate_spacing", "effect_spacing"):
        if values.get(name) is not None:
            kwargs[name] = _number(values[name], f"spacing.{name}")
        else:
            kwargs[name] = getattr(defaults, name)
    # Older option name for tier_gap.
    if values.get("layer_gap") is not None and values.get("tier_gap") is None:
        kwargs["tier_gap"] = _number(values["layer_gap"], "spacing.layer_gap")
    return Spacing(**kwargs)


def _subgroups(raw: Any) -> dict[str, SubgroupStyle]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise LayoutConfigError(f"subgroups must be a mapping, got {type(raw).__name__}")
    styles: dict[str, SubgroupStyle] = {}
    for key, entry in raw.items():
        if isinstance(entry, SubgroupStyle):
            styles[str(key)] = entry
            continue
        if not isinstance(entry, Mapping):
            raise LayoutConfigError(f"subgroups[{key!r}] must be a mapping")
        colors = entry.get("colors") or {}
        styles[str(key)] = SubgroupStyle(
            label=str(entry.get("label") or key),
            fill=colors.get("bg") or entry.get("bgColor"),
            border=colors.get("border") or entry.get("borderColor"),
        )
    return styles


def _type_labels(raw: Any) -> dict[Tier, str]:
    labels = dict(DEFAULT_TYPE_LABELS)
    if raw is None:
        return labels
    if not isinstance(raw, Mapping):
        raise LayoutConfigError(f"type_labels must be a mapping, got {type(raw).__name__}")
    for key, label in raw.items():
        try:
            tier = Tier.parse(key)
        except ValueError:
            raise LayoutConfigError(f"type_labels has unknown tier {key!r}") from None
        if label:
            labels[tier] = str(label)
    return labels


def resolve_config(raw: Mapping[str, Any] | LayoutConfig | None = None) -> LayoutConfig:
    """Validate ``raw`` and merge it with the defaults.

    Raises:
        LayoutConfigError: unknown algorithm, negative spacing or any other
            value outside its documented range.
    """
    if isinstance(raw, LayoutConfig):
        return raw
    if raw is None:
        return LayoutConfig()
    if not isinstance(raw, Mapping):
        raise LayoutConfigError(f"Layout config must be a mapping, got {type(raw).__name__}")

    values = _normalise(raw)
    kwargs: dict[str, Any] = {}

    if values.get("algorithm") is not None:
        kwargs["algorithm"] = _algorithm(values["algorithm"])
    if values.get("node_width") is not None:
        kwargs["node_width"] = _number(values["node_width"], "node_width", strict=True)
    kwargs["spacing"] = _spacing(values.get("spacing"))
    kwargs["subgroups"] = _subgroups(values.get("subgroups"))
    kwargs["type_labels"] = _type_labels(values.get("type_labels"))
    hide = values.get("hide_containers", values.get("hide_group_backgrounds"))
    if hide is not None:
        kwargs["hide_containers"] = bool(hide)
    if values.get("edge_routing") is None and values.get("straight_edges") is not None:
        kwargs["edge_routing"] = EdgeRouting.STRAIGHT if values["straight_edges"] else EdgeRouting.CURVED
    elif values.get("edge_routing") is not None:
        try:
            kwargs["edge_routing"] = EdgeRouting(str(values["edge_routing"]).lower())
        except ValueError:
            raise LayoutConfigError(f"Unknown edge routing: {values['edge_routing']!r}") from None

    for name in ("container_width", "max_row_width"):
        if values.get(name) is not None:
            kwargs[name] = _number(values[name], name, strict=True)
    for name in ("node_spacing", "layer_spacing", "rank_tolerance"):
        if values.get(name) is not None:
            kwargs[name] = _number(values[name], name)
    if values.get("center_x") is not None:
        kwargs["center_x"] = _number(values["center_x"], "center_x", minimum=None)
    for name, minimum in (("crossing_iterations", 0), ("max_transpose_passes", 0), ("max_cluster_columns", 1)):
        if values.get(name) is not None:
            kwargs[name] = _integer(values[name], name, minimum=minimum)

    return LayoutConfig(**kwargs)
