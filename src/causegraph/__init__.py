"""causegraph: layout engine for tiered cause → intermediate → effect diagrams."""

from causegraph.config import Algorithm, LayoutConfig, Spacing, SubgroupStyle, resolve_config
from causegraph.errors import GraphDataError, LayoutConfigError, LayoutError, SolverError
from causegraph.export import from_yaml, graph_to_dict, to_yaml
from causegraph.geometry import Size, estimate
from causegraph.layout import STRATEGIES, layout, layout_async
from causegraph.solvers import Solvers
from causegraph.styling import style_edges
from causegraph.types import (
    Confidence,
    Edge,
    EdgeRouting,
    LayoutResult,
    Node,
    NodeKind,
    NodeRole,
    PositionedNode,
    Strength,
    StyledEdge,
    SubItem,
    Tier,
    Valence,
)

__all__ = [
    "Algorithm",
    "Confidence",
    "Edge",
    "EdgeRouting",
    "GraphDataError",
    "LayoutConfig",
    "LayoutConfigError",
    "LayoutError",
    "LayoutResult",
    "Node",
    "NodeKind",
    "NodeRole",
    "PositionedNode",
    "STRATEGIES",
    "Size",
    "SolverError",
    "Solvers",
    "Spacing",
    "Strength",
    "StyledEdge",
    "SubItem",
    "SubgroupStyle",
    "Tier",
    "Valence",
    "estimate",
    "from_yaml",
    "graph_to_dict",
    "layout",
    "layout_async",
    "resolve_config",
    "style_edges",
    "to_yaml",
]
