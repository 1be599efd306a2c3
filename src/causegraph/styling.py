"""Edge styling derived from strength and valence."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from causegraph.types import Edge, EdgeRouting, Strength, StyledEdge, Valence

STROKE_WIDTHS: dict[Strength, float] = {
    Strength.STRONG: 3.5,
    Strength.MEDIUM: 2.0,
    Strength.WEAK: 1.2,
}

# Lighter strokes for the denser rank-based layout.
RANKED_STROKE_WIDTHS: dict[Strength, float] = {
    Strength.STRONG: 2.5,
    Strength.MEDIUM: 1.5,
    Strength.WEAK: 1.0,
}

NEUTRAL_STROKE = "#64748b"
DECREASE_STROKE = "#ef4444"
MIXED_DASH = "5,5"
EDGE_OPACITY = 0.7
MARKER_BASE_SIZE = 16


def style_edge(
    edge: Edge,
    widths: Mapping[Strength, float] = STROKE_WIDTHS,
    routing: EdgeRouting = EdgeRouting.CURVED,
) -> StyledEdge:
    width = widths[edge.strength]
    return StyledEdge(
        edge=edge,
        stroke=DECREASE_STROKE if edge.effect is Valence.DECREASES else NEUTRAL_STROKE,
        stroke_width=width,
        dash=MIXED_DASH if edge.effect is Valence.MIXED else None,
        opacity=EDGE_OPACITY,
        marker_size=MARKER_BASE_SIZE + width,
        routing=routing,
    )


def style_edges(
    edges: Iterable[Edge | StyledEdge],
    *,
    widths: Mapping[Strength, float] = STROKE_WIDTHS,
    routing: EdgeRouting | None = None,
) -> list[StyledEdge]:
    """Style every edge from its strength and valence alone.

    Already-styled edges are restyled from their underlying edge, keeping
    their routing unless ``routing`` is given, so styling twice is the same
    as styling once.
    """
    styled: list[StyledEdge] = []
    for item in edges:
        if isinstance(item, StyledEdge):
            styled.append(style_edge(item.edge, widths, routing or item.routing))
        else:
            styled.append(style_edge(item, widths, routing or EdgeRouting.CURVED))
    return styled
