"""SVG renderer: renders a LayoutResult to an SVG string."""

from __future__ import annotations

from causegraph.renderers.base import canvas_bounds
from causegraph.types import EdgeRouting, LayoutResult, NodeKind, PositionedNode, StyledEdge

# ─── Constants ──────────────────────────────────────────────────────────────

FONT_SIZE = 14
FONT_FAMILY = "sans-serif"
PADDING = 20  # canvas padding in pixels
LINE_GAP = 2

_NODE_STYLE = 'fill="white" stroke="#334155" stroke-width="1.5"'
_CONTAINER_STROKE = 'stroke-width="1" stroke-dasharray="4 2"'


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _font(size: int = FONT_SIZE) -> str:
    return f'font-family="{FONT_FAMILY}" font-size="{size}"'


def _num(value: float) -> str:
    """Fixed two-decimal formatting without trailing zeros, for stable output."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _marker_id(edge: StyledEdge, markers: list[tuple[str, float]]) -> str:
    return f"arrow-{markers.index((edge.stroke, edge.marker_size))}"


# ─── Container Rendering ────────────────────────────────────────────────────


def _render_container(node: PositionedNode) -> str:
    fill = node.fill or "none"
    border = node.border or "#94a3b8"
    rx = 12 if node.kind is NodeKind.CLUSTER else 8
    font = _font(FONT_SIZE - 2)
    x, y = _num(node.x), _num(node.y)
    parts = [
        f'<rect x="{x}" y="{y}" width="{_num(node.width)}" height="{_num(node.height)}" rx="{rx}" '
        f'fill="{_escape(fill)}" stroke="{_escape(border)}" {_CONTAINER_STROKE}/>',
    ]
    if node.label:
        parts.append(
            f'<text x="{_num(node.x + 10)}" y="{_num(node.y + FONT_SIZE + 4)}" {font} fill="#475569">'
            f"{_escape(node.label)}</text>"
        )
    return "\n".join(parts)


# ─── Node Rendering ─────────────────────────────────────────────────────────


def _node_lines(node: PositionedNode) -> list[str]:
    lines = [node.label or node.id]
    if node.source is not None:
        lines.extend(item.label for item in node.source.sub_items)
    return lines


def _render_node(node: PositionedNode) -> str:
    cx = node.x + node.width / 2
    cy = node.y + node.height / 2
    lines = [_escape(line) for line in _node_lines(node)]

    font = _font()
    if len(lines) == 1:
        label_svg = (
            f'<text x="{_num(cx)}" y="{_num(cy)}" dominant-baseline="central" text-anchor="middle" {font}>'
            f"{lines[0]}</text>"
        )
    else:
        total_h = len(lines) * (FONT_SIZE + LINE_GAP)
        start_y = cy - total_h / 2 + FONT_SIZE / 2
        tspans = "".join(
            f'<tspan x="{_num(cx)}" y="{_num(start_y + i * (FONT_SIZE + LINE_GAP))}">{line}</tspan>'
            for i, line in enumerate(lines)
        )
        label_svg = f'<text text-anchor="middle" {font}>{tspans}</text>'

    shape_svg = (
        f'<rect x="{_num(node.x)}" y="{_num(node.y)}" width="{_num(node.width)}" '
        f'height="{_num(node.height)}" rx="6" {_NODE_STYLE}/>'
    )
    return f"{shape_svg}\n{label_svg}"


# ─── Edge Rendering ─────────────────────────────────────────────────────────


def _anchors(src: PositionedNode, tgt: PositionedNode) -> tuple[float, float, float, float]:
    """Bottom-center of the source to top-center of the target, or the reverse when it points up."""
    sx, tx = src.x + src.width / 2, tgt.x + tgt.width / 2
    if tgt.y >= src.bottom:
        return sx, src.bottom, tx, tgt.y
    if src.y >= tgt.bottom:
        return sx, src.y, tx, tgt.bottom
    return sx, src.y + src.height / 2, tx, tgt.y + tgt.height / 2


def _render_edge(edge: StyledEdge, src: PositionedNode, tgt: PositionedNode, marker: str) -> str:
    x1, y1, x2, y2 = _anchors(src, tgt)
    if edge.routing is EdgeRouting.STRAIGHT:
        path = f"M {_num(x1)} {_num(y1)} L {_num(x2)} {_num(y2)}"
    else:
        mid = (y1 + y2) / 2
        path = f"M {_num(x1)} {_num(y1)} C {_num(x1)} {_num(mid)}, {_num(x2)} {_num(mid)}, {_num(x2)} {_num(y2)}"

    dash = f' stroke-dasharray="{edge.dash}"' if edge.dash else ""
    parts = [
        f'<path d="{path}" fill="none" stroke="{edge.stroke}" stroke-width="{_num(edge.stroke_width)}" '
        f'stroke-opacity="{_num(edge.opacity)}"{dash} marker-end="url(#{marker})"/>',
    ]
    if edge.edge.label:
        font = _font(FONT_SIZE - 2)
        parts.append(
            f'<text x="{_num((x1 + x2) / 2)}" y="{_num((y1 + y2) / 2 - 6)}" text-anchor="middle" {font} '
            f'fill="#334155">{_escape(edge.edge.label)}</text>'
        )
    return "\n".join(parts)


def _render_markers(markers: list[tuple[str, float]]) -> list[str]:
    parts = ["<defs>"]
    for i, (stroke, size) in enumerate(markers):
        half = size / 2
        parts.append(
            f'  <marker id="arrow-{i}" markerWidth="{_num(size)}" markerHeight="{_num(size)}" '
            f'refX="{_num(size)}" refY="{_num(half)}" orient="auto" markerUnits="userSpaceOnUse">'
        )
        parts.append(f'    <polygon points="0 0, {_num(size)} {_num(half)}, 0 {_num(size)}" fill="{stroke}"/>')
        parts.append("  </marker>")
    parts.append("</defs>")
    return parts


# ─── Public Renderer ────────────────────────────────────────────────────────


class SvgRenderer:
    """SVG renderer: consumes a LayoutResult, produces an SVG string.

    Containers are drawn first, then edges, then content nodes on top.
    """

    def render(self, result: LayoutResult) -> str:
        if not result.nodes:
            return ""

        containers = result.containers()
        content = result.content_nodes()
        by_id = {n.id: n for n in content}
        edges = [e for e in result.edges if e.source in by_id and e.target in by_id]

        min_x, min_y, svg_w, svg_h = canvas_bounds(result, PADDING)

        markers = sorted({(e.stroke, e.marker_size) for e in edges})

        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{_num(svg_w)}" height="{_num(svg_h)}" '
            f'viewBox="{_num(min_x)} {_num(min_y)} {_num(svg_w)} {_num(svg_h)}">',
        ]
        if markers:
            parts.extend(_render_markers(markers))
        parts.append(
            f'<rect x="{_num(min_x)}" y="{_num(min_y)}" width="{_num(svg_w)}" height="{_num(svg_h)}" fill="white"/>'
        )

        for node in containers:
            parts.append(_render_container(node))

        # Sorted so the output does not depend on edge input order.
        for edge in sorted(edges, key=lambda e: (e.source, e.target, e.edge.key)):
            parts.append(_render_edge(edge, by_id[edge.source], by_id[edge.target], _marker_id(edge, markers)))

        for node in content:
            parts.append(_render_node(node))

        parts.append("</svg>")
        return "\n".join(parts)
