"""What every preview renderer shares: the protocol and canvas bounds."""

from __future__ import annotations

from typing import NamedTuple, Protocol

from causegraph.types import LayoutResult


class Bounds(NamedTuple):
    min_x: float
    min_y: float
    width: float
    height: float


def canvas_bounds(result: LayoutResult, padding: float) -> Bounds:
    """Smallest box around every positioned node, grown by ``padding`` on each side."""
    min_x = min(n.x for n in result.nodes) - padding
    min_y = min(n.y for n in result.nodes) - padding
    max_x = max(n.right for n in result.nodes) + padding
    max_y = max(n.bottom for n in result.nodes) + padding
    return Bounds(min_x, min_y, max_x - min_x, max_y - min_y)


class Renderer(Protocol):
    def render(self, result: LayoutResult) -> str:
        """Return the drawing of ``result``; an empty result gives ``""``."""
        ...
