"""Static previews of a layout result."""

from causegraph.renderers.base import Bounds, Renderer, canvas_bounds
from causegraph.renderers.svg import SvgRenderer

__all__ = ["Bounds", "Renderer", "SvgRenderer", "canvas_bounds"]
