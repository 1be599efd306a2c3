"""End-to-end: load each graph under graphs/, lay it out with every algorithm, render SVG."""

from pathlib import Path

import pytest

from causegraph import from_yaml, layout
from causegraph.renderers import SvgRenderer, canvas_bounds
from causegraph.types import LayoutResult

GRAPHS_DIR = Path(__file__).parent / "graphs"
GRAPHS = sorted(GRAPHS_DIR.glob("*.yaml"))
ALGORITHMS = ["layered", "ranked", "clustered"]


def render(path: Path, algorithm: str) -> str:
    nodes, edges = from_yaml(path.read_text())
    return SvgRenderer().render(layout(nodes, edges, {"algorithm": algorithm}))


@pytest.mark.parametrize("algorithm", ALGORITHMS)
@pytest.mark.parametrize("path", GRAPHS, ids=[p.stem for p in GRAPHS])
def test_renders_every_label(path: Path, algorithm: str) -> None:
    """Every node label (escaped) appears in the SVG."""
    svg = render(path, algorithm)
    assert svg.startswith("<svg ")
    assert svg.endswith("</svg>")
    nodes, _ = from_yaml(path.read_text())
    for node in nodes:
        escaped = node.label.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        assert escaped in svg, node.id


@pytest.mark.parametrize("algorithm", ALGORITHMS)
@pytest.mark.parametrize("path", GRAPHS, ids=[p.stem for p in GRAPHS])
def test_output_is_stable(path: Path, algorithm: str) -> None:
    assert render(path, algorithm) == render(path, algorithm)


@pytest.mark.parametrize("algorithm", ALGORITHMS)
def test_edge_styles(algorithm: str) -> None:
    """Mixed effects are dashed, decreases are tinted, edge labels are drawn."""
    svg = render(GRAPHS_DIR / "ai_risk.yaml", algorithm)
    assert svg.count('stroke-dasharray="5,5"') == 1
    assert 'stroke="#ef4444"' in svg
    assert ">reduces</text>" in svg
    assert svg.count("<path ") == 8


def test_empty_result() -> None:
    assert SvgRenderer().render(LayoutResult()) == ""


def test_viewbox_covers_every_node() -> None:
    nodes, edges = from_yaml((GRAPHS_DIR / "chain.yaml").read_text())
    result = layout(nodes, edges)
    bounds = canvas_bounds(result, 20)
    for node in result.nodes:
        assert bounds.min_x < node.x and node.right < bounds.min_x + bounds.width
        assert bounds.min_y < node.y and node.bottom < bounds.min_y + bounds.height
    svg = SvgRenderer().render(result)
    assert f'width="{bounds.width:g}"' in svg
