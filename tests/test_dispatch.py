"""Tests for the layout dispatcher and the guarantees every strategy shares."""

from __future__ import annotations

import asyncio
import logging

import pytest

from causegraph import layout, layout_async
from causegraph.config import Algorithm
from causegraph.errors import GraphDataError, LayoutConfigError, SolverError
from causegraph.layout import STRATEGIES, check_graph
from causegraph.solvers import Point, Solvers
from causegraph.types import Edge, LayoutResult, Node, NodeKind, SubItem, Tier

ALGORITHMS = ["layered", "ranked", "clustered"]


class BrokenSolver:
    async def solve(self, request):
        raise RuntimeError("solver crashed")


class ForgetfulSolver:
    """Answers for every node but the last one."""

    async def solve(self, request):
        return {node_id: Point(0, 0) for node_id in request.node_ids[:-1]}


class RecordingSolver:
    def __init__(self):
        self.calls = 0

    async def solve(self, request):
        self.calls += 1
        return {node_id: Point(0, 0) for node_id in request.node_ids}


@pytest.fixture
def graph():
    nodes = [
        Node("l1", Tier.LEAF, "Background"),
        Node("c1", Tier.CAUSE, "Compute", sub_items=(SubItem("GPUs"), SubItem("Chips"))),
        Node("c2", Tier.CAUSE, "Funding"),
        Node("i1", Tier.INTERMEDIATE, "Capabilities", subgroup="tech"),
        Node("i2", Tier.INTERMEDIATE, "Deployment", subgroup="tech"),
        Node("i3", Tier.INTERMEDIATE, "Regulation", subgroup="policy"),
        Node("e1", Tier.EFFECT, "Outcome"),
        Node("e2", Tier.EFFECT, "Isolated effect"),
    ]
    edges = [
        Edge("l1", "c1"),
        Edge("c1", "i1"),
        Edge("c2", "i1"),
        Edge("c2", "i2"),
        Edge("i1", "e1"),
        Edge("i3", "e1"),
        Edge("e1", "c2"),  # feedback loop
    ]
    return nodes, edges


class TestRegistry:
    def test_every_algorithm_registered(self):
        assert set(STRATEGIES) == set(Algorithm)


class TestSharedGuarantees:
    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_every_node_placed_once(self, graph, algorithm):
        nodes, edges = graph
        result = layout(nodes, edges, {"algorithm": algorithm})
        content = result.content_nodes()
        assert sorted(n.id for n in content) == sorted(n.id for n in nodes)
        for node in content:
            assert node.width > 0 and node.height > 0
            assert node.tier is node.source.tier

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_tiers_never_inverted(self, graph, algorithm):
        """A higher tier never sits above a lower one, feedback edges included."""
        nodes, edges = graph
        content = layout(nodes, edges, {"algorithm": algorithm}).content_nodes()
        for a in content:
            for b in content:
                if a.tier < b.tier:
                    assert a.y < b.y, (a.id, b.id)

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_containers_first(self, graph, algorithm):
        nodes, edges = graph
        result = layout(nodes, edges, {"algorithm": algorithm})
        flags = [n.is_container for n in result.nodes]
        assert any(flags)
        assert flags == sorted(flags, reverse=True)

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_edges_styled_in_input_order(self, graph, algorithm):
        nodes, edges = graph
        result = layout(nodes, edges, {"algorithm": algorithm})
        assert [e.edge for e in result.edges] == edges

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_deterministic(self, graph, algorithm):
        nodes, edges = graph
        first = layout(nodes, edges, {"algorithm": algorithm})
        second = layout(nodes, edges, {"algorithm": algorithm})
        assert first == second

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_single_node(self, algorithm):
        result = layout([Node("only", Tier.CAUSE, "Only")], [], {"algorithm": algorithm})
        assert [n.id for n in result.content_nodes()] == ["only"]
        assert result.edges == []

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_empty_graph(self, algorithm):
        assert layout([], [], {"algorithm": algorithm}) == LayoutResult()

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_single_tier(self, algorithm):
        """Three unconnected causes share one row and one container."""
        nodes = [Node(f"c{i}", Tier.CAUSE, f"Cause {i}") for i in range(3)]
        result = layout(nodes, [], {"algorithm": algorithm})
        content = result.content_nodes()
        assert len({n.y for n in content}) == 1
        xs = sorted(n.x for n in content)
        assert len(set(xs)) == 3
        (box,) = result.containers()
        for node in content:
            assert box.x <= node.x and node.right <= box.right
            assert box.y < node.y and node.bottom < box.bottom

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_chain_one_container_per_tier(self, algorithm):
        nodes = [
            Node("l", Tier.LEAF, "Leaf"),
            Node("c", Tier.CAUSE, "Cause"),
            Node("i", Tier.INTERMEDIATE, "Intermediate"),
            Node("e", Tier.EFFECT, "Effect"),
        ]
        edges = [Edge("l", "c"), Edge("c", "i"), Edge("i", "e")]
        result = layout(nodes, edges, {"algorithm": algorithm})
        ys = [result.node(node.id).y for node in nodes]
        assert ys == sorted(ys) and len(set(ys)) == 4
        containers = result.containers()
        assert sorted(c.tier for c in containers) == [Tier.LEAF, Tier.CAUSE, Tier.INTERMEDIATE, Tier.EFFECT]
        for box in containers:
            (member,) = [n for n in result.content_nodes() if n.tier is box.tier]
            assert box.x <= member.x and member.right <= box.right
            assert box.y < member.y and member.bottom < box.bottom

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_subgroup_split(self, algorithm):
        """Subgroups a and b each get their own box, side by side."""
        nodes = [
            Node("i1", Tier.INTERMEDIATE, "One", subgroup="a"),
            Node("i2", Tier.INTERMEDIATE, "Two", subgroup="a"),
            Node("i3", Tier.INTERMEDIATE, "Three", subgroup="b"),
            Node("i4", Tier.INTERMEDIATE, "Four", subgroup="b"),
        ]
        result = layout(nodes, [], {"algorithm": algorithm})
        boxes = {c.subgroup: c for c in result.containers() if c.subgroup is not None}
        assert sorted(boxes) == ["a", "b"]
        for node in result.content_nodes():
            box = boxes[node.source.subgroup]
            assert box.x < node.x and node.right < box.right
            assert box.y < node.y and node.bottom < box.bottom
        left, right = sorted(boxes.values(), key=lambda c: c.x)
        assert left.right <= right.x

    @pytest.mark.parametrize("algorithm", ALGORITHMS)
    def test_hide_containers(self, graph, algorithm):
        nodes, edges = graph
        result = layout(nodes, edges, {"algorithm": algorithm, "hideContainers": True})
        assert all(n.kind is NodeKind.CONTENT for n in result.nodes)


class TestGraphChecks:
    def test_duplicate_ids(self):
        with pytest.raises(GraphDataError, match="'a'"):
            layout([Node("a", Tier.CAUSE), Node("a", Tier.EFFECT)], [])

    def test_dangling_edge_dropped_with_warning(self, caplog):
        nodes = [Node("a", Tier.CAUSE), Node("b", Tier.EFFECT)]
        edges = [Edge("a", "b"), Edge("a", "ghost")]
        with caplog.at_level(logging.WARNING, logger="causegraph.layout"):
            result = layout(nodes, edges)
        assert [e.edge for e in result.edges] == [Edge("a", "b")]
        assert "unknown node 'ghost'" in caplog.text

    def test_check_graph_keeps_valid_edges(self):
        nodes = [Node("a", Tier.CAUSE), Node("b", Tier.EFFECT)]
        assert check_graph(nodes, [Edge("a", "b"), Edge("b", "a")]) == [Edge("a", "b"), Edge("b", "a")]

    def test_self_loop_kept(self):
        nodes = [Node("a", Tier.CAUSE)]
        result = layout(nodes, [Edge("a", "a")], {"algorithm": "ranked"})
        assert [e.edge for e in result.edges] == [Edge("a", "a")]


class TestErrors:
    def test_config_error_before_solver(self):
        solver = RecordingSolver()
        with pytest.raises(LayoutConfigError):
            layout([Node("a", Tier.CAUSE)], [], {"algorithm": "force"}, solvers=Solvers(layered=solver))
        assert solver.calls == 0

    def test_config_error_on_empty_graph(self):
        with pytest.raises(LayoutConfigError):
            layout([], [], {"spacing": {"tierGap": -5}})

    @pytest.mark.parametrize(
        "algorithm,solvers",
        [
            ("layered", Solvers(layered=BrokenSolver())),
            ("ranked", Solvers(ranked=BrokenSolver())),
        ],
    )
    def test_solver_failure_wrapped(self, graph, algorithm, solvers):
        nodes, edges = graph
        with pytest.raises(SolverError, match="solver crashed") as info:
            layout(nodes, edges, {"algorithm": algorithm}, solvers=solvers)
        assert isinstance(info.value.__cause__, RuntimeError)

    @pytest.mark.parametrize(
        "algorithm,solvers",
        [
            ("layered", Solvers(layered=ForgetfulSolver())),
            ("ranked", Solvers(ranked=ForgetfulSolver())),
        ],
    )
    def test_missing_position(self, graph, algorithm, solvers):
        nodes, edges = graph
        with pytest.raises(SolverError, match="e2"):
            layout(nodes, edges, {"algorithm": algorithm}, solvers=solvers)

    def test_clustered_needs_no_solver(self, graph):
        nodes, edges = graph
        solvers = Solvers(layered=BrokenSolver(), ranked=BrokenSolver())
        result = layout(nodes, edges, {"algorithm": "clustered"}, solvers=solvers)
        assert len(result.content_nodes()) == len(nodes)


class TestAsync:
    def test_async_matches_sync(self, graph):
        nodes, edges = graph
        expected = layout(nodes, edges, {"algorithm": "ranked"})
        assert asyncio.run(layout_async(nodes, edges, {"algorithm": "ranked"})) == expected

    def test_concurrent_layouts(self, graph):
        """Layouts awaited together give the same results as one at a time."""
        nodes, edges = graph

        async def main():
            return await asyncio.gather(*(layout_async(nodes, edges, {"algorithm": a}) for a in ALGORITHMS))

        results = asyncio.run(main())
        assert results == [layout(nodes, edges, {"algorithm": a}) for a in ALGORITHMS]
