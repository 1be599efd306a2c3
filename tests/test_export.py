"""Tests for the YAML graph export."""

from __future__ import annotations

import pytest
import yaml

from causegraph.errors import GraphDataError
from causegraph.export import edge_to_dict, from_yaml, node_to_dict, to_yaml
from causegraph.types import Confidence, Edge, Node, NodeRole, Strength, SubItem, Tier, Valence


class TestNodeToDict:
    def test_defaults_omitted(self):
        assert node_to_dict(Node("a", Tier.CAUSE, "A")) == {"id": "a", "tier": "cause", "label": "A"}

    def test_optional_fields(self):
        node = Node(
            "a",
            Tier.INTERMEDIATE,
            "A",
            subgroup="ai",
            order=2,
            sub_items=(SubItem("x", "detail"), SubItem("y")),
            role=NodeRole.CLUSTER,
            preview_items=("p",),
        )
        assert node_to_dict(node) == {
            "id": "a",
            "tier": "intermediate",
            "label": "A",
            "subgroup": "ai",
            "order": 2,
            "subItems": [{"label": "x", "text": "detail"}, {"label": "y"}],
            "role": "cluster",
            "previewItems": ["p"],
        }

    def test_annotations(self):
        """Confidence, details, related concepts and sources are carried through."""
        node = Node(
            "a",
            Tier.CAUSE,
            "A",
            confidence=0.7,
            confidence_label="likely",
            details="Longer note",
            related_concepts=("alignment",),
            sources=("paper", "survey"),
        )
        assert node_to_dict(node) == {
            "id": "a",
            "tier": "cause",
            "label": "A",
            "confidence": 0.7,
            "confidenceLabel": "likely",
            "details": "Longer note",
            "relatedConcepts": ["alignment"],
            "sources": ["paper", "survey"],
        }

    def test_zero_confidence_kept(self):
        assert node_to_dict(Node("a", Tier.CAUSE, "A", confidence=0.0))["confidence"] == 0.0


class TestEdgeToDict:
    def test_defaults_omitted(self):
        assert edge_to_dict(Edge("a", "b")) == {"source": "a", "target": "b"}

    def test_styled_edge(self):
        edge = Edge("a", "b", strength=Strength.STRONG, effect=Valence.MIXED, label="maybe", id="e1")
        assert edge_to_dict(edge) == {
            "id": "e1",
            "source": "a",
            "target": "b",
            "strength": "strong",
            "effect": "mixed",
            "label": "maybe",
        }

    def test_confidence_between_strength_and_effect(self):
        edge = Edge("a", "b", strength=Strength.WEAK, effect=Valence.DECREASES, confidence=Confidence.LOW)
        data = edge_to_dict(edge)
        assert list(data) == ["source", "target", "strength", "confidence", "effect"]
        assert data["confidence"] == "low"


class TestYaml:
    def test_round_trip(self):
        nodes = [
            Node("l", Tier.LEAF, "Leaf"),
            Node("c", Tier.CAUSE, "Cause – ünïcode", sub_items=(SubItem("s", "t"),)),
            Node("e", Tier.EFFECT, "Effect", subgroup="x", order=1.5),
        ]
        edges = [Edge("l", "c"), Edge("c", "e", strength=Strength.WEAK, effect=Valence.DECREASES)]
        assert from_yaml(to_yaml(nodes, edges)) == (nodes, edges)

    def test_round_trip_annotations(self):
        nodes = [
            Node(
                "c",
                Tier.CAUSE,
                "Cause",
                description="Short",
                confidence=0.85,
                confidence_label="high",
                details='Quoted "detail"',
                related_concepts=("x", "y"),
                sources=("https://example.org/a",),
            ),
            Node("e", Tier.EFFECT, "Effect"),
        ]
        edges = [Edge("c", "e", confidence=Confidence.HIGH, label="drives")]
        assert from_yaml(to_yaml(nodes, edges)) == (nodes, edges)

    def test_loader_accepts_snake_case_annotations(self):
        text = (
            "nodes:\n  - id: a\n    tier: cause\n    confidence: 1\n    confidence_label: sure\n"
            "    related_concepts: [r]\n"
            "edges:\n  - source: a\n    target: a\n    confidence: medium\n"
        )
        (node,), (edge,) = from_yaml(text)
        assert node.confidence == 1.0
        assert node.confidence_label == "sure"
        assert node.related_concepts == ("r",)
        assert edge.confidence is Confidence.MEDIUM

    def test_document_shape(self):
        """The export lists nodes then edges, keys in a readable order."""
        text = to_yaml([Node("a", Tier.CAUSE, "A")], [])
        assert text.startswith("nodes:")
        assert yaml.safe_load(text) == {"nodes": [{"id": "a", "tier": "cause", "label": "A"}], "edges": []}

    def test_empty_document(self):
        assert from_yaml("") == ([], [])

    def test_loader_accepts_type_and_nested_content(self):
        text = "nodes:\n  - id: a\n    type: effect\n    content:\n      label: A\n      items: [one]\n"
        (node,), edges = from_yaml(text)
        assert node == Node("a", Tier.EFFECT, "A", sub_items=(SubItem("one"),))
        assert edges == []

    @pytest.mark.parametrize(
        "text",
        [
            "- just\n- a list\n",
            "nodes:\n  - label: no id\n    tier: cause\n",
            "nodes:\n  - id: a\n    tier: outcome\n",
            "nodes:\n  - id: a\n",
            "edges:\n  - source: a\n    target: b\n    strength: huge\n",
            "edges:\n  - source: a\n",
        ],
    )
    def test_malformed(self, text):
        with pytest.raises(GraphDataError):
            from_yaml(text)
