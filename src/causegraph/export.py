"""YAML export of the input graph.

The export describes the graph itself, not any layout of it, so it is the
same whichever strategy drew the diagram. Optional fields left at their
defaults are omitted.
"""

from __future__ import annotations

from typing import Any

import yaml

from causegraph.errors import GraphDataError
from causegraph.types import Edge, Node, NodeRole, Strength, Valence


def node_to_dict(node: Node) -> dict[str, Any]:
    data: dict[str, Any] = {"id": node.id, "tier": node.tier.slug, "label": node.label}
    if node.subgroup:
        data["subgroup"] = node.subgroup
    if node.order is not None:
        data["order"] = node.order
    if node.sub_items:
        data["subItems"] = [
            {"label": item.label, "text": item.text} if item.text else {"label": item.label}
            for item in node.sub_items
        ]
    if node.role is not NodeRole.CONTENT:
        data["role"] = node.role.value
    if node.description:
        data["description"] = node.description
    if node.child_count:
        data["childCount"] = node.child_count
    if node.preview_items:
        data["previewItems"] = list(node.preview_items)
    if node.confidence is not None:
        data["confidence"] = node.confidence
    if node.confidence_label:
        data["confidenceLabel"] = node.confidence_label
    if node.details:
        data["details"] = node.details
    if node.related_concepts:
        data["relatedConcepts"] = list(node.related_concepts)
    if node.sources:
        data["sources"] = list(node.sources)
    return data


def edge_to_dict(edge: Edge) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if edge.id:
        data["id"] = edge.id
    data["source"] = edge.source
    data["target"] = edge.target
    if edge.strength is not Strength.MEDIUM:
        data["strength"] = edge.strength.value
    if edge.confidence is not None:
        data["confidence"] = edge.confidence.value
    if edge.effect is not Valence.INCREASES:
        data["effect"] = edge.effect.value
    if edge.label:
        data["label"] = edge.label
    return data


def graph_to_dict(nodes: list[Node], edges: list[Edge]) -> dict[str, list[dict[str, Any]]]:
    return {
        "nodes": [node_to_dict(node) for node in nodes],
        "edges": [edge_to_dict(edge) for edge in edges],
    }


def to_yaml(nodes: list[Node], edges: list[Edge]) -> str:
    """Serialise the graph as YAML with ``nodes`` and ``edges`` lists."""
    return yaml.safe_dump(graph_to_dict(nodes, edges), sort_keys=False, allow_unicode=True)


def from_yaml(text: str) -> tuple[list[Node], list[Edge]]:
    """Parse a document written by ``to_yaml``.

    Raises:
        GraphDataError: the document is not a mapping, or an entry is
            missing a required field.
    """
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise GraphDataError("Graph document must be a mapping with 'nodes' and 'edges'")
    try:
        nodes = [Node.from_dict(item) for item in data.get("nodes") or []]
        edges = [Edge.from_dict(item) for item in data.get("edges") or []]
    except GraphDataError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise GraphDataError(f"Malformed graph document: {exc}") from exc
    return nodes, edges
