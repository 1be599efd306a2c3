"""Solver protocols and the request shapes the adapters hand them.

Both adapters talk to their solver through a single awaited call. A solver
is stateless between calls, so one instance can serve concurrent layouts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol


@dataclass(frozen=True)
class Point:
    """A 2D point in pixel coordinates."""

    x: float
    y: float


class LayerConstraint(str, Enum):
    FIRST = "first"
    LAST = "last"


@dataclass(frozen=True)
class SolverEdge:
    """A directed edge as seen by a solver.

    ``weight`` biases straightening, ``minlen`` is the minimum rank span.
    Synthetic ordering edges use weight 0.
    """

    source: str
    target: str
    weight: float = 1.0
    minlen: int = 1


@dataclass
class LayeredRequest:
    """Input for a layered solver with hard first/last layer constraints."""

    node_ids: list[str]
    edges: list[SolverEdge]
    sizes: dict[str, tuple[float, float]]
    constraints: dict[str, LayerConstraint] = field(default_factory=dict)
    node_spacing: float = 40
    layer_spacing: float = 80


@dataclass
class RankRequest:
    """Input for a rank-assignment solver.

    ``floors`` maps node id to an ordinal band: every node of a higher band
    must rank strictly below every node of a lower one.
    """

    node_ids: list[str]
    edges: list[SolverEdge]
    sizes: dict[str, tuple[float, float]]
    floors: dict[str, int] = field(default_factory=dict)
    node_sep: float = 40
    rank_sep: float = 60
    margin: float = 10
    ranker: str = "tight-tree"
    acyclicer: str = "greedy"
    align: str = "UL"


class LayeredSolver(Protocol):
    async def solve(self, request: LayeredRequest) -> dict[str, Point]:
        """Return the top-left corner of every requested node."""
        ...


class RankSolver(Protocol):
    async def solve(self, request: RankRequest) -> dict[str, Point]:
        """Return the center of every requested node."""
        ...
