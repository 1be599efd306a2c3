"""External solver seam for the layered and ranked strategies."""

from __future__ import annotations

from dataclasses import dataclass, field

from causegraph.solvers.base import (
    LayerConstraint,
    LayeredRequest,
    LayeredSolver,
    Point,
    RankRequest,
    RankSolver,
    SolverEdge,
)
from causegraph.solvers.layered import IgraphLayeredSolver
from causegraph.solvers.sugiyama import SugiyamaRankSolver


@dataclass(frozen=True)
class Solvers:
    """Solver instances handed to the layout strategies.

    Solvers hold no per-call state, so the module-level defaults are shared
    by every layout call in the process.
    """

    layered: LayeredSolver = field(default_factory=IgraphLayeredSolver)
    ranked: RankSolver = field(default_factory=SugiyamaRankSolver)


DEFAULT_SOLVERS = Solvers()

__all__ = [
    "DEFAULT_SOLVERS",
    "IgraphLayeredSolver",
    "LayerConstraint",
    "LayeredRequest",
    "LayeredSolver",
    "Point",
    "RankRequest",
    "RankSolver",
    "SolverEdge",
    "Solvers",
    "SugiyamaRankSolver",
]
