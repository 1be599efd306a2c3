"""Exception hierarchy for the layout engine."""

from __future__ import annotations


class LayoutError(Exception):
    """Base class for every error raised by causegraph."""


class LayoutConfigError(LayoutError, ValueError):
    """Invalid layout configuration (unknown algorithm, negative spacing, ...).

    Raised while resolving the configuration, before any layout work starts.
    """


class GraphDataError(LayoutError, ValueError):
    """Input graph cannot be laid out as given (duplicate node ids, unknown tier)."""


class SolverError(LayoutError, RuntimeError):
    """An external layout solver failed. The original exception is chained."""
