"""Exception hierarchy raised by the node/edge computation core."""

from __future__ import annotations


class IntellGraphError(Exception):
    """Base class for every error raised by IntellGraph."""


class ShapeMismatchError(IntellGraphError, ValueError):
    """Matrix dimensions of a node and an edge disagree."""


class MissingStrategyError(IntellGraphError, LookupError):
    """A strategy function was required but not configured."""


class IllegalTransitionError(IntellGraphError, RuntimeError):
    """A node was asked to move back to an earlier activation state."""


class ChainError(IntellGraphError, ValueError):
    """Links handed to a chain do not form a strict path."""


__all__ = [
    "ChainError",
    "IllegalTransitionError",
    "IntellGraphError",
    "MissingStrategyError",
    "ShapeMismatchError",
]
