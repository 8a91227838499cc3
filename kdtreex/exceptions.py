"""Error taxonomy shared by the builder, searcher, mutator and persistence layers.

I/O failures are not represented here: the stream's own ``OSError`` reaches
the caller unchanged.
"""

from __future__ import annotations


class KDTreeError(Exception):
    """Base class for errors raised by kdtreex."""


class InputContractError(KDTreeError, ValueError):
    """Raised when caller-supplied points, ids or queries break a precondition."""


class TreeParseError(KDTreeError, ValueError):
    """Raised when persisted bytes cannot be decoded into a tree."""


class TreeShapeError(TreeParseError):
    """Raised when a decoded tree violates a structural invariant."""


__all__ = [
    "KDTreeError",
    "InputContractError",
    "TreeParseError",
    "TreeShapeError",
]
