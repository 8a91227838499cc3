"""Kdtreex: balanced KD-tree for exact nearest-neighbour queries.

Quick Start
-----------
>>> from kdtreex import SharedTree, build_tree, nearest_neighbor
>>>
>>> # Synchronous use on a privately owned tree
>>> tree = build_tree(points, ids)
>>> hit = nearest_neighbor(tree, query)
>>> hit.id, hit.distance_squared
>>>
>>> # Shared across asyncio tasks
>>> shared = SharedTree.from_points(points, ids)
>>> hit = await shared.nearest(query)
>>> await shared.insert("new-id", point)
>>> await shared.save(stream)

Classes
-------
SharedTree : Read/write-locked handle for concurrent readers and one writer.
KDTree : Owning handle for a root node and its dimensionality.
Neighbor : Result of a nearest-neighbour query.
"""

from importlib.metadata import version as _pkg_version

try:
    __version__ = _pkg_version("kdtreex")
except Exception:  # pragma: no cover - best effort during local development
    __version__ = "0.1.0"

# Primary user-facing API
from .api import SharedTree, load_tree

from .algo import Neighbor, build_tree, distance_squared, insert_point, nearest_neighbor
from .core import KDNode, KDTree, TreeStats, dumps, load, loads, save
from .exceptions import InputContractError, KDTreeError, TreeParseError, TreeShapeError
from .runtime import ReadWriteLock

__all__ = [
    # Primary API
    "__version__",
    "SharedTree",
    "load_tree",
    # Algorithms
    "build_tree",
    "nearest_neighbor",
    "insert_point",
    "distance_squared",
    "Neighbor",
    # Core
    "KDNode",
    "KDTree",
    "TreeStats",
    "dumps",
    "loads",
    "save",
    "load",
    "ReadWriteLock",
    # Errors
    "KDTreeError",
    "InputContractError",
    "TreeParseError",
    "TreeShapeError",
]
