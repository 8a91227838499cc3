"""Core data structures and persistence primitives for the KD-tree."""

from .persistence import NodeRecord, dumps, load, loads, save
from .tree import POINT_DTYPE, KDNode, KDTree, TreeStats, as_point, as_points

__all__ = [
    "POINT_DTYPE",
    "KDNode",
    "KDTree",
    "TreeStats",
    "as_point",
    "as_points",
    "NodeRecord",
    "dumps",
    "loads",
    "save",
    "load",
]
