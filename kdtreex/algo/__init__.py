"""Algorithmic kernels for construction, nearest-neighbour search, and insertion."""

from .build import build_tree
from .insert import insert_point
from .nearest import Neighbor, distance_squared, nearest_neighbor

__all__ = [
    "build_tree",
    "insert_point",
    "Neighbor",
    "distance_squared",
    "nearest_neighbor",
]
