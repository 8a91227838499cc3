from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import numpy as np

from kdtreex.core.tree import KDNode, KDTree, as_point
from kdtreex.exceptions import InputContractError


@dataclass(frozen=True)
class Neighbor:
    """Closest stored point to a query, with its squared Euclidean distance."""

    id: str
    point: np.ndarray
    distance_squared: float


def distance_squared(p1: Any, p2: Any) -> float:
    """Sum of per-axis squared differences, accumulated in float64."""

    a = np.asarray(p1, dtype=np.float64)
    b = np.asarray(p2, dtype=np.float64)
    if a.shape != b.shape:
        raise InputContractError(f"cannot compare points of shape {a.shape} and {b.shape}")
    diff = a - b
    return float(np.dot(diff, diff))


def _branch_and_bound(root: KDNode, target: np.ndarray) -> Tuple[KDNode, float]:
    best_node = root
    best = math.inf
    # Each entry is a far subtree and the squared gap between the query and the
    # splitting plane that separates it from the query.
    pending: List[Tuple[KDNode, float]] = [(root, 0.0)]
    while pending:
        node, plane_gap = pending.pop()
        if plane_gap >= best:
            continue
        current: Optional[KDNode] = node
        owns_best = False
        while current is not None:
            diff = current.point - target
            dist = float(np.dot(diff, diff))
            # Along one near path the deeper node wins a tie, as it would when
            # the near child's answer is computed before its parent's.
            if dist < best or (owns_best and dist == best):
                best = dist
                best_node = current
                owns_best = True
            offset = float(target[current.axis]) - float(current.point[current.axis])
            if offset < 0:
                near, far = current.left, current.right
            else:
                near, far = current.right, current.left
            if far is not None:
                pending.append((far, offset * offset))
            current = near
    return best_node, best


def nearest_neighbor(tree: KDTree, query: Any) -> Optional[Neighbor]:
    """Return the stored point closest to `query`, or ``None`` for an empty tree.

    The near side of every split is explored first; a far subtree is visited
    only while the squared distance to its splitting plane is smaller than the
    best squared distance found so far. Candidates compete on squared distance
    alone; a far subtree replaces the current best only when strictly closer.
    """

    if tree.root is None:
        return None
    target = as_point(query, dimension=tree.dimension, what="query").astype(np.float64)
    node, best = _branch_and_bound(tree.root, target)
    return Neighbor(id=node.id, point=node.point.copy(), distance_squared=best)
