from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

import numpy as np

from kdtreex.core.tree import KDNode, KDTree, as_points, coerce_ids
from kdtreex.exceptions import InputContractError
from kdtreex.logging import get_logger

LOGGER = get_logger("algo.build")


def _build_nodes(points: np.ndarray, ids: List[str], depth: int) -> Optional[KDNode]:
    if points.shape[0] == 0:
        return None
    k = points.shape[1]
    axis = depth % k

    # Stable sort keeps ties in input order; ids move with their points.
    order = np.argsort(points[:, axis], kind="stable")
    points = points[order]
    ids = [ids[int(i)] for i in order]

    median = points.shape[0] // 2
    return KDNode(
        id=ids[median],
        point=points[median].copy(),
        axis=axis,
        left=_build_nodes(points[:median], ids[:median], depth + 1),
        right=_build_nodes(points[median + 1 :], ids[median + 1 :], depth + 1),
    )


def build_tree(points: Any, ids: Sequence[str], *, depth: int = 0) -> KDTree:
    """Build a balanced KD-tree from a batch of points and their identifiers.

    Parameters
    ----------
    points:
        Array-like of shape ``(n, k)``; every point must have the same length.
    ids:
        ``n`` string identifiers, aligned with ``points``.
    depth:
        Depth assigned to the root. The root splits on ``depth % k`` and each
        level below it advances the axis by one.
    """

    if depth < 0:
        raise InputContractError(f"depth must be non-negative, got {depth}")
    batch = as_points(points)
    id_list = coerce_ids(ids, batch.shape[0])
    if batch.shape[0] == 0:
        raise InputContractError("cannot build a tree from an empty batch")

    root = _build_nodes(batch, id_list, depth)
    tree = KDTree(root=root, dimension=int(batch.shape[1]), _size=int(batch.shape[0]))
    if LOGGER.isEnabledFor(logging.DEBUG):
        LOGGER.debug(
            "Built tree with %d points of dimension %d (height %d)",
            len(tree),
            tree.dimension,
            tree.height(),
        )
    return tree
