from __future__ import annotations

from typing import Any

from kdtreex.core.tree import KDNode, KDTree, as_point
from kdtreex.exceptions import InputContractError
from kdtreex.logging import get_logger

LOGGER = get_logger("algo.insert")


def insert_point(tree: KDTree, point_id: str, point: Any) -> KDNode:
    """Attach `point` as a new leaf and return it.

    The walk compares coordinates on each node's own axis, going left when the
    new coordinate is strictly smaller and right otherwise. Existing nodes
    never move and the tree is not rebalanced, so sorted insertions degrade it
    towards a list.
    """

    if not isinstance(point_id, str):
        raise InputContractError(f"id must be a string, got {type(point_id).__name__}")
    new_point = as_point(point, dimension=tree.dimension)

    if tree.root is None:
        leaf = KDNode(id=point_id, point=new_point, axis=0)
        tree.root = leaf
        tree.dimension = int(new_point.shape[0])
        tree._record_insertion()
        LOGGER.debug("Inserted %r as root of an empty tree", point_id)
        return leaf

    k = tree.dimension
    node = tree.root
    depth = 1
    while True:
        axis = node.axis
        if new_point[axis] < node.point[axis]:
            if node.left is None:
                leaf = KDNode(id=point_id, point=new_point, axis=(axis + 1) % k)
                node.left = leaf
                break
            node = node.left
        else:
            if node.right is None:
                leaf = KDNode(id=point_id, point=new_point, axis=(axis + 1) % k)
                node.right = leaf
                break
            node = node.right
        depth += 1

    tree._record_insertion()
    LOGGER.debug("Inserted %r at depth %d on axis %d", point_id, depth, leaf.axis)
    return leaf
