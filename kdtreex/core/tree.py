from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from kdtreex.exceptions import InputContractError, TreeShapeError

POINT_DTYPE = np.float32


def as_point(values: Any, *, dimension: int | None = None, what: str = "point") -> np.ndarray:
    """Coerce `values` to a 1-D float32 point, enforcing `dimension` when given."""

    try:
        point = np.array(values, dtype=POINT_DTYPE)
    except (TypeError, ValueError) as exc:
        raise InputContractError(f"{what} must be a sequence of numbers") from exc
    if point.ndim != 1:
        raise InputContractError(f"{what} must be one-dimensional, got shape {point.shape}")
    if point.shape[0] == 0:
        raise InputContractError(f"{what} must have at least one coordinate")
    if dimension is not None and point.shape[0] != dimension:
        raise InputContractError(
            f"{what} has {point.shape[0]} coordinates but the tree has dimension {dimension}"
        )
    if not np.all(np.isfinite(point)):
        raise InputContractError(f"{what} must contain only finite coordinates")
    return point


def as_points(values: Any) -> np.ndarray:
    """Coerce a batch to a `(n, k)` float32 matrix; ragged batches are rejected."""

    try:
        points = np.asarray(values, dtype=POINT_DTYPE)
    except (TypeError, ValueError) as exc:
        raise InputContractError(
            "points must be a rectangular batch of numeric coordinates"
        ) from exc
    if points.ndim == 1 and points.shape[0] == 0:
        return points.reshape(0, 0)
    if points.ndim != 2:
        raise InputContractError(
            f"points must form a 2-D batch of shape (n, k), got shape {points.shape}"
        )
    if points.shape[0] and points.shape[1] == 0:
        raise InputContractError("points must have at least one coordinate")
    if not np.all(np.isfinite(points)):
        raise InputContractError("points must contain only finite coordinates")
    return points


@dataclass(eq=False)
class KDNode:
    """A single split node. Children are exclusively owned; there are no parent links."""

    id: str
    point: np.ndarray
    axis: int
    left: Optional["KDNode"] = None
    right: Optional["KDNode"] = None

    @property
    def dimension(self) -> int:
        return int(self.point.shape[0])

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def children(self) -> Tuple["KDNode", ...]:
        return tuple(child for child in (self.left, self.right) if child is not None)

    def __repr__(self) -> str:
        return f"KDNode(id={self.id!r}, point={self.point.tolist()}, axis={self.axis})"


@dataclass(frozen=True)
class TreeStats:
    num_points: int
    height: int
    dimension: int | None


@dataclass(eq=False)
class KDTree:
    """Owning handle for a KD-tree root and its fixed dimensionality."""

    root: Optional[KDNode] = None
    dimension: int | None = None
    _size: int = field(default=0, repr=False)

    @classmethod
    def empty(cls) -> "KDTree":
        return cls()

    @classmethod
    def from_root(cls, root: Optional[KDNode]) -> "KDTree":
        tree = cls(root=root, dimension=None if root is None else root.dimension)
        tree._size = sum(1 for _ in tree.iter_nodes())
        return tree

    def is_empty(self) -> bool:
        return self.root is None

    def __len__(self) -> int:
        return self._size

    def _record_insertion(self) -> None:
        self._size += 1

    def iter_nodes(self) -> Iterator[KDNode]:
        """Yield nodes in pre-order (node, left subtree, right subtree)."""

        stack: List[KDNode] = [] if self.root is None else [self.root]
        while stack:
            node = stack.pop()
            yield node
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)

    def height(self) -> int:
        if self.root is None:
            return 0
        best = 0
        stack: List[Tuple[KDNode, int]] = [(self.root, 1)]
        while stack:
            node, depth = stack.pop()
            best = max(best, depth)
            for child in node.children():
                stack.append((child, depth + 1))
        return best

    def stats(self) -> TreeStats:
        return TreeStats(num_points=len(self), height=self.height(), dimension=self.dimension)

    def ids(self) -> List[str]:
        return [node.id for node in self.iter_nodes()]

    def validate(self) -> None:
        """Check dimensionality, axis range and the split partition of every node."""

        if self.root is None:
            if self._size:
                raise TreeShapeError("empty tree reports a non-zero size")
            return
        k = self.dimension
        if k is None or k <= 0:
            raise TreeShapeError(f"tree dimension must be positive, got {k}")

        lower = np.full(k, -np.inf)
        upper = np.full(k, np.inf)
        stack: List[Tuple[KDNode, np.ndarray, np.ndarray]] = [(self.root, lower, upper)]
        seen = 0
        while stack:
            node, lo, hi = stack.pop()
            seen += 1
            if node.point.ndim != 1 or node.point.shape[0] != k:
                raise TreeShapeError(
                    f"node {node.id!r} has point shape {node.point.shape}, expected ({k},)"
                )
            if not np.all(np.isfinite(node.point)):
                raise TreeShapeError(f"node {node.id!r} has non-finite coordinates")
            if not 0 <= node.axis < k:
                raise TreeShapeError(f"node {node.id!r} has axis {node.axis} outside [0, {k})")
            if np.any(node.point < lo) or np.any(node.point > hi):
                raise TreeShapeError(
                    f"node {node.id!r} lies outside the region implied by its ancestors"
                )
            split = float(node.point[node.axis])
            if node.left is not None:
                child_hi = hi.copy()
                child_hi[node.axis] = min(child_hi[node.axis], split)
                stack.append((node.left, lo, child_hi))
            if node.right is not None:
                child_lo = lo.copy()
                child_lo[node.axis] = max(child_lo[node.axis], split)
                stack.append((node.right, child_lo, hi))
        if seen != self._size:
            raise TreeShapeError(f"tree holds {seen} nodes but reports size {self._size}")


def coerce_ids(ids: Sequence[Any], expected: int) -> List[str]:
    if isinstance(ids, (str, bytes)):
        raise InputContractError("ids must be a sequence of strings, not a single string")
    id_list = list(ids)
    if len(id_list) != expected:
        raise InputContractError(
            f"received {expected} points but {len(id_list)} ids; the batches must align"
        )
    for ident in id_list:
        if not isinstance(ident, str):
            raise InputContractError(f"ids must be strings, got {type(ident).__name__}")
    return id_list
