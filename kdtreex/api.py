"""Async shared handle over a single KD-tree.

The embedding application creates one :class:`SharedTree` at startup and
passes it to every task that queries or mutates the index. Queries share a
read lock; insertions, saves and root swaps take the write lock. Loading
builds a fresh tree without touching any handle until :meth:`SharedTree.install`
is awaited.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, BinaryIO, Optional, Sequence

from kdtreex.algo.build import build_tree
from kdtreex.algo.insert import insert_point
from kdtreex.algo.nearest import Neighbor, nearest_neighbor
from kdtreex.core import persistence
from kdtreex.core.tree import KDTree, TreeStats
from kdtreex.logging import get_logger
from kdtreex.runtime.guard import ReadWriteLock

LOGGER = get_logger("api")


def load_tree(stream: Any) -> KDTree:
    """Parse `stream` into a new tree; no lock is involved."""

    return persistence.load(stream)


class SharedTree:
    """One KD-tree reachable by many readers or a single writer at a time."""

    def __init__(self, tree: Optional[KDTree] = None) -> None:
        self._tree = tree if tree is not None else KDTree.empty()
        self._lock = ReadWriteLock()

    @classmethod
    def from_points(cls, points: Any, ids: Sequence[str]) -> "SharedTree":
        return cls(build_tree(points, ids))

    @classmethod
    def load(cls, stream: Any) -> "SharedTree":
        return cls(load_tree(stream))

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    @asynccontextmanager
    async def read(self) -> AsyncIterator[KDTree]:
        """Hold the read lock and expose the tree; callers must not mutate it."""

        async with self._lock.read():
            yield self._tree

    @asynccontextmanager
    async def write(self) -> AsyncIterator[KDTree]:
        async with self._lock.write():
            yield self._tree

    async def nearest(self, query: Any) -> Optional[Neighbor]:
        async with self._lock.read():
            return nearest_neighbor(self._tree, query)

    async def insert(self, point_id: str, point: Any) -> None:
        async with self._lock.write():
            insert_point(self._tree, point_id, point)

    async def save(self, stream: BinaryIO) -> int:
        async with self._lock.write():
            return persistence.save(self._tree, stream)

    async def install(self, tree: KDTree) -> KDTree:
        """Swap in `tree` as the shared root and return the tree it replaced."""

        async with self._lock.write():
            previous, self._tree = self._tree, tree
        LOGGER.debug(
            "Installed tree with %d points (replaced %d points)", len(tree), len(previous)
        )
        return previous

    async def stats(self) -> TreeStats:
        async with self._lock.read():
            return self._tree.stats()


__all__ = ["SharedTree", "load_tree"]
