from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Set


class ReadWriteLock:
    """Asyncio lock admitting many concurrent readers or one exclusive writer.

    Writers are preferred: once a writer is waiting, new readers queue behind
    it so a steady stream of queries cannot starve insertions or saves. A task
    cancelled while waiting leaves the lock exactly as it found it, and one
    cancelled while releasing still gives up its hold.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0
        self._wakeups: Set["asyncio.Future[None]"] = set()

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writer_active(self) -> bool:
        return self._writer

    def _can_read(self) -> bool:
        return not self._writer and self._writers_waiting == 0

    def _can_write(self) -> bool:
        return not self._writer and self._readers == 0

    async def acquire_read(self) -> None:
        async with self._cond:
            await self._cond.wait_for(self._can_read)
            self._readers += 1

    async def release_read(self) -> None:
        if self._readers <= 0:
            raise RuntimeError("release_read() called without a matching acquire_read()")
        self._readers -= 1
        if self._readers == 0:
            await self._wake_waiters()

    async def acquire_write(self) -> None:
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(self._can_write)
            except BaseException:
                self._writers_waiting -= 1
                # Readers parked behind this writer may now proceed.
                self._cond.notify_all()
                raise
            self._writers_waiting -= 1
            self._writer = True

    async def release_write(self) -> None:
        if not self._writer:
            raise RuntimeError("release_write() called without a matching acquire_write()")
        self._writer = False
        await self._wake_waiters()

    async def _notify_all(self) -> None:
        async with self._cond:
            self._cond.notify_all()

    async def _wake_waiters(self) -> None:
        """Notify waiters from a shielded task.

        Releases update the counters before the first await, and the wakeup
        still runs to completion if the releasing task is cancelled while the
        condition lock is contended.
        """

        task = asyncio.ensure_future(self._notify_all())
        self._wakeups.add(task)
        task.add_done_callback(self._wakeups.discard)
        await asyncio.shield(task)

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        await self.acquire_read()
        try:
            yield
        finally:
            await self.release_read()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        await self.acquire_write()
        try:
            yield
        finally:
            await self.release_write()
