import asyncio

import pytest

from kdtreex.runtime.guard import ReadWriteLock


def test_readers_share_the_lock():
    async def scenario():
        lock = ReadWriteLock()
        inside = 0
        peak = 0

        async def reader():
            nonlocal inside, peak
            async with lock.read():
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(*(reader() for _ in range(5)))
        return peak, lock.readers

    peak, remaining = asyncio.run(scenario())
    assert peak == 5
    assert remaining == 0


def test_writer_excludes_readers_and_writers():
    async def scenario():
        lock = ReadWriteLock()
        events = []

        async def writer(name):
            async with lock.write():
                events.append(f"{name}:start")
                await asyncio.sleep(0.01)
                events.append(f"{name}:end")

        async def reader(name):
            async with lock.read():
                events.append(f"{name}:start")
                await asyncio.sleep(0.005)
                events.append(f"{name}:end")

        await asyncio.gather(writer("w1"), reader("r1"), writer("w2"), reader("r2"))
        return events

    events = asyncio.run(scenario())
    # A writer's start and end are adjacent: nothing interleaves with it.
    for name in ("w1", "w2"):
        start = events.index(f"{name}:start")
        assert events[start + 1] == f"{name}:end"


def test_waiting_writer_blocks_new_readers():
    async def scenario():
        lock = ReadWriteLock()
        order = []
        first_reader_in = asyncio.Event()
        release_first = asyncio.Event()

        async def first_reader():
            async with lock.read():
                first_reader_in.set()
                await release_first.wait()
                order.append("r1")

        async def writer():
            async with lock.write():
                order.append("w")

        async def late_reader():
            async with lock.read():
                order.append("r2")

        r1 = asyncio.create_task(first_reader())
        await first_reader_in.wait()
        w = asyncio.create_task(writer())
        await asyncio.sleep(0)
        r2 = asyncio.create_task(late_reader())
        await asyncio.sleep(0.01)
        release_first.set()
        await asyncio.gather(r1, w, r2)
        return order

    assert asyncio.run(scenario()) == ["r1", "w", "r2"]


def test_cancelled_writer_leaves_lock_usable():
    async def scenario():
        lock = ReadWriteLock()
        await lock.acquire_read()

        pending_writer = asyncio.create_task(lock.acquire_write())
        await asyncio.sleep(0.01)
        pending_writer.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending_writer

        # A new reader must not be held back by the abandoned writer.
        await asyncio.wait_for(lock.acquire_read(), timeout=1.0)
        assert lock.readers == 2
        await lock.release_read()
        await lock.release_read()

        assert not lock.writer_active
        await asyncio.wait_for(lock.acquire_write(), timeout=1.0)
        assert lock.writer_active
        await lock.release_write()

    asyncio.run(scenario())


def test_cancelled_reader_changes_nothing():
    async def scenario():
        lock = ReadWriteLock()
        await lock.acquire_write()
        pending_reader = asyncio.create_task(lock.acquire_read())
        await asyncio.sleep(0.01)
        pending_reader.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending_reader
        assert lock.readers == 0
        await lock.release_write()
        await asyncio.wait_for(lock.acquire_read(), timeout=1.0)
        await lock.release_read()

    asyncio.run(scenario())


def test_unbalanced_release_raises():
    async def scenario():
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            await lock.release_read()
        with pytest.raises(RuntimeError):
            await lock.release_write()

    asyncio.run(scenario())


async def _cancel_while_condition_is_held(lock, holder, waiter):
    """Let `holder` leave its block while the condition lock is busy, then cancel it."""

    entered = asyncio.Event()
    leave = asyncio.Event()

    async def hold():
        async with holder():
            entered.set()
            await leave.wait()

    holding = asyncio.create_task(hold())
    await entered.wait()
    waiting = asyncio.create_task(waiter())
    await asyncio.sleep(0.01)

    async with lock._cond:
        leave.set()
        for _ in range(5):
            await asyncio.sleep(0)
        holding.cancel()
        await asyncio.sleep(0)

    with pytest.raises(asyncio.CancelledError):
        await holding
    return await asyncio.wait_for(waiting, timeout=1.0)


def test_reader_cancelled_during_release_frees_the_lock():
    async def scenario():
        lock = ReadWriteLock()

        async def writer():
            async with lock.write():
                return lock.readers

        readers_seen_by_writer = await _cancel_while_condition_is_held(lock, lock.read, writer)
        return readers_seen_by_writer, lock.readers, lock.writer_active

    seen, remaining, writer_active = asyncio.run(scenario())
    assert seen == 0
    assert remaining == 0
    assert not writer_active


def test_writer_cancelled_during_release_frees_the_lock():
    async def scenario():
        lock = ReadWriteLock()

        async def reader():
            async with lock.read():
                return lock.writer_active

        writer_seen_by_reader = await _cancel_while_condition_is_held(lock, lock.write, reader)
        return writer_seen_by_reader, lock.readers, lock.writer_active

    seen, remaining, writer_active = asyncio.run(scenario())
    assert seen is False
    assert remaining == 0
    assert not writer_active
