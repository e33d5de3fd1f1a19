"""Record streams: isolation (fan-out) and merging (fan-in).

WHY
───
A build reads two upstream sequences (project sources and dependencies) and
several builds may read the same upstream. Sharing record objects between
consumers lets one build's transform leak into another's output, so every
fan-out hands each consumer its own :meth:`FileRecord.clone`.

ARCHITECTURE
────────────
::

    upstream ──► pump task ──► bounded queue ──► StreamFork 1
                     │
                     └───────► bounded queue ──► StreamFork 2

    stream A ──► pump task ──┐
                             ├──► bounded queue ──► merge_streams()
    stream B ──► pump task ──┘

Every queue is bounded, so a slow consumer pauses its producer instead of
buffering the whole dependency tree. Streams are plain async iterators and
stages pull from them; nothing runs ahead of demand by more than one
queue's worth of records.

Example::

    left, right = fork_stream(assets.sources(), 2)
    async for record in merge_streams(isolate(src), isolate(deps)):
        ...
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from assetspine.core.records import FileRecord
from assetspine.framework.logging import get_logger

logger = get_logger(__name__)

RecordStream = AsyncIterator[FileRecord]

DEFAULT_BUFFER_SIZE = 16


class _Failure:
    """Upstream error delivered through a queue."""

    __slots__ = ("exc",)

    def __init__(self, exc: BaseException) -> None:
        self.exc = exc


_END = object()


async def aclose_stream(stream: Any) -> None:
    """Close ``stream`` if it supports ``aclose()``."""
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


@asynccontextmanager
async def closing_stream(stream: RecordStream):
    """Iterate ``stream`` and close it on exit, whatever the exit path."""
    try:
        yield stream
    finally:
        await aclose_stream(stream)


# =============================================================================
# FAN-OUT
# =============================================================================


class StreamFork:
    """One consumer's view of a forked stream.

    Forks must be consumed to the end or closed; an attached fork that is
    never read eventually stalls its siblings once its queue is full.
    """

    def __init__(self, hub: _ForkHub, maxsize: int) -> None:
        self._hub = hub
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize)
        self._detached = False
        self._finished = False

    @property
    def detached(self) -> bool:
        return self._detached

    def __aiter__(self) -> StreamFork:
        return self

    async def __anext__(self) -> FileRecord:
        if self._finished:
            raise StopAsyncIteration
        self._hub.start()
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finished = True
            raise item.exc
        return item

    async def _put(self, item: Any) -> None:
        if not self._detached:
            await self._queue.put(item)

    async def aclose(self) -> None:
        """Detach from the hub; the pump skips this fork from now on."""
        if self._detached:
            return
        self._detached = True
        self._finished = True
        # Free queue slots so a pump blocked on this fork wakes up
        while not self._queue.empty():
            self._queue.get_nowait()
        await self._hub.on_detach()


class _ForkHub:
    """Single reader of the upstream, feeding every attached fork."""

    def __init__(self, source: RecordStream, count: int, maxsize: int) -> None:
        self._source = source
        self.forks = [StreamFork(self, maxsize) for _ in range(count)]
        self._task: asyncio.Task[None] | None = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._pump(), name="stream-fork-pump")

    def _attached(self) -> list[StreamFork]:
        return [fork for fork in self.forks if not fork.detached]

    async def on_detach(self) -> None:
        if not self._attached() and self._task is None:
            await aclose_stream(self._source)

    async def _pump(self) -> None:
        try:
            async for record in self._source:
                attached = self._attached()
                if not attached:
                    break
                for fork in attached:
                    await fork._put(record.clone())
        except Exception as e:
            logger.debug("stream.fork.upstream_failed", error=str(e), error_type=type(e).__name__)
            for fork in self._attached():
                await fork._put(_Failure(e))
            return
        finally:
            await aclose_stream(self._source)

        for fork in self._attached():
            await fork._put(_END)


def fork_stream(stream: RecordStream, count: int, *, maxsize: int = DEFAULT_BUFFER_SIZE) -> list[StreamFork]:
    """
    Fork ``stream`` into ``count`` independent streams.

    Each fork yields its own clone of every upstream record. An upstream
    failure is raised by every attached fork at the same position.

    Args:
        stream: Upstream record sequence, read exactly once
        count: Number of forks
        maxsize: Capacity of each fork's buffer
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    return _ForkHub(stream, count, maxsize).forks


def isolate(stream: RecordStream, *, maxsize: int = DEFAULT_BUFFER_SIZE) -> StreamFork:
    """Single fork: a copy of ``stream`` that shares no record objects with it."""
    return fork_stream(stream, 1, maxsize=maxsize)[0]


# =============================================================================
# FAN-IN
# =============================================================================


async def merge_streams(*streams: RecordStream, maxsize: int = DEFAULT_BUFFER_SIZE) -> RecordStream:
    """
    Interleave ``streams`` in the order records become available.

    The first failing input cancels the other inputs and its error is
    raised. Duplicate paths are not filtered here; the sink reports them.
    """
    queue: asyncio.Queue[Any] = asyncio.Queue(maxsize)

    async def pump(stream: RecordStream) -> None:
        try:
            async for record in stream:
                await queue.put(record)
        except Exception as e:
            await queue.put(_Failure(e))
            return
        finally:
            await aclose_stream(stream)
        await queue.put(_END)

    tasks = [asyncio.create_task(pump(stream), name=f"stream-merge-pump-{i}") for i, stream in enumerate(streams)]
    remaining = len(tasks)
    try:
        while remaining:
            item = await queue.get()
            if item is _END:
                remaining -= 1
                continue
            if isinstance(item, _Failure):
                raise item.exc
            yield item
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def observe_first(stream: RecordStream, callback: Callable[[FileRecord], None]) -> RecordStream:
    """Pass ``stream`` through, calling ``callback`` with the first record only."""
    first = True
    async with closing_stream(stream) as records:
        async for record in records:
            if first:
                first = False
                callback(record)
            yield record


async def iterate(records: list[FileRecord]) -> RecordStream:
    """Async stream over an in-memory list."""
    for record in records:
        yield record


async def collect(stream: RecordStream) -> list[FileRecord]:
    """Drain ``stream`` into a list."""
    async with closing_stream(stream) as records:
        return [record async for record in records]


__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "RecordStream",
    "StreamFork",
    "aclose_stream",
    "closing_stream",
    "collect",
    "fork_stream",
    "isolate",
    "iterate",
    "merge_streams",
    "observe_first",
]
