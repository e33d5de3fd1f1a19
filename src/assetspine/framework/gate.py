"""Completion gate: the single awaitable that settles one build.

The gate wraps one :class:`asyncio.Future`. The runner resolves it after
the sink has drained every record, or rejects it with the first error
raised anywhere upstream. ``resolve``/``reject`` are first-wins, so a late
error from a cancelled helper task never overrides the real outcome.

Example::

    gate = CompletionGate("es5-bundled")
    report = await sink.drain(gate.watch(stream))
    gate.resolve(result)
    await gate   # -> result
"""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from typing import Any, Generic, TypeVar

from assetspine.core.records import FileRecord
from assetspine.framework.logging import get_logger
from assetspine.framework.streams import RecordStream, observe_first

logger = get_logger(__name__)

T = TypeVar("T")


class CompletionGate(Generic[T]):
    """First-wins future plus the ``building`` / ``complete`` markers."""

    def __init__(self, build_name: str, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.build_name = build_name
        self._loop = loop or asyncio.get_running_loop()
        self.future: asyncio.Future[T] = self._loop.create_future()
        self._building = False
        self.task: asyncio.Task[None] | None = None

    @property
    def done(self) -> bool:
        return self.future.done()

    @property
    def building(self) -> bool:
        """True once the first record reached the end of the pipeline."""
        return self._building

    def mark_building(self, record: FileRecord | None = None) -> None:
        if not self._building:
            self._building = True
            logger.info("build.building", build=self.build_name)

    def watch(self, stream: RecordStream) -> RecordStream:
        """Pass ``stream`` through, marking the build as started on its first record."""
        return observe_first(stream, self.mark_building)

    def resolve(self, result: T) -> bool:
        """Resolve the gate. Returns False if it was already settled."""
        if self.future.done():
            return False
        self.future.set_result(result)
        logger.info("build.complete", build=self.build_name)
        return True

    def reject(self, error: BaseException) -> bool:
        """Reject the gate with ``error``. Returns False if it was already settled."""
        if self.future.done():
            return False
        self.future.set_exception(error)
        details: dict[str, Any] = {"error": str(error), "error_type": type(error).__name__}
        logger.error("build.failed", build=self.build_name, **details)
        return True

    def __await__(self) -> Generator[Any, None, T]:
        return self.future.__await__()


__all__ = ["CompletionGate"]
