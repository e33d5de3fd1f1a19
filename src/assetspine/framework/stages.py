"""Pipeline stages.

A stage is an async transform over a record stream::

    stage(stream) -> stream

Variants:

- :class:`PassThroughStage`: identity, returns its input unchanged
- :class:`RecordTransformStage`: rewrites matching records one at a time
- :class:`BufferedStage`: needs the whole record set (prefetch links,
  push manifest); emits only after the upstream is exhausted
- :class:`StageChain`: sequential composition of stages

Stages never mutate a record another consumer can see: transforms derive
new records with :meth:`FileRecord.replace`.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Sequence

from assetspine.core.errors import AssetSpineError, TransformError
from assetspine.core.records import ContentKind, FileRecord
from assetspine.framework.streams import RecordStream, closing_stream

RecordTransform = Callable[[FileRecord], "FileRecord | Awaitable[FileRecord]"]


class Stage(ABC):
    """Base class for all pipeline stages."""

    name: str = ""

    def __call__(self, stream: RecordStream) -> RecordStream:
        return self.process(stream)

    @abstractmethod
    def process(self, stream: RecordStream) -> RecordStream:
        """Return the transformed stream. Must be implemented by subclasses."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class PassThroughStage(Stage):
    """Identity stage; stands in for an optional stage that is switched off."""

    def __init__(self, name: str = "pass-through") -> None:
        self.name = name

    def process(self, stream: RecordStream) -> RecordStream:
        return stream


class RecordTransformStage(Stage):
    """
    Apply ``transform`` to every record matching ``kinds`` (and ``predicate``).

    The transform may be sync or async and must return a record; records
    that do not match pass through untouched. Non-asset-spine exceptions
    raised by the transform are wrapped in :class:`TransformError`.
    """

    def __init__(
        self,
        name: str,
        transform: RecordTransform,
        *,
        kinds: Iterable[ContentKind] | None = None,
        predicate: Callable[[FileRecord], bool] | None = None,
    ) -> None:
        self.name = name
        self.transform = transform
        self.kinds = frozenset(kinds) if kinds is not None else None
        self.predicate = predicate

    def matches(self, record: FileRecord) -> bool:
        if self.kinds is not None and record.kind not in self.kinds:
            return False
        return self.predicate is None or self.predicate(record)

    async def apply(self, record: FileRecord) -> FileRecord:
        try:
            result = self.transform(record)
            if inspect.isawaitable(result):
                result = await result
        except AssetSpineError as e:
            raise e.with_context(stage=self.name, path=record.path)
        except Exception as e:
            raise TransformError(f"{self.name} failed on {record.path}: {e}", cause=e).with_context(
                stage=self.name, path=record.path
            ) from e
        return result

    async def process(self, stream: RecordStream) -> RecordStream:
        async with closing_stream(stream) as records:
            async for record in records:
                if self.matches(record):
                    record = await self.apply(record)
                yield record


class BufferedStage(Stage):
    """Stage that needs every record before it can emit any."""

    @abstractmethod
    async def finalize(self, records: list[FileRecord]) -> Iterable[FileRecord]:
        """Return the records to emit, given the complete upstream set."""
        ...

    async def process(self, stream: RecordStream) -> RecordStream:
        async with closing_stream(stream) as upstream:
            records = [record async for record in upstream]
        for record in await self.finalize(records):
            yield record


class StageChain(Stage):
    """Sequential composition: the output of each stage feeds the next."""

    def __init__(self, stages: Sequence[Stage], name: str | None = None) -> None:
        self.stages = list(stages)
        self.name = name or " -> ".join(stage.name for stage in self.stages)

    def process(self, stream: RecordStream) -> RecordStream:
        for stage in self.stages:
            stream = stage(stream)
        return stream

    def __len__(self) -> int:
        return len(self.stages)


__all__ = [
    "BufferedStage",
    "PassThroughStage",
    "RecordTransform",
    "RecordTransformStage",
    "Stage",
    "StageChain",
]
