"""Pipeline sink: persists terminal records under a build's output directory."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from assetspine.core.errors import DuplicatePathError, OrphanedExtractError, StorageError
from assetspine.core.records import FileRecord
from assetspine.framework.logging import get_logger
from assetspine.framework.streams import RecordStream, closing_stream

logger = get_logger(__name__)


@dataclass
class SinkReport:
    """What the sink wrote."""

    output_dir: Path
    paths: list[str] = field(default_factory=list)
    bytes_written: int = 0

    @property
    def files(self) -> int:
        return len(self.paths)


def _write_file(destination: Path, contents: bytes) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(contents)


class PipelineSink:
    """
    Terminal stage: ``output_dir / record.path`` for every record.

    Intermediate directories are created and existing files overwritten.
    The first failure aborts the drain; files already written stay.
    """

    name = "sink"

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self._seen: dict[str, str] = {}

    def destination(self, record: FileRecord) -> Path:
        return self.output_dir.joinpath(*record.path.split("/"))

    def _check(self, record: FileRecord) -> None:
        if record.is_extract:
            raise OrphanedExtractError(
                record.path, parent=record.parent, reason="reached the sink without being rejoined"
            ).with_context(stage=self.name)
        if record.path in self._seen:
            raise DuplicatePathError(
                record.path,
                first_origin=self._seen[record.path],
                second_origin=record.origin.value,
            ).with_context(stage=self.name)
        self._seen[record.path] = record.origin.value

    async def write(self, record: FileRecord) -> Path:
        """Write one record; raises :class:`StorageError` on I/O failure."""
        self._check(record)
        destination = self.destination(record)
        try:
            await asyncio.to_thread(_write_file, destination, record.contents)
        except OSError as e:
            raise StorageError(f"Failed to write {destination}: {e}", cause=e).with_context(
                stage=self.name, path=record.path
            ) from e
        logger.debug("sink.write", path=record.path, bytes=len(record.contents))
        return destination

    async def drain(self, stream: RecordStream) -> SinkReport:
        """Consume ``stream`` to the end, writing every record."""
        report = SinkReport(output_dir=self.output_dir)
        async with closing_stream(stream) as records:
            async for record in records:
                await self.write(record)
                report.paths.append(record.path)
                report.bytes_written += len(record.contents)
        return report


__all__ = ["PipelineSink", "SinkReport"]
