"""
Asset source: a project's files as two independent record streams.

``sources()`` yields the project's own files (source globs plus the
entrypoint, shell and fragments); ``dependencies()`` yields the files
matched by ``extraDependencies``. Each call returns a fresh stream that
enumerates and reads from disk on demand. The glob walk and the reads run
in a worker thread so the event loop keeps serving the rest of the
pipeline.

Glob patterns are relative to the project root. A pattern starting with
``!`` excludes matching paths from its sequence.

Usage:
    from assetspine.framework.sources import AssetSource

    assets = AssetSource(project)
    async for record in assets.sources():
        print(record.path, record.kind)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from fnmatch import fnmatchcase
from pathlib import Path

from assetspine.core.config import ProjectConfig
from assetspine.core.errors import SourceError
from assetspine.core.records import FileRecord, RecordOrigin
from assetspine.framework.logging import get_logger
from assetspine.framework.streams import RecordStream

logger = get_logger(__name__)


def _glob(root: Path, pattern: str) -> Iterable[Path]:
    if pattern.endswith("**"):
        pattern = pattern + "/*"
    return root.glob(pattern)


def expand_patterns(root: Path, patterns: Iterable[str], explicit: Iterable[str] = ()) -> list[str]:
    """
    Resolve glob patterns to sorted, de-duplicated relative POSIX paths.

    ``explicit`` paths are included when they exist, even if no pattern
    matches them.
    """
    includes = [p for p in patterns if not p.startswith("!")]
    excludes = [p[1:] for p in patterns if p.startswith("!")]

    found: set[str] = set()
    for pattern in includes:
        for path in _glob(root, pattern):
            if path.is_file():
                found.add(path.relative_to(root).as_posix())
    for name in explicit:
        if (root / name).is_file():
            found.add(Path(name).as_posix())

    return sorted(p for p in found if not any(fnmatchcase(p, ex) for ex in excludes))


class AssetSource:
    """Enumerates project sources and external dependencies."""

    def __init__(self, project: ProjectConfig) -> None:
        self.project = project
        self.root = Path(project.root)

    def source_paths(self) -> list[str]:
        return expand_patterns(self.root, self.project.sources, self.project.important_files)

    def dependency_paths(self) -> list[str]:
        return expand_patterns(self.root, self.project.extra_dependencies)

    async def _read(self, path: str, origin: RecordOrigin) -> FileRecord:
        try:
            contents = await asyncio.to_thread((self.root / path).read_bytes)
        except OSError as e:
            raise SourceError(f"Failed to read {path}: {e}", cause=e).with_context(
                stage="source", path=path, origin=origin.value
            ) from e
        return FileRecord(path=path, contents=contents, origin=origin)

    async def _stream(self, enumerate_paths: Callable[[], list[str]], origin: RecordOrigin) -> RecordStream:
        paths = await asyncio.to_thread(enumerate_paths)
        logger.debug("source.enumerated", origin=origin.value, files=len(paths))
        for path in paths:
            yield await self._read(path, origin)

    def sources(self) -> RecordStream:
        """Fresh stream of the project's own files."""
        return self._stream(self.source_paths, RecordOrigin.SOURCE)

    def dependencies(self) -> RecordStream:
        """Fresh stream of the project's external dependency files."""
        return self._stream(self.dependency_paths, RecordOrigin.DEPENDENCY)


__all__ = ["AssetSource", "expand_patterns"]
