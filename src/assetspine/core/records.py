"""
File records: the unit of data flowing through a build.

Manifesto:
    A record is a logical path plus immutable content plus enough metadata to
    route it (kind, origin) and to rebuild split documents (parent, extracts).
    Stages never mutate a record in place: they derive a new one with
    :meth:`FileRecord.replace`, and forks receive :meth:`FileRecord.clone`.
    The content buffer is ``bytes`` and therefore safe to share between
    copies; everything else is per-copy.

Tags:
    asset-spine, records, data-model, copy-on-write

Doc-Types:
    api-reference
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any

from assetspine.core.errors import InvalidConfigError


class ContentKind(str, Enum):
    """Content classification used to route records to optimizers."""

    MARKUP = "markup"
    SCRIPT = "script"
    STYLE = "style"
    OTHER = "other"

    @classmethod
    def from_path(cls, path: str) -> ContentKind:
        """Infer the kind from a logical path's extension."""
        return EXTENSION_KINDS.get(PurePosixPath(path).suffix.lower(), cls.OTHER)


# Extension to kind mapping
EXTENSION_KINDS = {
    ".html": ContentKind.MARKUP,
    ".htm": ContentKind.MARKUP,
    ".js": ContentKind.SCRIPT,
    ".mjs": ContentKind.SCRIPT,
    ".css": ContentKind.STYLE,
}


class RecordOrigin(str, Enum):
    """Where a record entered the pipeline."""

    SOURCE = "source"
    DEPENDENCY = "dependency"
    SYNTHETIC = "synthetic"
    GENERATED = "generated"


def normalize_logical_path(path: str) -> str:
    """
    Normalize a path to the relative POSIX form used as record identity.

    Backslashes are converted, ``.`` segments dropped. Absolute paths and
    paths escaping the project root with ``..`` are rejected.
    """
    candidate = PurePosixPath(str(path).replace("\\", "/"))
    if candidate.is_absolute():
        raise InvalidConfigError(f"Logical path must be relative: {path!r}", field_name="path")
    parts = [part for part in candidate.parts if part not in ("", ".")]
    if not parts or ".." in parts:
        raise InvalidConfigError(f"Invalid logical path: {path!r}", field_name="path")
    return "/".join(parts)


def encode_text(text: str) -> bytes:
    """Encode as UTF-8, restoring bytes that :attr:`FileRecord.text` escaped."""
    return text.encode("utf-8", errors="surrogateescape")


@dataclass
class FileRecord:
    """
    One file flowing through the pipeline.

    Attributes:
        path: Relative POSIX logical path, unique within a build run
        contents: Content payload; bytes are treated as immutable
        kind: Content kind, inferred from ``path`` when omitted
        origin: Where the record entered the pipeline
        parent: Path of the originating document, for split sub-extracts
        extract_index: Source-order position of a sub-extract in its parent
        extracts: Sub-extract paths of a split document, in source order
        attributes: Free-form per-record metadata set by stages
    """

    path: str
    contents: bytes = b""
    kind: ContentKind | None = None
    origin: RecordOrigin = RecordOrigin.SOURCE
    parent: str | None = None
    extract_index: int | None = None
    extracts: tuple[str, ...] = ()
    attributes: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.path = normalize_logical_path(self.path)
        if isinstance(self.contents, str):
            self.contents = encode_text(self.contents)
        if self.kind is None:
            self.kind = ContentKind.from_path(self.path)

    @property
    def text(self) -> str:
        """Contents decoded as UTF-8; undecodable bytes survive as surrogates."""
        return self.contents.decode("utf-8", errors="surrogateescape")

    @property
    def is_extract(self) -> bool:
        """True for synthetic sub-extracts produced by the splitter."""
        return self.parent is not None

    @property
    def is_split(self) -> bool:
        """True for documents whose inline blocks are currently extracted."""
        return bool(self.extracts)

    def replace(self, **changes: Any) -> FileRecord:
        """
        Derive a new record with ``changes`` applied.

        ``text=`` is accepted as a shorthand for encoded ``contents`` (see
        :func:`encode_text`).
        The attributes mapping is copied, never shared.
        """
        if "text" in changes:
            changes["contents"] = encode_text(changes.pop("text"))
        changes.setdefault("attributes", dict(self.attributes))
        return dataclasses.replace(self, **changes)

    def clone(self) -> FileRecord:
        """Independent copy; only the immutable content buffer is shared."""
        return self.replace()

    def __repr__(self) -> str:
        return f"FileRecord({self.path!r}, kind={self.kind.value}, bytes={len(self.contents)})"


__all__ = [
    "ContentKind",
    "EXTENSION_KINDS",
    "FileRecord",
    "RecordOrigin",
    "encode_text",
    "normalize_logical_path",
]
