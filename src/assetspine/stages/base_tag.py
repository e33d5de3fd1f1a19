"""Base-path rewriter.

Rewrites the ``href`` of the ``<base>`` tag in the entrypoint document so a
build served from a sub-path (``/es5-bundled/``) resolves its relative URLs.
The entrypoint is left alone when it has no ``<base>`` tag.
"""

from __future__ import annotations

import re

from assetspine.core.records import ContentKind, FileRecord
from assetspine.framework.stages import RecordTransformStage

_BASE_TAG_RE = re.compile(r"""(<base\b[^>]*?\bhref\s*=\s*)(["'])[^"']*\2""", re.IGNORECASE)


def normalize_base_path(base_path: bool | str, build_name: str) -> str:
    """
    Normalize a configured base path.

    ``True`` stands for the build name. The result always starts and ends
    with ``/``; normalizing an already normalized path is a no-op.

    >>> normalize_base_path(True, "app")
    '/app/'
    >>> normalize_base_path("assets", "app")
    '/assets/'
    """
    path = build_name if base_path is True else str(base_path)
    if not path.startswith("/"):
        path = "/" + path
    if not path.endswith("/"):
        path = path + "/"
    return path


def rewrite_base_tag(text: str, base_path: str) -> str:
    return _BASE_TAG_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}{base_path}{m.group(2)}", text, count=1)


class BaseTagStage(RecordTransformStage):
    """Point the entrypoint's ``<base href>`` at ``base_path``."""

    def __init__(self, base_path: str, entrypoint: str) -> None:
        self.base_path = base_path
        self.entrypoint = entrypoint
        super().__init__(
            "base-path",
            self._rewrite,
            kinds=[ContentKind.MARKUP],
            predicate=lambda record: record.path == entrypoint,
        )

    def _rewrite(self, record: FileRecord) -> FileRecord:
        return record.replace(text=rewrite_base_tag(record.text, self.base_path))


__all__ = ["BaseTagStage", "normalize_base_path", "rewrite_base_tag"]
