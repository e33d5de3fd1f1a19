"""Prefetch-link inserter.

For each important markup document (entrypoint, shell, fragments), adds a
``<link rel="prefetch">`` for every transitive dependency the document does
not already reference directly. Links go right before ``</head>``, or at the
top of the document when it has no head. Hrefs are relative to the document.

The stage buffers the whole build: dependency closure needs every record.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterable

from assetspine.core.records import ContentKind, FileRecord
from assetspine.framework.logging import get_logger
from assetspine.framework.stages import BufferedStage
from assetspine.stages.references import scan_references, transitive_dependencies

logger = get_logger(__name__)

_HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)


def relative_href(from_document: str, target: str) -> str:
    return posixpath.relpath(target, posixpath.dirname(from_document) or ".")


def insert_links(text: str, hrefs: list[str]) -> str:
    links = "".join(f'<link rel="prefetch" href="{href}">\n' for href in hrefs)
    match = _HEAD_CLOSE_RE.search(text)
    if match is None:
        return links + text
    return text[: match.start()] + links + text[match.start() :]


class PrefetchLinksStage(BufferedStage):
    name = "prefetch-links"

    def __init__(self, important_files: list[str]) -> None:
        self.important_files = list(important_files)

    async def finalize(self, records: list[FileRecord]) -> Iterable[FileRecord]:
        by_path = {record.path: record for record in records}
        for path in self.important_files:
            document = by_path.get(path)
            if document is None or document.kind is not ContentKind.MARKUP:
                continue
            direct = set(scan_references(document))
            hrefs = [
                relative_href(path, ref.path)
                for ref in transitive_dependencies(by_path, path)
                if ref.path not in direct
            ]
            if hrefs:
                by_path[path] = document.replace(text=insert_links(document.text, hrefs))
                logger.debug("prefetch.inserted", path=path, links=len(hrefs))
        return [by_path[record.path] for record in records]


__all__ = ["PrefetchLinksStage", "insert_links", "relative_href"]
