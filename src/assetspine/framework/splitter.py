"""
Document splitter / rejoiner.

Manifesto:
    Optimizers work on one content kind at a time, but markup documents
    embed scripts and styles inline. :class:`HtmlSplitter` lifts every
    inline ``<script>``/``<style>`` body out of a document into its own
    synthetic record so the script and style optimizers see it, then folds
    the transformed bodies back into the document, in source order, before
    anything reaches the sink.

Lifecycle of a split document::

    index.html ──split──► index.html            (bodies replaced by placeholders,
                          index.html_script_0.js  extracts=(..._script_0.js,
                          index.html_style_1.css           ..._style_1.css))
                   ... optimizer stages ...
               ──rejoin─► index.html            (placeholders substituted)

One splitter instance pairs one ``split()`` with one ``rejoin()``; the
instance holds the bookkeeping for documents in flight between the two.

Tags:
    asset-spine, splitter, rejoin, markup, inline-scripts

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field

from assetspine.core.errors import OrphanedExtractError
from assetspine.core.records import ContentKind, FileRecord, RecordOrigin, encode_text
from assetspine.framework.logging import get_logger
from assetspine.framework.stages import Stage
from assetspine.framework.streams import RecordStream, closing_stream

logger = get_logger(__name__)

_INLINE_BLOCK_RE = re.compile(
    r"(?P<open><(?P<tag>script|style)\b(?P<attrs>[^>]*)>)(?P<body>.*?)(?P<close></(?P=tag)\s*>)",
    re.IGNORECASE | re.DOTALL,
)
_SRC_ATTR_RE = re.compile(r"(?:^|\s)src\s*=", re.IGNORECASE)
_TYPE_ATTR_RE = re.compile(r"""(?:^|\s)type\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""", re.IGNORECASE)

SCRIPT_TYPES = frozenset(
    {
        "",
        "module",
        "text/javascript",
        "application/javascript",
        "text/ecmascript",
        "application/ecmascript",
    }
)
STYLE_TYPES = frozenset({"", "text/css"})

PLACEHOLDER = "__assetspine_extract_{token}_{index}__"


def _type_attribute(attrs: str) -> str:
    match = _TYPE_ATTR_RE.search(attrs)
    if match is None:
        return ""
    value = next(group for group in match.groups() if group is not None)
    return value.strip().lower()


def extract_path(document: str, tag: str, index: int) -> str:
    """Synthetic logical path of the ``index``-th inline block of ``document``."""
    suffix = "js" if tag == "script" else "css"
    return f"{document}_{tag}_{index}.{suffix}"


@dataclass
class _PendingDocument:
    expected: tuple[str, ...]
    document: FileRecord | None = None
    extracts: dict[str, FileRecord] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return self.document is not None and len(self.extracts) == len(self.expected)


class HtmlSplitter:
    """Paired split/rejoin stages for inline scripts and styles."""

    def __init__(self) -> None:
        self.token = uuid.uuid4().hex
        self._pending: dict[str, _PendingDocument] = {}
        self._emitted: set[str] = set()

    def placeholder(self, index: int) -> str:
        """Token standing in for the ``index``-th extract of a split document."""
        return PLACEHOLDER.format(token=self.token, index=index)

    # ── Splitting ────────────────────────────────────────────────────

    def split_document(self, record: FileRecord) -> tuple[FileRecord, list[FileRecord]]:
        """
        Split one markup record.

        Returns the parent (bodies replaced by placeholders, ``extracts`` set)
        and the extracts in source order. A document without inline blocks is
        returned unchanged with an empty list.
        """
        text = record.text
        pieces: list[str] = []
        extracts: list[FileRecord] = []
        cursor = 0

        for match in _INLINE_BLOCK_RE.finditer(text):
            tag = match.group("tag").lower()
            attrs = match.group("attrs")
            body = match.group("body")
            type_attr = _type_attribute(attrs)

            if tag == "script" and (_SRC_ATTR_RE.search(attrs) or type_attr not in SCRIPT_TYPES):
                continue
            if tag == "style" and type_attr not in STYLE_TYPES:
                continue
            if not body.strip():
                continue

            index = len(extracts)
            extracts.append(
                FileRecord(
                    path=extract_path(record.path, tag, index),
                    contents=encode_text(body),
                    kind=ContentKind.SCRIPT if tag == "script" else ContentKind.STYLE,
                    origin=RecordOrigin.SYNTHETIC,
                    parent=record.path,
                    extract_index=index,
                    attributes={"inline": True, "module": type_attr == "module"},
                )
            )
            pieces.append(text[cursor : match.start("body")])
            pieces.append(self.placeholder(index))
            cursor = match.end("body")

        if not extracts:
            return record, []

        pieces.append(text[cursor:])
        parent = record.replace(text="".join(pieces), extracts=tuple(e.path for e in extracts))
        return parent, extracts

    async def _split(self, stream: RecordStream) -> RecordStream:
        async with closing_stream(stream) as records:
            async for record in records:
                if record.kind is not ContentKind.MARKUP or record.is_extract:
                    yield record
                    continue

                parent, extracts = self.split_document(record)
                if not extracts:
                    yield record
                    continue

                self._pending[parent.path] = _PendingDocument(expected=parent.extracts)
                logger.debug("splitter.split", path=parent.path, extracts=len(extracts))
                yield parent
                for extract in extracts:
                    yield extract

    def split(self) -> Stage:
        """Stage extracting inline blocks from markup records."""
        return _SplitterStage("split", self._split)

    # ── Rejoining ────────────────────────────────────────────────────

    def rejoin_document(self, document: FileRecord, extracts: list[FileRecord]) -> FileRecord:
        """Substitute every extract back into its placeholder in ``document``."""
        text = document.text
        for extract in sorted(extracts, key=lambda e: e.extract_index):
            placeholder = self.placeholder(extract.extract_index)
            if text.count(placeholder) != 1:
                raise OrphanedExtractError(
                    extract.path,
                    parent=document.path,
                    reason="placeholder missing from the document",
                ).with_context(stage="rejoin")
            text = text.replace(placeholder, extract.text, 1)
        return document.replace(text=text, extracts=())

    def _receive_extract(self, record: FileRecord) -> _PendingDocument:
        pending = self._pending.get(record.parent)
        if pending is None:
            reason = "parent already emitted" if record.parent in self._emitted else "parent was not split"
            raise OrphanedExtractError(record.path, parent=record.parent, reason=reason).with_context(stage="rejoin")
        if record.path not in pending.expected or record.path in pending.extracts:
            raise OrphanedExtractError(
                record.path, parent=record.parent, reason="not an expected extract"
            ).with_context(stage="rejoin")
        pending.extracts[record.path] = record
        return pending

    def _receive_document(self, record: FileRecord) -> _PendingDocument:
        pending = self._pending.get(record.path)
        if pending is None or pending.document is not None:
            raise OrphanedExtractError(
                record.extracts[0], parent=record.path, reason="document was not split by this splitter"
            ).with_context(stage="rejoin")
        pending.document = record
        return pending

    async def _rejoin(self, stream: RecordStream) -> RecordStream:
        async with closing_stream(stream) as records:
            async for record in records:
                if record.is_extract:
                    pending = self._receive_extract(record)
                elif record.is_split:
                    pending = self._receive_document(record)
                else:
                    yield record
                    continue

                if pending.complete:
                    document = pending.document
                    extracts = [pending.extracts[path] for path in pending.expected]
                    del self._pending[document.path]
                    self._emitted.add(document.path)
                    yield self.rejoin_document(document, extracts)

        if self._pending:
            parent, pending = next(iter(self._pending.items()))
            missing = [path for path in pending.expected if path not in pending.extracts]
            raise OrphanedExtractError(
                missing[0] if missing else parent,
                parent=parent,
                reason="extract never reached rejoin" if missing else "document never reached rejoin",
            ).with_context(stage="rejoin")

    def rejoin(self) -> Stage:
        """Stage folding extracts back into their documents."""
        return _SplitterStage("rejoin", self._rejoin)


class _SplitterStage(Stage):
    def __init__(self, name: str, process) -> None:
        self.name = name
        self._process = process

    def process(self, stream: RecordStream) -> RecordStream:
        return self._process(stream)


__all__ = ["HtmlSplitter", "PLACEHOLDER", "extract_path"]
