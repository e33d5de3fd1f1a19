"""Static reference scanning between records.

Used by the prefetch-link and push-manifest stages to find what a document
pulls in. Only local references are followed: ``<script src>``,
``<link href>`` with ``rel`` import/stylesheet/modulepreload, and relative
ES module specifiers (``import``/``export ... from``/dynamic ``import()``).
Bare specifiers, absolute URLs and ``data:`` URIs are ignored.
"""

from __future__ import annotations

import posixpath
import re
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlsplit

from assetspine.core.records import ContentKind, FileRecord

_SCRIPT_SRC_RE = re.compile(r"""<script\b[^>]*?\bsrc\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_LINK_RE = re.compile(r"<link\b([^>]*)>", re.IGNORECASE)
_REL_RE = re.compile(r"""\brel\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_HREF_RE = re.compile(r"""\bhref\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_IMPORT_RE = re.compile(
    r"""(?:\bimport\s*(?:[\w*{}\s,$]+\s*from\s*)?|\bexport\s*[\w*{}\s,$]+\s*from\s*|\bimport\s*\(\s*)["']([^"']+)["']"""
)

FOLLOWED_LINK_RELS = frozenset({"import", "stylesheet", "modulepreload"})


@dataclass(frozen=True)
class Reference:
    """A resolved local reference from one record to another."""

    path: str
    kind: ContentKind


def resolve_url(base_path: str, url: str) -> str | None:
    """
    Resolve ``url`` as referenced from ``base_path`` to a logical path.

    Returns None for external, data, fragment-only and root-escaping URLs.
    """
    parts = urlsplit(url)
    if parts.scheme or parts.netloc or not parts.path:
        return None
    if parts.path.startswith("/"):
        joined = parts.path.lstrip("/")
    else:
        joined = posixpath.join(posixpath.dirname(base_path), parts.path)
    normalized = posixpath.normpath(joined)
    if normalized.startswith("..") or normalized in ("", "."):
        return None
    return normalized


def _is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith(("./", "../", "/"))


def scan_references(record: FileRecord) -> list[str]:
    """Local logical paths referenced by ``record``, in first-seen order."""
    if record.kind not in (ContentKind.MARKUP, ContentKind.SCRIPT):
        return []

    text = record.text
    urls: list[str] = []
    if record.kind is ContentKind.MARKUP:
        urls.extend(_SCRIPT_SRC_RE.findall(text))
        for attrs in _LINK_RE.findall(text):
            rel = _REL_RE.search(attrs)
            href = _HREF_RE.search(attrs)
            if rel and href and set(rel.group(1).lower().split()) & FOLLOWED_LINK_RELS:
                urls.append(href.group(1))

    # Inline module scripts in markup are scanned as well
    urls.extend(spec for spec in _IMPORT_RE.findall(text) if _is_relative_specifier(spec))

    resolved: list[str] = []
    for url in urls:
        path = resolve_url(record.path, url)
        if path is not None and path not in resolved and path != record.path:
            resolved.append(path)
    return resolved


def transitive_dependencies(records: Mapping[str, FileRecord], root: str) -> list[Reference]:
    """
    Breadth-first closure of references from ``root``.

    Only references to records present in ``records`` are followed and
    returned. ``root`` itself is excluded.
    """
    seen = {root}
    ordered: list[Reference] = []
    queue = deque([root])
    while queue:
        current = records.get(queue.popleft())
        if current is None:
            continue
        for path in scan_references(current):
            if path in seen or path not in records:
                continue
            seen.add(path)
            ordered.append(Reference(path=path, kind=records[path].kind))
            queue.append(path)
    return ordered


__all__ = ["Reference", "resolve_url", "scan_references", "transitive_dependencies"]
