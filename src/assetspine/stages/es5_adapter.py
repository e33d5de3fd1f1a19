"""Legacy-syntax adapter.

Custom elements compiled to ES5 need the ``custom-elements-es5-adapter.js``
shim loaded before the web components polyfill loader. This stage finds
markup documents that load ``webcomponents-loader.js`` or
``webcomponents-bundle.js`` and inserts the adapter script right before the
loader tag, from the same directory as the loader. Documents that already
carry the adapter, or do not load the polyfills, pass through unchanged.
"""

from __future__ import annotations

import posixpath
import re

from assetspine.core.records import ContentKind, FileRecord
from assetspine.framework.stages import RecordTransformStage

ADAPTER_FILENAME = "custom-elements-es5-adapter.js"
SHIM_ID = "autogenerated-ce-es5-shim"

_LOADER_TAG_RE = re.compile(
    r"""<script\b[^>]*?\bsrc\s*=\s*(["'])(?P<src>[^"']*webcomponents-(?:loader|bundle)\.js)\1[^>]*>\s*</script\s*>""",
    re.IGNORECASE,
)


def inject_adapter(text: str) -> str | None:
    """Return ``text`` with the adapter injected, or None when nothing changes."""
    if ADAPTER_FILENAME in text:
        return None
    match = _LOADER_TAG_RE.search(text)
    if match is None:
        return None

    src = match.group("src")
    directory = posixpath.dirname(src)
    adapter_src = posixpath.join(directory, ADAPTER_FILENAME) if directory else ADAPTER_FILENAME
    shim = f'<div id="{SHIM_ID}"><script src="{adapter_src}"></script></div>\n'
    return text[: match.start()] + shim + text[match.start() :]


def _inject(record: FileRecord) -> FileRecord:
    text = inject_adapter(record.text)
    if text is None:
        return record
    return record.replace(text=text)


class Es5AdapterInjector(RecordTransformStage):
    """Insert the ES5 custom-elements adapter into documents that load the polyfills."""

    def __init__(self) -> None:
        super().__init__(
            "legacy-adapter",
            _inject,
            kinds=[ContentKind.MARKUP],
            predicate=lambda record: not record.is_extract,
        )


__all__ = ["ADAPTER_FILENAME", "Es5AdapterInjector", "inject_adapter"]
