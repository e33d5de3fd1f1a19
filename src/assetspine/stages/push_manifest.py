"""Push-manifest generator.

Emits ``push-manifest.json`` describing, for each important file
(entrypoint, shell, fragments) present in the build, the transitive
dependencies an HTTP/2 server should push alongside it::

    {
      "src/my-app.js": {
        "src/my-view.js": {"type": "script", "weight": 1},
        "styles/app.css": {"type": "style", "weight": 1}
      }
    }

A ``push-manifest.json`` already present in the build is replaced.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from assetspine.core.records import ContentKind, FileRecord, RecordOrigin
from assetspine.framework.logging import get_logger
from assetspine.framework.stages import BufferedStage
from assetspine.stages.references import transitive_dependencies

logger = get_logger(__name__)

PUSH_MANIFEST_PATH = "push-manifest.json"

PUSH_TYPES = {
    ContentKind.MARKUP: "document",
    ContentKind.SCRIPT: "script",
    ContentKind.STYLE: "style",
}


def build_push_manifest(records: dict[str, FileRecord], important_files: list[str]) -> dict[str, dict]:
    manifest: dict[str, dict] = {}
    for path in important_files:
        if path not in records:
            continue
        manifest[path] = {
            ref.path: {"type": PUSH_TYPES[ref.kind], "weight": 1}
            for ref in transitive_dependencies(records, path)
            if ref.kind in PUSH_TYPES
        }
    return manifest


class PushManifestStage(BufferedStage):
    name = "push-manifest"

    def __init__(self, important_files: list[str], manifest_path: str = PUSH_MANIFEST_PATH) -> None:
        self.important_files = list(important_files)
        self.manifest_path = manifest_path

    async def finalize(self, records: list[FileRecord]) -> Iterable[FileRecord]:
        kept = [record for record in records if record.path != self.manifest_path]
        if len(kept) != len(records):
            logger.warning("push_manifest.replaced_existing", path=self.manifest_path)

        manifest = build_push_manifest({record.path: record for record in kept}, self.important_files)
        kept.append(
            FileRecord(
                path=self.manifest_path,
                contents=json.dumps(manifest, indent=2).encode("utf-8"),
                kind=ContentKind.OTHER,
                origin=RecordOrigin.GENERATED,
            )
        )
        return kept


__all__ = ["PUSH_MANIFEST_PATH", "PushManifestStage", "build_push_manifest"]
