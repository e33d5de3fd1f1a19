"""
Shared pytest fixtures and configuration for asset-spine tests.

This module provides:
- Settings cache isolation and temporary output roots
- A temporary project tree factory
- In-memory fake collaborators (JS compiler, bundler)
- A fake compiler factory

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments.

    async def test_build(project_tree, settings, fake_compiler):
        ...
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from assetspine.core.settings import AssetSpineSettings, clear_settings_cache
from assetspine.framework.stages import RecordTransformStage, Stage


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow", "golden"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Drop cached settings and ASSETSPINE_* variables around every test."""
    import os

    for key in list(os.environ):
        if key.startswith("ASSETSPINE_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def output_root(tmp_path: Path) -> Path:
    root = tmp_path / "out"
    root.mkdir()
    return root


@pytest.fixture
def settings(output_root: Path) -> AssetSpineSettings:
    """Settings writing under a temporary output root, small buffers."""
    return AssetSpineSettings(output_root=output_root, stream_buffer_size=2)


# =============================================================================
# Project trees
# =============================================================================


@pytest.fixture
def make_project(tmp_path: Path):
    """
    Create a project tree from a ``{relative_path: text or bytes}`` mapping.

    Returns the project root.
    """

    def _make(files: Mapping[str, str | bytes], name: str = "project") -> Path:
        root = tmp_path / name
        for relative, text in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(text, bytes):
                path.write_bytes(text)
            else:
                path.write_text(text, encoding="utf-8")
        root.mkdir(exist_ok=True)
        return root

    return _make


INDEX_HTML = """<!doctype html>
<html>
<head>
  <base href="/">
  <script src="node_modules/@webcomponents/webcomponentsjs/webcomponents-loader.js"></script>
  <style>
    body { margin: 0; }
  </style>
</head>
<body>
  <script>
    window.ready = true;
  </script>
  <script type="module" src="src/my-app.js"></script>
</body>
</html>
"""


@pytest.fixture
def project_tree(make_project) -> Path:
    """A small app: entrypoint, shell, one view, one stylesheet, one dependency."""
    return make_project(
        {
            "index.html": INDEX_HTML,
            "src/my-app.js": "import './my-view.js';\nexport const app = 1;\n",
            "src/my-view.js": "export const view = 2;\n",
            "src/app.css": "body  {  color : red ;  }\n",
            "node_modules/@webcomponents/webcomponentsjs/webcomponents-loader.js": "/* loader */\n",
        }
    )


@pytest.fixture
def project_config(project_tree: Path) -> dict[str, Any]:
    return {
        "root": str(project_tree),
        "entrypoint": "index.html",
        "shell": "src/my-app.js",
        "sources": ["src/**/*"],
        "extraDependencies": ["node_modules/@webcomponents/webcomponentsjs/**"],
    }


# =============================================================================
# Fake collaborators
# =============================================================================


class FakeCompiler:
    """JS compiler that tags every script it sees."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_on = fail_on

    async def compile(
        self,
        source: str,
        *,
        path: str,
        target: str | None,
        transform_modules_to_amd: bool,
        module_resolution: str,
    ) -> str:
        self.calls.append(
            {
                "path": path,
                "target": target,
                "transform_modules_to_amd": transform_modules_to_amd,
                "module_resolution": module_resolution,
            }
        )
        if self.fail_on is not None and path == self.fail_on:
            raise RuntimeError(f"cannot compile {path}")
        return f"/* {target} */\n{source}"


class FakeBundler:
    """Bundler that records its options and marks markup records."""

    def __init__(self) -> None:
        self.options: dict[str, Any] | None = None

    def stage(self, options: Mapping[str, Any]) -> Stage:
        self.options = dict(options)
        return RecordTransformStage(
            "fake-bundle",
            lambda record: record.replace(attributes={**record.attributes, "bundled": True}),
        )


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def fake_bundler() -> FakeBundler:
    return FakeBundler()


@pytest.fixture
def compiler_factory():
    """``compiler_factory(fail_on="src/x.js")`` -> FakeCompiler."""
    return FakeCompiler
