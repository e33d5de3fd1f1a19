"""Tests for assetspine.framework.sources: project enumeration and reads."""

from __future__ import annotations

import threading

import pytest

from assetspine.core.config import parse_project_config
from assetspine.core.errors import SourceError
from assetspine.core.records import ContentKind, RecordOrigin
from assetspine.framework.sources import AssetSource, expand_patterns
from assetspine.framework.streams import collect


class TestExpandPatterns:
    def test_globs_sorted_and_relative(self, make_project):
        root = make_project({"src/b.js": "", "src/a.js": "", "src/views/v.html": "", "other/x.js": ""})
        assert expand_patterns(root, ["src/**/*"]) == ["src/a.js", "src/b.js", "src/views/v.html"]

    def test_trailing_double_star(self, make_project):
        root = make_project({"node_modules/pkg/index.js": "", "node_modules/pkg/lib/util.js": ""})
        assert expand_patterns(root, ["node_modules/pkg/**"]) == [
            "node_modules/pkg/index.js",
            "node_modules/pkg/lib/util.js",
        ]

    def test_excludes(self, make_project):
        root = make_project({"src/a.js": "", "src/a.test.js": ""})
        assert expand_patterns(root, ["src/**/*", "!src/*.test.js"]) == ["src/a.js"]

    def test_explicit_files_added_once(self, make_project):
        root = make_project({"index.html": "", "src/a.js": ""})
        assert expand_patterns(root, ["src/**/*"], ["index.html", "src/a.js", "missing.html"]) == [
            "index.html",
            "src/a.js",
        ]

    def test_directories_are_skipped(self, make_project):
        root = make_project({"src/dir/file.js": ""})
        assert expand_patterns(root, ["src/*"]) == []


class TestAssetSource:
    @pytest.mark.asyncio
    async def test_sources_include_important_files(self, project_config):
        assets = AssetSource(parse_project_config(project_config))
        records = await collect(assets.sources())
        paths = [r.path for r in records]
        assert paths == ["index.html", "src/app.css", "src/my-app.js", "src/my-view.js"]
        assert all(r.origin is RecordOrigin.SOURCE for r in records)
        assert records[0].kind is ContentKind.MARKUP

    @pytest.mark.asyncio
    async def test_dependencies(self, project_config):
        assets = AssetSource(parse_project_config(project_config))
        records = await collect(assets.dependencies())
        assert [r.path for r in records] == ["node_modules/@webcomponents/webcomponentsjs/webcomponents-loader.js"]
        assert records[0].origin is RecordOrigin.DEPENDENCY
        assert records[0].text == "/* loader */\n"

    @pytest.mark.asyncio
    async def test_each_call_is_a_fresh_stream(self, project_config):
        assets = AssetSource(parse_project_config(project_config))
        first = await collect(assets.sources())
        second = await collect(assets.sources())
        assert [r.path for r in first] == [r.path for r in second]

    @pytest.mark.asyncio
    async def test_no_dependencies_configured(self, make_project):
        root = make_project({"index.html": "<p>"})
        assets = AssetSource(parse_project_config({"root": str(root)}))
        assert await collect(assets.dependencies()) == []

    @pytest.mark.asyncio
    async def test_unreadable_file_is_source_error(self, make_project):
        root = make_project({"src/a.js": "x", "src/b.js": "y"})
        assets = AssetSource(parse_project_config({"root": str(root)}))
        stream = assets.sources()
        first = await anext(stream)
        assert first.path == "src/a.js"
        (root / "src/b.js").unlink()
        with pytest.raises(SourceError) as exc_info:
            await collect(stream)
        assert exc_info.value.context.path == "src/b.js"
        assert exc_info.value.context.origin == "source"

    @pytest.mark.asyncio
    async def test_enumeration_happens_when_the_stream_is_read(self, make_project):
        root = make_project({"src/a.js": "x"})
        assets = AssetSource(parse_project_config({"root": str(root)}))
        stream = assets.sources()
        (root / "src/b.js").write_text("y", encoding="utf-8")
        assert [r.path for r in await collect(stream)] == ["src/a.js", "src/b.js"]

    @pytest.mark.asyncio
    async def test_enumeration_runs_off_the_event_loop(self, make_project, monkeypatch):
        root = make_project({"src/a.js": "x"})
        assets = AssetSource(parse_project_config({"root": str(root)}))
        threads = []

        def recording_expand(*args, **kwargs):
            threads.append(threading.get_ident())
            return expand_patterns(*args, **kwargs)

        monkeypatch.setattr("assetspine.framework.sources.expand_patterns", recording_expand)
        await collect(assets.sources())
        assert threads and threading.get_ident() not in threads
