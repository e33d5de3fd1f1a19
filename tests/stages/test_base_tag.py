"""Tests for assetspine.stages.base_tag."""

from __future__ import annotations

import pytest

from assetspine.core.records import FileRecord
from assetspine.framework.streams import collect, iterate
from assetspine.stages.base_tag import BaseTagStage, rewrite_base_tag


class TestRewriteBaseTag:
    def test_double_quotes(self):
        assert rewrite_base_tag('<head><base href="/"></head>', "/es5/") == '<head><base href="/es5/"></head>'

    def test_single_quotes_and_extra_attributes(self):
        text = "<BASE target='_self' href='/old/'>"
        assert rewrite_base_tag(text, "/new/") == "<BASE target='_self' href='/new/'>"

    def test_only_first_tag(self):
        text = '<base href="/a/"><base href="/b/">'
        assert rewrite_base_tag(text, "/x/") == '<base href="/x/"><base href="/b/">'

    def test_no_base_tag(self):
        assert rewrite_base_tag("<head></head>", "/x/") == "<head></head>"


class TestBaseTagStage:
    @pytest.mark.asyncio
    async def test_only_entrypoint_rewritten(self):
        index = FileRecord(path="index.html", contents='<base href="/">')
        other = FileRecord(path="src/page.html", contents='<base href="/">')
        out = await collect(BaseTagStage("/es5-bundled/", "index.html")(iterate([index, other])))
        assert out[0].text == '<base href="/es5-bundled/">'
        assert out[1] is other

    def test_name(self):
        assert BaseTagStage("/", "index.html").name == "base-path"
