"""Tests for assetspine.stages.optimize: compile and minify transforms."""

from __future__ import annotations

import sys

import pytest

from assetspine.core.errors import MissingCollaboratorError, TransformError
from assetspine.core.records import FileRecord
from assetspine.framework.stages import PassThroughStage
from assetspine.framework.streams import collect, iterate
from assetspine.stages.optimize import (
    CommandCompiler,
    JsCompiler,
    OptimizerOptions,
    get_optimize_stage,
    minify_css,
    minify_html,
    minify_js,
)


def _records():
    return [
        FileRecord(path="app.js", contents="var  answer  =  42 ;\n\n// comment\n"),
        FileRecord(path="app.css", contents="body {\n  color: red;\n}\n"),
        FileRecord(path="index.html", contents="<div>\n   <p>hi</p>\n   <!-- note -->\n</div>\n"),
    ]


class TestMinifiers:
    def test_minify_js(self):
        assert minify_js("var  a  =  1 ;\n// comment\n") == "var a=1;"

    def test_minify_css(self):
        assert minify_css("body {\n  color: red;\n}\n").replace(";}", "}") == "body{color:red}"

    def test_minify_html_collapses_whitespace_and_comments(self):
        assert minify_html("<div>\n   <p>hi</p>\n   <!-- note -->\n</div>\n") == "<div> <p>hi</p> </div>"

    def test_minify_html_preserves_pre_and_scripts(self):
        text = "<pre>  keep\n   this  </pre>\n\n<script>var  x;</script>"
        assert minify_html(text) == "<pre>  keep\n   this  </pre> <script>var  x;</script>"

    def test_minify_html_keeps_conditional_comments(self):
        text = "<!--[if IE]><p>ie</p><![endif]-->"
        assert minify_html(text) == text


class TestOptimizerOptions:
    def test_needs_compiler(self):
        assert not OptimizerOptions().needs_compiler
        assert OptimizerOptions(js_compile="es5").needs_compiler
        assert OptimizerOptions(js_transform_modules_to_amd=True).needs_compiler


class TestGetOptimizeStage:
    def test_shape_is_fixed(self):
        chain = get_optimize_stage(OptimizerOptions())
        assert [s.name for s in chain.stages] == ["js-compile", "js-minify", "css-minify", "html-minify"]
        assert all(isinstance(s, PassThroughStage) for s in chain.stages)

    @pytest.mark.asyncio
    async def test_everything_off_is_identity(self):
        records = _records()
        out = await collect(get_optimize_stage(OptimizerOptions())(iterate(records)))
        assert out == records

    @pytest.mark.asyncio
    async def test_minify_all(self):
        options = OptimizerOptions(js_minify=True, css_minify=True, html_minify=True)
        out = await collect(get_optimize_stage(options)(iterate(_records())))
        assert out[0].text == "var answer=42;"
        assert out[1].text.replace(";}", "}") == "body{color:red}"
        assert out[2].text == "<div> <p>hi</p> </div>"

    @pytest.mark.asyncio
    async def test_compile_uses_collaborator(self, fake_compiler):
        options = OptimizerOptions(js_compile="es5", js_transform_modules_to_amd=True, module_resolution="none")
        out = await collect(get_optimize_stage(options, fake_compiler)(iterate(_records())))
        assert out[0].text.startswith("/* es5 */")
        assert out[1].text == _records()[1].text
        assert fake_compiler.calls == [
            {"path": "app.js", "target": "es5", "transform_modules_to_amd": True, "module_resolution": "none"}
        ]

    @pytest.mark.asyncio
    async def test_compile_then_minify(self, fake_compiler):
        options = OptimizerOptions(js_compile="es2015", js_minify=True)
        out = await collect(get_optimize_stage(options, fake_compiler)(iterate(_records()[:1])))
        assert out[0].text == "var answer=42;"

    def test_missing_compiler(self):
        with pytest.raises(MissingCollaboratorError):
            get_optimize_stage(OptimizerOptions(js_compile="es5"))

    @pytest.mark.asyncio
    async def test_compiler_failure_is_transform_error(self, compiler_factory):
        compiler = compiler_factory(fail_on="app.js")
        stage = get_optimize_stage(OptimizerOptions(js_compile="es5"), compiler)
        with pytest.raises(TransformError) as exc_info:
            await collect(stage(iterate(_records())))
        assert exc_info.value.context.stage == "js-compile"
        assert exc_info.value.context.path == "app.js"

    def test_fake_compiler_satisfies_protocol(self, fake_compiler):
        assert isinstance(fake_compiler, JsCompiler)


class TestCommandCompiler:
    def test_empty_argv(self):
        with pytest.raises(ValueError):
            CommandCompiler([])

    def test_command_substitution(self):
        compiler = CommandCompiler(["babel", "--env={target}", "--filename={path}"], amd_args=["--amd"])
        command = compiler.command_for(path="src/a.js", target="es5", transform_modules_to_amd=True, module_resolution="node")
        assert command == ["babel", "--env=es5", "--filename=src/a.js", "--amd"]

    @pytest.mark.asyncio
    async def test_pipes_through_subprocess(self):
        compiler = CommandCompiler([sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"])
        result = await compiler.compile(
            "var x;", path="a.js", target="es5", transform_modules_to_amd=False, module_resolution="node"
        )
        assert result == "VAR X;"

    @pytest.mark.asyncio
    async def test_nonzero_exit(self):
        compiler = CommandCompiler([sys.executable, "-c", "import sys; sys.stderr.write('syntax'); sys.exit(3)"])
        with pytest.raises(TransformError, match="exited with 3"):
            await compiler.compile("x", path="a.js", target=None, transform_modules_to_amd=False, module_resolution="node")

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        compiler = CommandCompiler(["/nonexistent/assetspine-compiler"])
        with pytest.raises(TransformError, match="Cannot start"):
            await compiler.compile("x", path="a.js", target=None, transform_modules_to_amd=False, module_resolution="node")

    @pytest.mark.asyncio
    async def test_timeout(self):
        compiler = CommandCompiler([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)
        with pytest.raises(TransformError, match="timed out"):
            await compiler.compile("x", path="a.js", target=None, transform_modules_to_amd=False, module_resolution="node")
