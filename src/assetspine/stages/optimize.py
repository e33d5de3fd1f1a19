"""Optimizer stage: per-kind compile and minify transforms.

ARCHITECTURE
────────────
::

    get_optimize_stage(options, compiler)
      └── StageChain
            ├── js-compile      (SCRIPT)  external JsCompiler, only when a
            │                             compile target or AMD is requested
            ├── js-minify       (SCRIPT)  rjsmin
            ├── css-minify      (STYLE)   rcssmin
            └── html-minify     (MARKUP)  inter-tag whitespace and comments

    Switched-off transforms are PassThroughStage, so the chain always has
    the same shape.

The JavaScript compiler is an external collaborator. :class:`CommandCompiler`
runs any command that reads a script on stdin and writes the compiled script
to stdout, e.g. ``npx babel --presets=@babel/preset-env``. Placeholders
``{target}``, ``{path}`` and ``{module_resolution}`` in the argv are filled
per record.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import rcssmin
import rjsmin

from assetspine.core.errors import MissingCollaboratorError, TransformError
from assetspine.core.records import ContentKind, FileRecord, encode_text
from assetspine.framework.logging import get_logger
from assetspine.framework.stages import PassThroughStage, RecordTransformStage, Stage, StageChain

logger = get_logger(__name__)


@dataclass(frozen=True)
class OptimizerOptions:
    """Options handed to the optimizer, translated from a build configuration."""

    html_minify: bool = False
    css_minify: bool = False
    js_compile: str | None = None
    js_minify: bool = False
    js_transform_modules_to_amd: bool = False
    module_resolution: str = "node"
    entrypoint_path: str = "index.html"
    root_dir: str = "."

    @property
    def needs_compiler(self) -> bool:
        return self.js_compile is not None or self.js_transform_modules_to_amd

    def to_dict(self) -> dict[str, Any]:
        """Optimizer option mapping in project-file spelling."""
        return {
            "html": {"minify": self.html_minify},
            "css": {"minify": self.css_minify},
            "js": {
                "compile": self.js_compile or False,
                "minify": self.js_minify,
                "transformModulesToAmd": self.js_transform_modules_to_amd,
                "moduleResolution": self.module_resolution,
            },
            "entrypointPath": self.entrypoint_path,
            "rootDir": self.root_dir,
        }


@runtime_checkable
class JsCompiler(Protocol):
    """External JavaScript compiler."""

    async def compile(
        self,
        source: str,
        *,
        path: str,
        target: str | None,
        transform_modules_to_amd: bool,
        module_resolution: str,
    ) -> str:
        """Return the compiled script."""
        ...


class CommandCompiler:
    """
    Compile scripts by piping them through an external command.

    Args:
        argv: Command and arguments; ``{target}``, ``{path}`` and
            ``{module_resolution}`` are substituted per record
        amd_args: Extra arguments appended when AMD transformation is on
        timeout: Seconds before the subprocess is killed
    """

    def __init__(self, argv: list[str], *, amd_args: list[str] | None = None, timeout: float = 120.0) -> None:
        if not argv:
            raise ValueError("argv must not be empty")
        self.argv = list(argv)
        self.amd_args = list(amd_args or [])
        self.timeout = timeout

    def command_for(self, *, path: str, target: str | None, transform_modules_to_amd: bool, module_resolution: str) -> list[str]:
        values = {"target": target or "", "path": path, "module_resolution": module_resolution}
        command = [arg.format(**values) for arg in self.argv]
        if transform_modules_to_amd:
            command.extend(self.amd_args)
        return command

    async def compile(
        self,
        source: str,
        *,
        path: str,
        target: str | None,
        transform_modules_to_amd: bool,
        module_resolution: str,
    ) -> str:
        command = self.command_for(
            path=path,
            target=target,
            transform_modules_to_amd=transform_modules_to_amd,
            module_resolution=module_resolution,
        )
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TransformError(f"Cannot start JS compiler {command[0]!r}: {e}", cause=e) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(encode_text(source)), self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise TransformError(f"JS compiler timed out after {self.timeout}s on {path}", cause=e) from e

        if process.returncode != 0:
            raise TransformError(
                f"JS compiler exited with {process.returncode} on {path}: {stderr.decode('utf-8', 'replace').strip()}"
            )
        return stdout.decode("utf-8", errors="surrogateescape")


# =============================================================================
# Minifiers
# =============================================================================

_PRESERVED_BLOCK_RE = re.compile(r"(<(pre|textarea|script|style)\b.*?</\2\s*>)", re.IGNORECASE | re.DOTALL)
_COMMENT_RE = re.compile(r"<!--(?!\s*\[if)(?!\s*<!\[endif).*?-->", re.DOTALL)
_INTER_TAG_WS_RE = re.compile(r">\s+<")
_WS_RUN_RE = re.compile(r"\s{2,}")


def minify_html(text: str) -> str:
    """
    Conservative markup minification.

    Drops non-conditional comments and collapses whitespace runs outside
    ``pre``/``textarea``/``script``/``style`` blocks. Whitespace between
    tags is reduced to one space, never removed.
    """
    pieces = _PRESERVED_BLOCK_RE.split(text)
    out: list[str] = []
    # split() with two groups yields [text, block, tagname, text, block, tagname, ...]
    for i in range(0, len(pieces), 3):
        chunk = _COMMENT_RE.sub("", pieces[i])
        chunk = _INTER_TAG_WS_RE.sub("> <", chunk)
        out.append(_WS_RUN_RE.sub(" ", chunk))
        if i + 1 < len(pieces):
            out.append(pieces[i + 1])
    return "".join(out).strip()


def minify_js(text: str) -> str:
    return rjsmin.jsmin(text)


def minify_css(text: str) -> str:
    return rcssmin.cssmin(text)


def _text_transform(func):
    def transform(record: FileRecord) -> FileRecord:
        return record.replace(text=func(record.text))

    return transform


# =============================================================================
# Stage construction
# =============================================================================


def get_optimize_stage(options: OptimizerOptions, compiler: JsCompiler | None = None) -> Stage:
    """
    Compose the optimizer for ``options``.

    Raises:
        MissingCollaboratorError: compile or AMD transformation requested
            without a compiler
    """
    if options.needs_compiler and compiler is None:
        raise MissingCollaboratorError(
            "JS compiler",
            reason=f"js.compile={options.js_compile or False!r} requires one (set ASSETSPINE_JS_COMPILER_COMMAND)",
        ).with_context(stage="optimize")

    if options.needs_compiler:

        async def compile_script(record: FileRecord) -> FileRecord:
            compiled = await compiler.compile(
                record.text,
                path=record.path,
                target=options.js_compile,
                transform_modules_to_amd=options.js_transform_modules_to_amd,
                module_resolution=options.module_resolution,
            )
            return record.replace(text=compiled)

        compile_stage: Stage = RecordTransformStage("js-compile", compile_script, kinds=[ContentKind.SCRIPT])
    else:
        compile_stage = PassThroughStage("js-compile")

    stages: list[Stage] = [
        compile_stage,
        RecordTransformStage("js-minify", _text_transform(minify_js), kinds=[ContentKind.SCRIPT])
        if options.js_minify
        else PassThroughStage("js-minify"),
        RecordTransformStage("css-minify", _text_transform(minify_css), kinds=[ContentKind.STYLE])
        if options.css_minify
        else PassThroughStage("css-minify"),
        RecordTransformStage("html-minify", _text_transform(minify_html), kinds=[ContentKind.MARKUP])
        if options.html_minify
        else PassThroughStage("html-minify"),
    ]
    logger.debug("optimize.configured", **{stage.name: not isinstance(stage, PassThroughStage) for stage in stages})
    return StageChain(stages, name="optimize")


__all__ = [
    "CommandCompiler",
    "JsCompiler",
    "OptimizerOptions",
    "get_optimize_stage",
    "minify_css",
    "minify_html",
    "minify_js",
]
