"""Conditional stage sequencing.

Manifesto:
    The order of a build's stages is a property of the pipeline design, not
    of the configuration. A build configuration only switches optional
    stages on or off. The pipeline is described once, as an ordered tuple of
    :class:`StageDescriptor`, and every build evaluates that tuple against
    its configuration. A switched-off stage becomes a
    :class:`~assetspine.framework.stages.PassThroughStage`, so every build
    has the same shape.

Stage order::

    legacy-adapter → bundler → split → optimize → rejoin
        → prefetch-links → base-path → push-manifest

Collaborator checks run while planning, so a build that asks for bundling
without a bundler fails before any file is read.

Tags:
    asset-spine, pipeline, planning, declarative, stage-order

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from assetspine.core.config import BuildConfig, ProjectConfig
from assetspine.core.errors import MissingCollaboratorError
from assetspine.core.settings import AssetSpineSettings
from assetspine.framework.logging import get_logger
from assetspine.framework.splitter import HtmlSplitter
from assetspine.framework.stages import PassThroughStage, Stage, StageChain
from assetspine.stages.base_tag import BaseTagStage, normalize_base_path
from assetspine.stages.bundler import Bundler, bundler_options
from assetspine.stages.es5_adapter import Es5AdapterInjector
from assetspine.stages.optimize import CommandCompiler, JsCompiler, OptimizerOptions, get_optimize_stage
from assetspine.stages.prefetch import PrefetchLinksStage
from assetspine.stages.push_manifest import PushManifestStage

logger = get_logger(__name__)


@dataclass
class Collaborators:
    """External components a build may need, passed explicitly."""

    bundler: Bundler | None = None
    js_compiler: JsCompiler | None = None

    @classmethod
    def from_settings(cls, settings: AssetSpineSettings) -> Collaborators:
        """Collaborators available from runtime settings (the JS compiler command)."""
        argv = settings.js_compiler_argv()
        return cls(js_compiler=CommandCompiler(argv) if argv else None)


@dataclass
class StageContext:
    """Everything a stage factory may read."""

    build: BuildConfig
    project: ProjectConfig
    collaborators: Collaborators
    splitter: HtmlSplitter = field(default_factory=HtmlSplitter)


@dataclass(frozen=True)
class StageDescriptor:
    """One slot in the fixed stage order."""

    name: str
    enabled: Callable[[BuildConfig], bool]
    factory: Callable[[StageContext], Stage]


@dataclass
class PlannedStage:
    name: str
    enabled: bool
    stage: Stage


# =============================================================================
# Configuration translation
# =============================================================================


def compiles_to_es5(build: BuildConfig) -> bool:
    """Legacy adapter is needed when scripts are compiled for an ES5 runtime."""
    return build.js.compile is True or build.js.compile == "es5"


def optimizer_options(build: BuildConfig, project: ProjectConfig) -> OptimizerOptions:
    """Translate a build configuration into optimizer options."""
    return OptimizerOptions(
        html_minify=build.html.minify,
        css_minify=build.css.minify,
        js_compile=build.js.compile_target,
        js_minify=build.js.minify,
        js_transform_modules_to_amd=build.js.transform_modules_to_amd,
        module_resolution=project.module_resolution,
        entrypoint_path=project.entrypoint,
        root_dir=str(project.root),
    )


def _bundler_stage(ctx: StageContext) -> Stage:
    if ctx.collaborators.bundler is None:
        raise MissingCollaboratorError("bundler", reason="bundle is enabled").with_context(
            build=ctx.build.name, stage="bundler"
        )
    return ctx.collaborators.bundler.stage(bundler_options(ctx.build.bundle))


def _optimize_stage(ctx: StageContext) -> Stage:
    return get_optimize_stage(optimizer_options(ctx.build, ctx.project), ctx.collaborators.js_compiler)


BUILD_STAGES: tuple[StageDescriptor, ...] = (
    StageDescriptor("legacy-adapter", compiles_to_es5, lambda ctx: Es5AdapterInjector()),
    StageDescriptor("bundler", lambda build: build.bundled, _bundler_stage),
    StageDescriptor("split", lambda build: True, lambda ctx: ctx.splitter.split()),
    StageDescriptor("optimize", lambda build: True, _optimize_stage),
    StageDescriptor("rejoin", lambda build: True, lambda ctx: ctx.splitter.rejoin()),
    StageDescriptor(
        "prefetch-links",
        lambda build: build.insert_prefetch_links,
        lambda ctx: PrefetchLinksStage(ctx.project.important_files),
    ),
    StageDescriptor(
        "base-path",
        lambda build: bool(build.base_path),
        lambda ctx: BaseTagStage(normalize_base_path(ctx.build.base_path, ctx.build.name), ctx.project.entrypoint),
    ),
    StageDescriptor(
        "push-manifest",
        lambda build: build.add_push_manifest,
        lambda ctx: PushManifestStage(ctx.project.important_files),
    ),
)


def plan_stages(
    build: BuildConfig,
    project: ProjectConfig,
    collaborators: Collaborators | None = None,
    descriptors: tuple[StageDescriptor, ...] = BUILD_STAGES,
) -> list[PlannedStage]:
    """
    Evaluate ``descriptors`` once against ``build``.

    Raises:
        ConfigError: an enabled stage cannot be constructed
    """
    ctx = StageContext(build=build, project=project, collaborators=collaborators or Collaborators())
    planned = []
    for descriptor in descriptors:
        enabled = bool(descriptor.enabled(build))
        stage = descriptor.factory(ctx) if enabled else PassThroughStage(descriptor.name)
        planned.append(PlannedStage(name=descriptor.name, enabled=enabled, stage=stage))

    logger.debug("stage.plan", build=build.name, enabled=[p.name for p in planned if p.enabled])
    return planned


def build_pipeline(planned: list[PlannedStage]) -> StageChain:
    """Compose planned stages into one chain."""
    return StageChain([p.stage for p in planned], name="pipeline")


__all__ = [
    "BUILD_STAGES",
    "Collaborators",
    "PlannedStage",
    "StageContext",
    "StageDescriptor",
    "build_pipeline",
    "compiles_to_es5",
    "normalize_base_path",
    "optimizer_options",
    "plan_stages",
]
