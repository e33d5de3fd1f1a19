"""Build runner.

Manifesto:
    The runner wires one build configuration into a streaming pipeline
    (source → isolate → merge → planned stages → sink) and settles that
    build's completion gate. Each build runs in its own task with its own
    logging context, so builds for different configurations can run side by
    side and fail independently.

Entry points:

- :func:`submit_build`: schedule the ``build`` sub-object of a project
  configuration; returns the gate's future
- :func:`build`: run one build configuration and await its result
- :func:`run_builds`: run every configured build concurrently over forks of
  a single source read; failures are isolated per build

Tags:
    asset-spine, framework, runner, lifecycle, completion-gate

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from assetspine.core.config import (
    DEFAULT_BUILD_NAME,
    BuildConfig,
    ProjectConfig,
    parse_build_config,
    parse_project_config,
)
from assetspine.core.errors import AssetSpineError, ConfigError
from assetspine.core.settings import AssetSpineSettings, get_settings
from assetspine.framework.gate import CompletionGate
from assetspine.framework.logging import bind_context, get_logger, log_step
from assetspine.framework.plan import Collaborators, build_pipeline, plan_stages
from assetspine.framework.result import BuildResult, BuildStatus
from assetspine.framework.sink import PipelineSink
from assetspine.framework.sources import AssetSource
from assetspine.framework.streams import RecordStream, aclose_stream, fork_stream, isolate, merge_streams

log = get_logger(__name__)


def _with_build(error: BaseException, build_name: str) -> BaseException:
    if isinstance(error, AssetSpineError):
        error.with_context(build=build_name)
    return error


async def _execute(
    gate: CompletionGate[BuildResult],
    build_config: BuildConfig | dict[str, Any] | None,
    project: ProjectConfig | dict[str, Any],
    *,
    collaborators: Collaborators | None,
    settings: AssetSpineSettings,
    sources: RecordStream | None,
    dependencies: RecordStream | None,
) -> None:
    """Run one build and settle ``gate``. Never raises except on cancellation."""
    name = gate.build_name
    bind_context(build=name)
    started_at = datetime.now(UTC)
    buffer_size = settings.stream_buffer_size

    # Nothing is read until the plan is known to be valid
    try:
        project = parse_project_config(project)
        build_config = parse_build_config(build_config)
        if sources is None or dependencies is None:
            assets = AssetSource(project)
            sources = sources if sources is not None else assets.sources()
            dependencies = dependencies if dependencies is not None else assets.dependencies()
        planned = plan_stages(build_config, project, collaborators or Collaborators.from_settings(settings))
    except Exception as e:
        await aclose_stream(sources)
        await aclose_stream(dependencies)
        gate.reject(_with_build(e, name))
        return

    output_dir = build_config.output_directory(settings.output_root, settings.build_dir_name)

    try:
        with log_step("build.run", output_dir=str(output_dir)) as timer:
            merged = merge_streams(
                isolate(sources, maxsize=buffer_size),
                isolate(dependencies, maxsize=buffer_size),
                maxsize=buffer_size,
            )
            pipeline = build_pipeline(planned)
            report = await PipelineSink(output_dir).drain(gate.watch(pipeline(merged)))
            timer.add_metric("files", report.files)
            timer.add_metric("bytes", report.bytes_written)
    except asyncio.CancelledError:
        gate.future.cancel()
        raise
    except Exception as e:
        gate.reject(_with_build(e, name))
        return

    gate.resolve(
        BuildResult(
            build_name=name,
            output_dir=output_dir,
            status=BuildStatus.COMPLETED,
            started_at=started_at,
            completed_at=datetime.now(UTC),
            files=report.paths,
            bytes_written=report.bytes_written,
            stages=[p.name for p in planned if p.enabled],
        )
    )


def start_build(
    build_config: BuildConfig | dict[str, Any] | None,
    project: ProjectConfig | dict[str, Any],
    *,
    collaborators: Collaborators | None = None,
    settings: AssetSpineSettings | None = None,
    sources: RecordStream | None = None,
    dependencies: RecordStream | None = None,
) -> CompletionGate[BuildResult]:
    """
    Schedule one build on the running loop and return its gate.

    ``sources``/``dependencies`` default to fresh reads of the project; when
    given they are isolated before use. Configuration errors reject the
    gate instead of raising.
    """
    settings = settings or get_settings()
    if isinstance(build_config, BuildConfig):
        name = build_config.name
    else:
        name = str((build_config or {}).get("name") or DEFAULT_BUILD_NAME)

    gate: CompletionGate[BuildResult] = CompletionGate(name)
    gate.task = asyncio.create_task(
        _execute(
            gate,
            build_config,
            project,
            collaborators=collaborators,
            settings=settings,
            sources=sources,
            dependencies=dependencies,
        ),
        name=f"build:{name}",
    )
    return gate


def submit_build(
    project_config: ProjectConfig | dict[str, Any],
    *,
    collaborators: Collaborators | None = None,
    settings: AssetSpineSettings | None = None,
) -> asyncio.Future[BuildResult]:
    """
    Build the ``build`` sub-object of ``project_config``.

    Returns a future that resolves with the :class:`BuildResult` once every
    record has been written, or rejects with the first error.
    """
    build_config: BuildConfig | dict[str, Any] | None = None
    if isinstance(project_config, ProjectConfig):
        build_config = project_config.build
    elif isinstance(project_config, dict):
        build_config = project_config.get("build")
    return start_build(build_config, project_config, collaborators=collaborators, settings=settings).future


async def build(
    build_config: BuildConfig | dict[str, Any] | None,
    project: ProjectConfig | dict[str, Any],
    *,
    collaborators: Collaborators | None = None,
    settings: AssetSpineSettings | None = None,
    sources: RecordStream | None = None,
    dependencies: RecordStream | None = None,
) -> BuildResult:
    """Run one build to completion; raises the build's error on failure."""
    gate = start_build(
        build_config,
        project,
        collaborators=collaborators,
        settings=settings,
        sources=sources,
        dependencies=dependencies,
    )
    return await gate


def _overlaps(a: Path, b: Path) -> bool:
    a, b = a.resolve(), b.resolve()
    return a == b or a in b.parents or b in a.parents


def check_output_directories(configs: list[BuildConfig], settings: AssetSpineSettings) -> None:
    """Reject build sets whose output directories coincide or nest."""
    directories = [(c.name, c.output_directory(settings.output_root, settings.build_dir_name)) for c in configs]
    for i, (name_a, dir_a) in enumerate(directories):
        for name_b, dir_b in directories[i + 1 :]:
            if _overlaps(dir_a, dir_b):
                raise ConfigError(
                    f"Builds {name_a!r} and {name_b!r} write to overlapping directories: {dir_a} and {dir_b}"
                ).with_context(builds=[name_a, name_b])


async def run_builds(
    project_config: ProjectConfig | dict[str, Any],
    *,
    build_names: list[str] | None = None,
    collaborators: Collaborators | None = None,
    settings: AssetSpineSettings | None = None,
) -> list[BuildResult]:
    """
    Run every configured build (or ``build_names``) concurrently.

    The project is read once; each build receives its own fork of the
    source and dependency streams. A failing build yields a FAILED result
    and does not stop its siblings.

    Raises:
        ConfigError: invalid project configuration, unknown build name, or
            overlapping output directories
    """
    settings = settings or get_settings()
    project = parse_project_config(project_config)
    configs = (
        [project.select_build(name) for name in build_names] if build_names else project.build_configs()
    )
    check_output_directories(configs, settings)
    collaborators = collaborators or Collaborators.from_settings(settings)

    assets = AssetSource(project)
    source_forks = fork_stream(assets.sources(), len(configs), maxsize=settings.stream_buffer_size)
    dependency_forks = fork_stream(assets.dependencies(), len(configs), maxsize=settings.stream_buffer_size)

    log.info("builds.start", builds=[c.name for c in configs])
    gates = [
        start_build(
            config,
            project,
            collaborators=collaborators,
            settings=settings,
            sources=source_forks[i],
            dependencies=dependency_forks[i],
        )
        for i, config in enumerate(configs)
    ]

    results: list[BuildResult] = []
    for config, gate in zip(configs, gates):
        started_at = datetime.now(UTC)
        try:
            results.append(await gate)
        except Exception as e:
            results.append(
                BuildResult(
                    build_name=config.name,
                    output_dir=config.output_directory(settings.output_root, settings.build_dir_name),
                    status=BuildStatus.FAILED,
                    started_at=started_at,
                    completed_at=datetime.now(UTC),
                    error=e,
                )
            )

    log.info(
        "builds.complete",
        succeeded=sum(1 for r in results if r.succeeded),
        failed=sum(1 for r in results if not r.succeeded),
    )
    return results


__all__ = [
    "build",
    "check_output_directories",
    "run_builds",
    "start_build",
    "submit_build",
]
