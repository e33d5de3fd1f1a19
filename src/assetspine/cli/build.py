"""
CLI: ``assetspine build``: run the configured builds of a project.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer

from assetspine.cli.utils import console, load_project_or_exit, print_error, print_results
from assetspine.core.errors import AssetSpineError
from assetspine.core.settings import get_settings
from assetspine.framework.logging import configure_logging
from assetspine.framework.runner import run_builds


def build_command(
    config: str = typer.Argument(..., help="Project file (.json, .yaml or .yml)"),
    build_names: list[str] = typer.Option(None, "--build", "-b", help="Only run the named build (repeatable)"),
    output_root: Path | None = typer.Option(None, "--output-root", "-o", help="Directory that receives build/"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
    log_level: str | None = typer.Option(None, "--log-level", help="Override ASSETSPINE_LOG_LEVEL"),
) -> None:
    """Build every configured build of CONFIG (or only --build NAME)."""
    configure_logging(level=log_level.upper() if log_level else None)
    project = load_project_or_exit(config)

    settings = get_settings()
    if output_root is not None:
        settings = settings.model_copy(update={"output_root": output_root.resolve()})

    try:
        results = asyncio.run(run_builds(project, build_names=build_names or None, settings=settings))
    except AssetSpineError as e:
        print_error(e)
        raise typer.Exit(code=1) from e

    if as_json:
        console.print_json(json.dumps([r.to_dict() for r in results], default=str))
    else:
        print_results(results)
        for result in results:
            if result.error is not None:
                console.print(f"\n[bold]{result.build_name}[/bold]")
                print_error(result.error)

    if not all(r.succeeded for r in results):
        raise typer.Exit(code=1)
