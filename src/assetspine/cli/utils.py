"""
CLI utility helpers: output formatting and project loading.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from assetspine.core.config import ProjectConfig, load_project_config
from assetspine.core.errors import AssetSpineError
from assetspine.framework.result import BuildResult

console = Console()
err_console = Console(stderr=True)


def print_error(error: BaseException) -> None:
    """Render an error, with its category when it is one of ours."""
    if isinstance(error, AssetSpineError):
        err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
        for key, value in error.context.to_dict().items():
            err_console.print(f"  [dim]{key}[/dim]: {value}")
    else:
        err_console.print(f"[bold red]Error[/bold red] ({type(error).__name__}): {error}")


def load_project_or_exit(path: str) -> ProjectConfig:
    """Load a project file, exiting with code 1 on configuration errors."""
    try:
        return load_project_config(path)
    except AssetSpineError as e:
        print_error(e)
        raise typer.Exit(code=1) from e


def print_results(results: list[BuildResult], *, title: str = "Builds") -> None:
    """Render build results as a Rich table."""
    table = Table(title=title, show_lines=False, pad_edge=False)
    table.add_column("Build")
    table.add_column("Status")
    table.add_column("Files", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Output", overflow="fold")
    for result in results:
        status = "[green]completed[/green]" if result.succeeded else "[red]failed[/red]"
        duration = f"{result.duration_seconds:.2f}s" if result.duration_seconds is not None else "-"
        table.add_row(
            result.build_name,
            status,
            str(len(result.files)),
            str(result.bytes_written),
            duration,
            str(result.output_dir),
        )
    console.print(table)
