"""
CLI: ``assetspine plan``: show which stages each build runs.
"""

from __future__ import annotations

import json

import typer
from rich.table import Table

from assetspine.cli.utils import console, load_project_or_exit
from assetspine.framework.plan import BUILD_STAGES


def plan_command(
    config: str = typer.Argument(..., help="Project file (.json, .yaml or .yml)"),
    as_json: bool = typer.Option(False, "--json", help="Print the plan as JSON"),
) -> None:
    """Show the stage plan of every build in CONFIG without running it."""
    project = load_project_or_exit(config)
    builds = project.build_configs()
    plan = {build.name: {d.name: bool(d.enabled(build)) for d in BUILD_STAGES} for build in builds}

    if as_json:
        console.print_json(json.dumps(plan))
        return

    table = Table(title="Stage plan")
    table.add_column("Stage")
    for build in builds:
        table.add_column(build.name, justify="center")
    for descriptor in BUILD_STAGES:
        marks = ["[green]on[/green]" if plan[b.name][descriptor.name] else "[dim]-[/dim]" for b in builds]
        table.add_row(descriptor.name, *marks)
    console.print(table)
