"""
Root Typer application for the asset-spine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="assetspine",
    help="asset-spine: streaming build pipeline for static web assets.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from assetspine import __version__

        typer.echo(f"assetspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """asset-spine CLI: build, plan and inspect settings."""


# ── Sub-command registration ─────────────────────────────────────────────

from assetspine.cli.build import build_command  # noqa: E402
from assetspine.cli.config import app as config_app  # noqa: E402
from assetspine.cli.plan import plan_command  # noqa: E402

app.command("build")(build_command)
app.command("plan")(plan_command)
app.add_typer(config_app, name="config", help="Runtime settings.")
