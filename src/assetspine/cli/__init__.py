"""
CLI layer for asset-spine.

A Typer application whose commands delegate to the build runner. This
package handles only terminal transport: argument parsing, coloured output
and table formatting.

Entry point::

    assetspine --help
"""

from assetspine.cli.app import app

__all__ = ["app"]
