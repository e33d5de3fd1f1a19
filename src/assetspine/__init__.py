"""
asset-spine - streaming build pipeline for static web assets.

Reads a project's sources and dependencies, runs them through a fixed,
configuration-gated sequence of stages (legacy adapter, bundler, inline
asset split, optimizer, rejoin, prefetch links, base path, push manifest)
and writes each build to its own output directory.
"""

__version__ = "0.1.0"

from assetspine.core import *  # noqa
