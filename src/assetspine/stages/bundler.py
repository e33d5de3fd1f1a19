"""Bundler collaborator contract.

Bundling (resolving and inlining cross-document references) is delegated to
an external component. asset-spine only decides *whether* it runs and *with
which options*; the algorithm is opaque.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from assetspine.framework.stages import Stage

# Polymer 1.x semantics for relative URLs in dom-module templates; projects on
# 2.x turn this off through the bundle options.
DEFAULT_BUNDLER_OPTIONS: dict[str, Any] = {"rewriteUrlsInTemplates": True}


@runtime_checkable
class Bundler(Protocol):
    """External bundler: builds one stage from bundler options."""

    def stage(self, options: Mapping[str, Any]) -> Stage:
        ...


def bundler_options(bundle: bool | Mapping[str, Any]) -> dict[str, Any]:
    """Defaults shallow-merged with user options; user keys win."""
    options = dict(DEFAULT_BUNDLER_OPTIONS)
    if isinstance(bundle, Mapping):
        options.update(bundle)
    return options


__all__ = ["Bundler", "DEFAULT_BUNDLER_OPTIONS", "bundler_options"]
