"""
Built-in pipeline stages and external collaborator contracts.

Use: from assetspine.stages.optimize import get_optimize_stage, CommandCompiler
Use: from assetspine.stages.bundler import Bundler, bundler_options
"""

from assetspine.stages.base_tag import BaseTagStage, normalize_base_path
from assetspine.stages.bundler import Bundler, bundler_options
from assetspine.stages.es5_adapter import Es5AdapterInjector
from assetspine.stages.optimize import CommandCompiler, JsCompiler, OptimizerOptions, get_optimize_stage
from assetspine.stages.prefetch import PrefetchLinksStage
from assetspine.stages.push_manifest import PushManifestStage

__all__ = [
    "BaseTagStage",
    "Bundler",
    "CommandCompiler",
    "Es5AdapterInjector",
    "JsCompiler",
    "OptimizerOptions",
    "PrefetchLinksStage",
    "PushManifestStage",
    "bundler_options",
    "get_optimize_stage",
    "normalize_base_path",
]
