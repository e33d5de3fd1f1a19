"""
asset-spine framework - the streaming build pipeline.

This package provides:
- Record streams with fan-out isolation and fan-in merging
- Stage base classes and the fixed stage plan
- The inline-asset splitter and its rejoin stage
- The filesystem source and sink
- The completion gate and the build runner

Use: from assetspine.framework.runner import build, run_builds, submit_build
Use: from assetspine.framework.plan import plan_stages, Collaborators
"""

from assetspine.framework.result import BuildResult, BuildStatus
from assetspine.framework.stages import BufferedStage, PassThroughStage, RecordTransformStage, Stage, StageChain
from assetspine.framework.streams import RecordStream, collect, fork_stream, isolate, iterate, merge_streams

__all__ = [
    # Results
    "BuildResult",
    "BuildStatus",
    # Stages
    "BufferedStage",
    "PassThroughStage",
    "RecordTransformStage",
    "Stage",
    "StageChain",
    # Streams
    "RecordStream",
    "collect",
    "fork_stream",
    "isolate",
    "iterate",
    "merge_streams",
]
