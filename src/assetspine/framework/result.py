"""Build result types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class BuildStatus(str, Enum):
    """Build execution status."""

    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BuildResult:
    """Result of one build configuration's pipeline run."""

    build_name: str
    output_dir: Path
    status: BuildStatus
    started_at: datetime
    completed_at: datetime | None = None
    files: list[str] = field(default_factory=list)
    bytes_written: int = 0
    stages: list[str] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Duration in seconds if completed."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def succeeded(self) -> bool:
        return self.status == BuildStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Serialise for logging / JSON output."""
        result: dict[str, Any] = {
            "build": self.build_name,
            "output_dir": str(self.output_dir),
            "status": self.status.value,
            "files": len(self.files),
            "bytes_written": self.bytes_written,
            "stages": self.stages,
            "duration_seconds": self.duration_seconds,
        }
        if self.error is not None:
            to_dict = getattr(self.error, "to_dict", None)
            result["error"] = to_dict() if to_dict else {"error_type": type(self.error).__name__, "message": str(self.error)}
        return result
