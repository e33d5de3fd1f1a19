"""Runtime settings for asset-spine.

``AssetSpineSettings`` holds the process-level knobs that are not part of a
project's build configuration: where output trees are rooted, how deep the
stream buffers are, which external command compiles JavaScript, and how logs
are rendered.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Build options live in the project file; everything about *this machine*
    lives here and is read from ``ASSETSPINE_*`` variables or ``.env``.

Examples:
    >>> from assetspine.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.build_dir_name
    'build'

Tags:
    settings, configuration, pydantic, environment, asset-spine
"""

from __future__ import annotations

import shlex
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AssetSpineSettings(BaseSettings):
    """Process-level settings.

    Fields
    ──────
    output_root          : Directory under which ``build/<name>`` trees are written
    build_dir_name       : Name of the top-level output directory
    stream_buffer_size   : Capacity of every fan-out/fan-in queue
    js_compiler_command  : External command compiling JS on stdin to stdout
    log_level            : Structlog log level
    log_format           : ``console`` or ``json``
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSETSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Output ───────────────────────────────────────────────────
    output_root: Path = Field(default_factory=Path.cwd)
    build_dir_name: str = "build"

    # ── Streaming ────────────────────────────────────────────────
    stream_buffer_size: int = Field(default=16, ge=1, description="Bounded queue size for fork/merge")

    # ── External collaborators ───────────────────────────────────
    js_compiler_command: str | None = Field(
        default=None,
        description="Command compiling JavaScript from stdin; {target} is replaced by the compile target",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "console"

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return value

    def js_compiler_argv(self) -> list[str] | None:
        """Split ``js_compiler_command`` into an argv list."""
        if not self.js_compiler_command:
            return None
        return shlex.split(self.js_compiler_command)


@lru_cache(maxsize=1)
def get_settings() -> AssetSpineSettings:
    """Return the cached settings instance."""
    return AssetSpineSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings (for testing)."""
    get_settings.cache_clear()


__all__ = ["AssetSpineSettings", "get_settings", "clear_settings_cache"]
