"""Pydantic models for project and build configuration.

A project file (JSON or YAML) describes where sources live and one or more
named build targets::

    {
      "entrypoint": "index.html",
      "shell": "src/my-app.js",
      "sources": ["src/**/*", "images/**/*"],
      "extraDependencies": ["node_modules/@webcomponents/webcomponentsjs/**"],
      "moduleResolution": "node",
      "build": {
        "name": "es5-bundled",
        "bundle": true,
        "js": {"compile": "es5", "minify": true, "transformModulesToAmd": true},
        "css": {"minify": true},
        "html": {"minify": true},
        "basePath": true,
        "addPushManifest": true
      }
    }

Keys are accepted in camelCase (the project-file spelling) or snake_case.
Validation failures are re-raised as
:class:`~assetspine.core.errors.InvalidConfigError` so they reject a build
like every other configuration error.

Tags:
    asset-spine, configuration, pydantic, declarative, config-driven
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from assetspine.core.errors import InvalidConfigError
from assetspine.core.records import normalize_logical_path

DEFAULT_BUILD_NAME = "default"


class _Options(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class JsOptions(_Options):
    """Script optimizer options."""

    compile: bool | Literal["es5", "es2015"] = False
    minify: bool = False
    transform_modules_to_amd: bool = False

    @property
    def compile_target(self) -> str | None:
        """Resolved compile target; ``True`` means es5."""
        if self.compile is True:
            return "es5"
        if self.compile is False:
            return None
        return self.compile


class HtmlOptions(_Options):
    """Markup optimizer options."""

    minify: bool = False


class CssOptions(_Options):
    """Style optimizer options."""

    minify: bool = False


class BuildConfig(_Options):
    """Resolved options for one named build target."""

    name: str = Field(default=DEFAULT_BUILD_NAME, min_length=1)
    output_path: str | None = None
    bundle: bool | dict[str, Any] = False
    js: JsOptions = Field(default_factory=JsOptions)
    html: HtmlOptions = Field(default_factory=HtmlOptions)
    css: CssOptions = Field(default_factory=CssOptions)
    insert_prefetch_links: bool = False
    base_path: bool | str = False
    add_push_manifest: bool = False

    @field_validator("base_path")
    @classmethod
    def _check_base_path(cls, value: bool | str) -> bool | str:
        if isinstance(value, str):
            if any(ch.isspace() for ch in value):
                raise ValueError("basePath must not contain whitespace")
            if "://" in value or "?" in value or "#" in value:
                raise ValueError("basePath must be a path, not a URL")
        return value

    @field_validator("output_path")
    @classmethod
    def _check_output_path(cls, value: str | None) -> str | None:
        if value is not None and (Path(value).is_absolute() or ".." in Path(value).parts):
            raise ValueError("outputPath must stay inside the build directory")
        return value

    @property
    def bundled(self) -> bool:
        return bool(self.bundle)

    def output_directory(self, output_root: Path, build_dir_name: str = "build") -> Path:
        """``<output_root>/<build_dir_name>/<outputPath or name>``."""
        leaf = self.output_path if self.output_path is not None else self.name
        return Path(output_root) / build_dir_name / leaf


def _logical_path(value: str) -> str:
    try:
        return normalize_logical_path(value)
    except InvalidConfigError as e:
        raise ValueError(e.message) from e


class ProjectConfig(BaseModel):
    """Project layout plus the build target(s) to produce."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    root: Path = Field(default_factory=Path.cwd)
    entrypoint: str = "index.html"
    shell: str | None = None
    fragments: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=lambda: ["src/**/*"])
    extra_dependencies: list[str] = Field(default_factory=list)
    module_resolution: Literal["none", "node"] = "node"
    build: BuildConfig | None = None
    builds: list[BuildConfig] = Field(default_factory=list)

    @field_validator("entrypoint", "shell")
    @classmethod
    def _normalize_document(cls, value: str | None) -> str | None:
        return _logical_path(value) if value else value

    @field_validator("fragments")
    @classmethod
    def _normalize_fragments(cls, value: list[str]) -> list[str]:
        return [_logical_path(fragment) for fragment in value]

    def build_configs(self) -> list[BuildConfig]:
        """Every configured build target; a default target when none is given."""
        configs = ([self.build] if self.build is not None else []) + list(self.builds)
        return configs or [BuildConfig()]

    def select_build(self, name: str) -> BuildConfig:
        for config in self.build_configs():
            if config.name == name:
                return config
        available = ", ".join(c.name for c in self.build_configs())
        raise InvalidConfigError(f"Build {name!r} not found. Available: {available}", field_name="build")

    @property
    def important_files(self) -> list[str]:
        """Entrypoint, shell and fragments: the documents that get prefetch links and push manifests."""
        files = [self.entrypoint]
        if self.shell:
            files.append(self.shell)
        files.extend(self.fragments)
        return files


def _format_validation_error(exc: ValidationError) -> tuple[str, str | None]:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location or 'config'}: {first.get('msg', 'invalid value')}", location or None


def parse_build_config(data: dict[str, Any] | BuildConfig | None) -> BuildConfig:
    """Validate a build configuration mapping."""
    if isinstance(data, BuildConfig):
        return data
    try:
        return BuildConfig.model_validate(data or {})
    except ValidationError as e:
        message, location = _format_validation_error(e)
        raise InvalidConfigError(f"Invalid build configuration: {message}", field_name=location, cause=e) from e


def parse_project_config(data: dict[str, Any] | ProjectConfig, base_dir: Path | None = None) -> ProjectConfig:
    """Validate a project configuration mapping.

    A relative ``root`` is resolved against ``base_dir`` (the directory of
    the project file when loading from disk).
    """
    if isinstance(data, ProjectConfig):
        return data
    data = dict(data)
    if base_dir is not None:
        data["root"] = (base_dir / data.get("root", ".")).resolve()
    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        message, location = _format_validation_error(e)
        raise InvalidConfigError(f"Invalid project configuration: {message}", field_name=location, cause=e) from e


def load_project_config(path: str | Path) -> ProjectConfig:
    """Load a project file (``.json``, ``.yaml`` or ``.yml``)."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidConfigError(f"Cannot read project file {path}: {e}", field_name="config", cause=e) from e

    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(raw) or {}
        else:
            data = json.loads(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InvalidConfigError(f"Cannot parse project file {path}: {e}", field_name="config", cause=e) from e

    if not isinstance(data, dict):
        raise InvalidConfigError(f"Project file {path} must contain a mapping", field_name="config")
    return parse_project_config(data, base_dir=path.parent.resolve())


__all__ = [
    "DEFAULT_BUILD_NAME",
    "BuildConfig",
    "CssOptions",
    "HtmlOptions",
    "JsOptions",
    "ProjectConfig",
    "load_project_config",
    "parse_build_config",
    "parse_project_config",
]
