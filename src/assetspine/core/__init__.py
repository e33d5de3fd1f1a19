"""
asset-spine core: records, configuration, settings and the error hierarchy.

These modules have no knowledge of streams or stages; the framework package
builds the pipeline on top of them.
"""

from assetspine.core.config import (
    BuildConfig,
    CssOptions,
    HtmlOptions,
    JsOptions,
    ProjectConfig,
    load_project_config,
    parse_build_config,
    parse_project_config,
)
from assetspine.core.errors import (
    AssetSpineError,
    ConfigError,
    DuplicatePathError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    MissingCollaboratorError,
    OrphanedExtractError,
    PipelineDataError,
    SourceError,
    StorageError,
    TransformError,
)
from assetspine.core.records import ContentKind, FileRecord, RecordOrigin
from assetspine.core.settings import AssetSpineSettings, get_settings

__all__ = [
    # Records
    "ContentKind",
    "FileRecord",
    "RecordOrigin",
    # Configuration
    "BuildConfig",
    "CssOptions",
    "HtmlOptions",
    "JsOptions",
    "ProjectConfig",
    "load_project_config",
    "parse_build_config",
    "parse_project_config",
    "AssetSpineSettings",
    "get_settings",
    # Errors
    "AssetSpineError",
    "ConfigError",
    "DuplicatePathError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConfigError",
    "MissingCollaboratorError",
    "OrphanedExtractError",
    "PipelineDataError",
    "SourceError",
    "StorageError",
    "TransformError",
]
