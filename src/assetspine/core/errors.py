"""
Structured error types for asset-spine builds.

Every failure that can reject a build's completion gate is an
:class:`AssetSpineError`. Errors carry a category, a structured context
(which build, which stage, which logical path) and an optional chained
cause, so the CLI and the logs can report them without string parsing.

Manifesto:
    - **Typed Error Hierarchy:** configuration, pipeline data and I/O
      failures are distinct types
    - **Fail the build, not the process:** every error is scoped to one
      build configuration
    - **Rich Context:** errors name the build, stage and path involved
    - **Error Chaining:** the original OS or subprocess error is preserved

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                      AssetSpineError                          │
        │            (category, context, cause)                         │
        ├──────────────────────────────────────────────────────────────┤
        │  ConfigError            PipelineDataError      SourceError    │
        │  (CONFIG)               (PIPELINE)             (SOURCE)       │
        │     │                      │                                  │
        │  InvalidConfigError     DuplicatePathError     StorageError   │
        │  MissingCollaborator    OrphanedExtractError   (STORAGE)      │
        │                                                               │
        │                                                TransformError │
        │                                                (TRANSFORM)    │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = DuplicatePathError("index.html", first_origin="source", second_origin="dependency")
    >>> error.category
    <ErrorCategory.PIPELINE: 'PIPELINE'>
    >>> error.context.path
    'index.html'

    >>> try:
    ...     raise OSError("disk full")
    ... except OSError as e:
    ...     error = StorageError("Failed to write app.js", cause=e)
    >>> error.cause
    OSError('disk full')

Guardrails:
    ❌ DON'T: Raise bare Exception from a stage
    ✅ DO: Raise the AssetSpineError subclass for the failure class

    ❌ DON'T: Retry I/O errors inside a stage
    ✅ DO: Let the error reject the build; a single attempt is the contract

Tags:
    error-handling, exception-hierarchy, error-context, asset-spine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and reporting.

    Attributes:
        CONFIG: Malformed or contradictory build configuration
        PIPELINE: Record-level data errors detected while streaming
        SOURCE: Reading project or dependency files
        STORAGE: Writing to the output directory
        TRANSFORM: An external optimizer, compiler or bundler failed
        INTERNAL: Bugs, unexpected state
    """

    CONFIG = "CONFIG"
    PIPELINE = "PIPELINE"
    SOURCE = "SOURCE"
    STORAGE = "STORAGE"
    TRANSFORM = "TRANSFORM"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Attributes:
        build: Name of the build configuration
        stage: Pipeline stage where the error surfaced
        path: Logical path of the record involved
        origin: Origin of the record (source, dependency, synthetic)
        metadata: Additional key-value pairs
    """

    build: str | None = None
    stage: str | None = None
    path: str | None = None
    origin: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["build", "stage", "path", "origin"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class AssetSpineError(Exception):
    """
    Base exception for all asset-spine errors.

    Subclasses set ``default_category``; instances carry an
    :class:`ErrorContext` that can be extended fluently with
    :meth:`with_context` as the error travels up through the pipeline.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> AssetSpineError:
        """
        Add context to this error (fluent API).

        Existing values are kept, so the innermost stage that knew the
        path wins over an outer layer that only knows the build name.

        Usage:
            raise StorageError("Failed").with_context(build="es5", path="app.js")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                if getattr(self.context, key) is None:
                    setattr(self.context, key, value)
            else:
                self.context.metadata.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (detected before the pipeline is constructed)
# =============================================================================


class ConfigError(AssetSpineError):
    """Build configuration is malformed or contradictory."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """A configuration value failed validation."""

    def __init__(self, message: str, *, field_name: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        if field_name:
            self.context.metadata["field"] = field_name


class MissingCollaboratorError(ConfigError):
    """The configuration asks for a stage whose external collaborator is not provided."""

    def __init__(self, collaborator: str, *, reason: str, **kwargs: Any):
        super().__init__(f"No {collaborator} configured: {reason}", **kwargs)
        self.collaborator = collaborator
        self.context.metadata["collaborator"] = collaborator


# =============================================================================
# PIPELINE DATA ERRORS (detected while streaming)
# =============================================================================


class PipelineDataError(AssetSpineError):
    """A record sequence violates a pipeline invariant."""

    default_category = ErrorCategory.PIPELINE


class DuplicatePathError(PipelineDataError):
    """Two records with the same logical path reached the sink."""

    def __init__(
        self,
        path: str,
        *,
        first_origin: str | None = None,
        second_origin: str | None = None,
        **kwargs: Any,
    ):
        origins = ""
        if first_origin or second_origin:
            origins = f" ({first_origin or 'unknown'} and {second_origin or 'unknown'})"
        super().__init__(f"Duplicate logical path {path!r}{origins}", **kwargs)
        self.path = path
        self.first_origin = first_origin
        self.second_origin = second_origin
        self.context.path = path
        self.context.metadata["origins"] = [first_origin, second_origin]


class OrphanedExtractError(PipelineDataError):
    """A split sub-extract cannot be folded back into its parent document."""

    def __init__(self, path: str, *, parent: str | None = None, reason: str = "", **kwargs: Any):
        message = f"Orphaned extract {path!r}"
        if parent:
            message += f" of {parent!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message, **kwargs)
        self.path = path
        self.parent = parent
        self.context.path = path


# =============================================================================
# I/O AND TRANSFORM ERRORS (never retried)
# =============================================================================


class SourceError(AssetSpineError):
    """Reading a project or dependency file failed."""

    default_category = ErrorCategory.SOURCE


class StorageError(AssetSpineError):
    """Writing to the output directory failed."""

    default_category = ErrorCategory.STORAGE


class TransformError(AssetSpineError):
    """An external optimizer, compiler or bundler rejected a record."""

    default_category = ErrorCategory.TRANSFORM


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "AssetSpineError",
    "ConfigError",
    "InvalidConfigError",
    "MissingCollaboratorError",
    "PipelineDataError",
    "DuplicatePathError",
    "OrphanedExtractError",
    "SourceError",
    "StorageError",
    "TransformError",
]
