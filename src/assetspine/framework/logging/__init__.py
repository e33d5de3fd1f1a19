"""
asset-spine logging - structured, build-aware logging.

Usage:
    from assetspine.framework.logging import configure_logging, get_logger, log_step, bind_context

    configure_logging()
    log = get_logger(__name__)

    bind_context(build="es5-bundled")
    with log_step("build.run"):
        ...
"""

from assetspine.framework.logging.config import configure_logging, is_configured
from assetspine.framework.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    push_context,
    set_context,
)
from assetspine.framework.logging.timing import TimingResult, log_step, timed_block

__all__ = [
    "configure_logging",
    "is_configured",
    "get_logger",
    "set_context",
    "bind_context",
    "clear_context",
    "get_context",
    "push_context",
    "LogContext",
    "TimingResult",
    "log_step",
    "timed_block",
]
