"""
Utility helpers for benchsink.
"""

from .logging import (
    bind_run_context,
    clear_run_context,
    configure_logging,
    get_logger,
    log_context,
)

__all__ = [
    "bind_run_context",
    "clear_run_context",
    "configure_logging",
    "get_logger",
    "log_context",
]
