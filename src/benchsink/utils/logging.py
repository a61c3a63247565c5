"""
structlog setup for the sink.

Every event carries `service_name` and `version`; once a command knows its
configuration it calls `bind_run_context()` so events from producer threads,
the monitor and the uploader also carry `host_id` and `base_name`.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, MutableMapping, cast

import structlog
from structlog.dev import ConsoleRenderer
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor

DEFAULT_SERVICE_NAME = "benchsink"

# Process-wide, unlike contextvars, so plain threads see it too.
_run_context: dict[str, Any] = {}


def _package_version() -> str:
    from benchsink import __version__

    return __version__


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, str):
            raise ValueError(f"Invalid log level: {level}")
        return int(resolved)
    return int(level)


def _add_run_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> EventDict:
    for key, value in _run_context.items():
        event_dict.setdefault(key, value)
    return cast(EventDict, event_dict)


def bind_run_context(**fields: Any) -> None:
    """Attach fields such as `host_id` to every later event of this process."""
    _run_context.update({k: v for k, v in fields.items() if v is not None})


def clear_run_context() -> None:
    _run_context.clear()


def configure_logging(level: str | int = "INFO", json_output: bool = True) -> None:
    """Route structlog and stdlib records through one stderr handler."""
    renderer = structlog.processors.JSONRenderer() if json_output else ConsoleRenderer()
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_run_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stderr; stdout carries command output.
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer, foreign_pre_chain=shared_processors
        )
    )
    logging.basicConfig(level=_coerce_level(level), handlers=[handler], force=True)


def get_logger(name: str) -> BoundLogger:
    service_name = os.getenv("SERVICE_NAME", DEFAULT_SERVICE_NAME)
    version = os.getenv("APP_VERSION") or _package_version()
    return cast(
        BoundLogger,
        structlog.get_logger(name).bind(service_name=service_name, version=version),
    )


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind fields for the duration of one segment upload (async-task local)."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
