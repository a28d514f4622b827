"""
Structured logging for the catalog pipeline.

CLI runs, cron sweeps and event workers share one structlog configuration,
so a sync decision ("entry upserted", "manifest invalid", "schema
unavailable") reads the same wherever it was made. Lines render as JSON
with ECS field names when stderr is not a terminal, and through
structlog's console renderer otherwise.

Chain built by :func:`configure_logging`::

    TimeStamper(iso)            (optional)
    merge_contextvars           repo_id / release_id / ref from LogContext
    add_log_level, add_logger_name
    add_service_name
    format_exc_info, to_ecs_fields     (JSON only)
    JSONRenderer | ConsoleRenderer

Lines go through the stdlib root logger on stderr; stdout stays free for
command output such as ``catalog-spine search --json``.

Examples:
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> with LogContext(repo_id=5, release_id=12):
    ...     logger.info("catalog_entry_upserted", stage="prod")

Tags:
    logging, structlog, observability, ecs, catalog-spine
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

DEFAULT_SERVICE = "catalog-spine"

_ECS_RENAMES = {"timestamp": "@timestamp", "level": "log.level"}

_service = DEFAULT_SERVICE


def add_service_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp ``service.name`` unless the call site set one."""
    event_dict.setdefault("service.name", _service)
    return event_dict


def to_ecs_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename structlog's default keys to their ECS names."""
    for key, ecs_key in _ECS_RENAMES.items():
        if key in event_dict:
            event_dict[ecs_key] = event_dict.pop(key)
    return event_dict


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {level!r}")
    return resolved


def _processors(json_format: bool, add_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = []
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,
    ]
    if json_format:
        chain += [structlog.processors.format_exc_info, to_ecs_fields, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return chain


def configure_logging(
    level: str | int = "INFO",
    json_format: bool | None = None,
    service: str = DEFAULT_SERVICE,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for the process; safe to call again to reconfigure.

    Args:
        level: minimum level, by name or number
        json_format: ``None`` picks JSON unless stderr is a terminal
        service: value of ``service.name`` on every line
        add_timestamp: include an ISO timestamp
    """
    global _service
    _service = service
    numeric = _resolve_level(level)
    if json_format is None:
        json_format = not sys.stderr.isatty()

    structlog.configure(
        processors=_processors(json_format, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # No-op when the root logger already has handlers (pytest, embedding apps)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach *kwargs* to every later line logged from this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind keys for the duration of a ``with`` block.

    Values bound by an enclosing context are restored on exit rather than
    dropped, so nested syncs (a sweep binding ``sweep=...`` around each
    pair) keep the outer keys.
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)


__all__ = [
    "DEFAULT_SERVICE",
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "LogContext",
    "add_service_name",
    "to_ecs_fields",
]
