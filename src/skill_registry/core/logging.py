"""
Structured logging for the skill registry.

Configures structlog once per process and hands out bound loggers. Log calls
use event-style names with key/value fields::

    logger = get_logger(__name__)
    logger.info("partition.write", category="community", file="acme.json", entries=3)

Console rendering is used on a TTY; JSON rendering (ECS-compatible field
names) otherwise, or when requested explicitly with ``json_format=True``.
The log level doubles as the severity marker for every reported error.

Verbose runs lower the level to DEBUG, which is where per-item diagnostics
(broken links, skipped catalog files) are emitted.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_service_name = "skill-registry"

# structlog key -> ECS key
_ECS_RENAMES = {"timestamp": "@timestamp", "level": "log.level"}


def _add_service_metadata(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _service_name)
    return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename structlog's keys to their Elastic Common Schema names."""
    for old, new in _ECS_RENAMES.items():
        if old in event_dict:
            event_dict[new] = event_dict.pop(old)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "skill-registry",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger it writes through.

    Args:
        level: Minimum level name, e.g. ``"DEBUG"`` for verbose runs
        json_format: Force JSON (True) or console (False) output; ``None``
            picks JSON whenever stdout is not a terminal
        service: Value of the ``service.name`` field
        add_timestamp: Prefix every event with an ISO timestamp
    """
    global _service_name
    _service_name = service
    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors += [_ecs_field_names, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level, force=True)


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger named ``name`` (pass ``__name__``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields onto every subsequent event in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` / ``async with`` block.

    Example:
        async with LogContext(run_id=run_id, kind="skill"):
            logger.info("dedup.group", owners=12)
    """

    def __init__(self, **fields: Any):
        self._fields = fields

    def __enter__(self) -> LogContext:
        bind_context(**self._fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        unbind_context(*self._fields)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
