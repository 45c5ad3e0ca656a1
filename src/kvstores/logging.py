"""
Structured logging for kvstores.

Stores log lifecycle events (connect, close, flush) and failed multi-step
writes through ``structlog``. Applications call :func:`configure_logging`
once at startup; library code only calls :func:`get_logger`.

Examples:
    >>> from kvstores.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True, service="sessions")
    >>> logger = get_logger(__name__)
    >>> logger.info("store_connected", store="redis", addr="localhost:6379")

JSON output uses ECS field names (``@timestamp``, ``log.level``,
``log.logger``, ``service.name``) so it can be shipped to Elasticsearch as-is.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Event keys renamed to their ECS equivalents in JSON output
_ECS_FIELDS = {
    "timestamp": "@timestamp",
    "level": "log.level",
    "logger_name": "log.logger",
}


def _service_name(service: str) -> Processor:
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service)
        return event_dict

    return add_service


def _ecs_rename(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for field, ecs_field in _ECS_FIELDS.items():
        if field in event_dict:
            event_dict[ecs_field] = event_dict.pop(field)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "kvstores",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    if json_format is None:
        json_format = not sys.stdout.isatty()

    log_level = getattr(logging, level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        _service_name(service),
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            _ecs_rename,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        # Resolve sys.stdout on every call; CLI runners swap it per invocation
        cache_logger_on_first_use=False,
    )

    # The redis client logs through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The logger stays lazy, so module-level loggers pick up a later
    :func:`configure_logging` call.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger_name=name)


@contextmanager
def store_context(**values: Any) -> Iterator[None]:
    """Attach store fields (``store``, ``key``, ``operation``...) to every log
    emitted inside the block, restoring the previous values on exit.

    Example:
        with store_context(store="redis", key="user:1", operation="set_map"):
            client.hset(...)
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield


__all__ = [
    "configure_logging",
    "get_logger",
    "store_context",
]
