"""
Structured logging for workpool.

Pools log lifecycle transitions as dotted event names with key/value
fields (``pool.dispatched item_id=... task=... attempt=1``).  Because
every attempt runs on its own thread, each event also records the name
of the thread that emitted it: ``<pool>-scheduler`` for dispatch
decisions, ``workpool-<task>-<n>`` for completions.

Architecture:
    ::

        configure_logging(level, json_format, service, stream)
        configure_from_settings(PoolSettings)
            │
            ▼
        structlog processor chain:
          1. TimeStamper (iso, optional)
          2. merge_contextvars            ← LogContext / bind_context
          3. add_log_level
          4. _add_service / _add_thread
          5. JSONRenderer (not a tty) or ConsoleRenderer (tty)

    Output goes to ``stream`` (stdout by default).  The CLI sends logs to
    stderr so that ``--json`` results on stdout stay parseable.

Examples:
    >>> from workpool.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", service="thumbnails")
    >>> logger = get_logger(__name__)
    >>> logger.info("pool.submitted", task="resize", item_id="wi-1a2b3c")

    Scoped context (previous values are restored on exit):

    >>> with LogContext(batch="2024-06"):
    ...     pool.execute(resize, {"path": "a.png"})

Tags:
    logging, structlog, observability, workpool

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import IO, TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from workpool.core.settings import PoolSettings

_service = "workpool"


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", _service)
    return event_dict


def _add_thread(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Record the emitting thread; tells scheduler events from worker events."""
    event_dict.setdefault("thread", threading.current_thread().name)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "workpool",
    add_timestamp: bool = True,
    stream: IO[str] | None = None,
) -> None:
    """Configure structlog for pool events.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: True for JSON lines, False for the console renderer,
            None to pick JSON whenever ``stream`` is not a terminal
        service: Value of the ``service`` field on every event
        add_timestamp: Prefix events with an ISO timestamp
        stream: Where log lines go; defaults to stdout
    """
    global _service
    _service = service
    stream = stream or sys.stdout
    numeric_level = getattr(logging, level.upper())
    is_tty = hasattr(stream, "isatty") and stream.isatty()

    if json_format is None:
        json_format = not is_tty

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_service,
        _add_thread,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=is_tty))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=stream, level=numeric_level)


def configure_from_settings(settings: PoolSettings | None = None, stream: IO[str] | None = None) -> None:
    """Apply ``log_level`` and ``log_json`` from :class:`PoolSettings`."""
    from workpool.core.settings import get_settings

    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json, stream=stream)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` (or ``async with``) block.

    Values shadowed by the block are restored when it exits.  Context is
    per thread: fields bound here reach events the pool logs from the
    calling thread (``pool.submitted``, ``pool.cancelled``), not events
    logged by worker threads.
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._scope: Any = None

    def __enter__(self) -> LogContext:
        self._scope = structlog.contextvars.bound_contextvars(**self._context)
        self._scope.__enter__()
        return self

    def __exit__(self, *args) -> None:
        self._scope.__exit__(*args)
        self._scope = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *args) -> None:
        self.__exit__(*args)


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
