"""Ambient building blocks shared by every workpool module: errors, logging, settings."""

from workpool.core.errors import (
    ErrorCategory,
    ErrorContext,
    ExecutionFailure,
    HandlerNotFoundError,
    InvalidConfigError,
    PoolInactive,
    PoolKilled,
    RetriesExhausted,
    TaskCancelled,
    TimeoutExceeded,
    WorkPoolError,
)
from workpool.core.logging import LogContext, configure_from_settings, configure_logging, get_logger

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ExecutionFailure",
    "HandlerNotFoundError",
    "InvalidConfigError",
    "PoolInactive",
    "PoolKilled",
    "RetriesExhausted",
    "TaskCancelled",
    "TimeoutExceeded",
    "WorkPoolError",
    "LogContext",
    "configure_logging",
    "configure_from_settings",
    "get_logger",
]
