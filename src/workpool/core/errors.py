"""
Structured error types for the workpool package.

Every error raised or surfaced by a pool carries a category, a retryable
flag, structured context and an optional chained cause, so callers can log
and route failures without parsing messages.

Manifesto:
    - **Typed Error Hierarchy:** One class per way a submitted task can end badly
    - **Explicit Retry Semantics:** Each error knows if the pool may retry it
    - **Rich Context:** Errors carry task name, attempt and elapsed time
    - **Error Chaining:** The handler's own exception is preserved as cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       WorkPoolError                              │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  PoolInactive        TaskCancelled      ExecutionFailure        │
        │  (POOL)              (POOL)             (EXECUTION, retryable)  │
        │       │                                      │                   │
        │  PoolKilled                             TimeoutExceeded          │
        │                                         (TIMEOUT)                │
        │                                                                  │
        │  RetriesExhausted    ConfigError                                 │
        │  (EXECUTION)         (CONFIG)                                    │
        │                           │                                      │
        │                      HandlerNotFoundError                        │
        │                      InvalidConfigError                          │
        └─────────────────────────────────────────────────────────────────┘

Propagation:
    ExecutionFailure and TimeoutExceeded are what a failed attempt produces.
    While a work item still has retry budget they stay inside the pool.
    Only RetriesExhausted (wrapping the last failure), PoolInactive,
    PoolKilled and TaskCancelled ever reach a caller's future.

Examples:
    >>> err = ExecutionFailure("boom", cause=ValueError("bad input"))
    >>> err.retryable
    True
    >>> err.with_context(task="resize_image", attempt=2).context.task
    'resize_image'

    >>> final = RetriesExhausted(err, attempts=3)
    >>> final.last_error is err
    True

Tags:
    error-handling, exception-hierarchy, retry-logic, workpool

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing.

    Attributes:
        POOL: Pool lifecycle refused or dropped the work (shutdown, kill, cancel)
        EXECUTION: The task handler raised
        TIMEOUT: The task ran longer than its timeout
        CONFIG: Invalid settings or unknown handler names
        INTERNAL: Bugs, unexpected state
    """

    POOL = "POOL"
    EXECUTION = "EXECUTION"
    TIMEOUT = "TIMEOUT"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        task: Name of the task (registered name or handler qualname)
        item_id: Work item identifier
        execution_id: Identifier of the attempt that failed
        attempt: One-based attempt number
        elapsed: Seconds the attempt ran
        pool: Pool name
        metadata: Additional key-value pairs
    """

    task: str | None = None
    item_id: str | None = None
    execution_id: str | None = None
    attempt: int | None = None
    elapsed: float | None = None
    pool: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["task", "item_id", "execution_id", "attempt", "elapsed", "pool"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class WorkPoolError(Exception):
    """
    Base exception for all workpool errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    the common case needs nothing but a message.

    Examples:
        >>> error = WorkPoolError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["retryable"]
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> WorkPoolError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ExecutionFailure("Failed").with_context(task="thumbnail", attempt=1)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = repr(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# POOL LIFECYCLE ERRORS
# =============================================================================


class PoolInactive(WorkPoolError):
    """Work was submitted after ``shutdown()`` or ``kill()``."""

    default_category = ErrorCategory.POOL
    default_retryable = False


class PoolKilled(PoolInactive):
    """A queued work item was abandoned because the pool was killed.

    Also used when a running item failed with retry budget left but the
    pool had been killed in the meantime, so no retry could be queued.
    """


class TaskCancelled(WorkPoolError):
    """A queued work item was removed by ``cancel()`` before it started."""

    default_category = ErrorCategory.POOL
    default_retryable = False


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class ExecutionFailure(WorkPoolError):
    """A single attempt of a task failed.

    The exception raised by the handler is available as ``cause`` (and as
    ``__cause__`` for tracebacks).
    """

    default_category = ErrorCategory.EXECUTION
    default_retryable = True


class TimeoutExceeded(ExecutionFailure):
    """An attempt finished, but later than its timeout allowed.

    Detection is post-hoc: the handler always runs to completion first.

    Attributes:
        timeout: The timeout that was exceeded, in seconds
        elapsed: How long the attempt actually ran, in seconds
    """

    default_category = ErrorCategory.TIMEOUT

    def __init__(
        self,
        timeout: float,
        elapsed: float,
        *,
        task: str = "task",
        cause: BaseException | None = None,
    ):
        self.timeout = timeout
        self.elapsed = elapsed
        super().__init__(
            f"Task '{task}' timed out after {timeout}s (ran for {elapsed:.2f}s)",
            cause=cause,
        )


class RetriesExhausted(WorkPoolError):
    """A task failed on its last permitted attempt.

    Attributes:
        last_error: The ExecutionFailure (or TimeoutExceeded) of the final attempt
        attempts: Total number of attempts made
    """

    default_category = ErrorCategory.EXECUTION
    default_retryable = False

    def __init__(self, last_error: ExecutionFailure, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        noun = "attempt" if attempts == 1 else "attempts"
        super().__init__(
            f"Task failed after {attempts} {noun}: {last_error.message}",
            context=last_error.context,
            cause=last_error,
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(WorkPoolError):
    """Configuration-related error."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError, ValueError):
    """A pool or task setting has an invalid value."""


class HandlerNotFoundError(ConfigError, LookupError):
    """A task was submitted by a name nobody registered."""


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "WorkPoolError",
    "PoolInactive",
    "PoolKilled",
    "TaskCancelled",
    "ExecutionFailure",
    "TimeoutExceeded",
    "RetriesExhausted",
    "ConfigError",
    "InvalidConfigError",
    "HandlerNotFoundError",
]
