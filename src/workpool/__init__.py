"""
workpool — a bounded worker pool with per-task timeout and retry policy.

Work is queued while every slot is busy, dispatched to isolated
execution contexts (threads or processes), and settled through a
``concurrent.futures.Future`` per submission.  Pools can drain
gracefully (``shutdown``) or drop their queue at once (``kill``), and can
be resized while running.

    >>> from workpool import WorkPool
    >>> with WorkPool(capacity=2) as pool:
    ...     pool.execute(abs, -3).result()
    3
"""

from workpool.core.errors import (
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
from workpool.execution import (
    HandlerRegistry,
    InlineWorkerExecutor,
    PoolStats,
    ProcessWorkerExecutor,
    ThreadWorkerExecutor,
    WorkerExecutor,
    WorkPool,
    register_task,
)

__version__ = "0.1.0"

__all__ = [
    "WorkPool",
    "PoolStats",
    "HandlerRegistry",
    "register_task",
    "WorkerExecutor",
    "ThreadWorkerExecutor",
    "ProcessWorkerExecutor",
    "InlineWorkerExecutor",
    "WorkPoolError",
    "PoolInactive",
    "PoolKilled",
    "TaskCancelled",
    "ExecutionFailure",
    "TimeoutExceeded",
    "RetriesExhausted",
    "HandlerNotFoundError",
    "InvalidConfigError",
    "__version__",
]
