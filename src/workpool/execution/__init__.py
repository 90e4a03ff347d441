"""
Execution layer: the pool, its scheduler, queue, records and worker backends.

Quick start::

    from workpool.execution import WorkPool

    with WorkPool(capacity=4, default_timeout=30.0, default_retries=2) as pool:
        future = pool.execute(fetch_page, {"url": "https://example.com"})
        page = future.result()
"""

from workpool.execution.executors import (
    InlineWorkerExecutor,
    ProcessWorkerExecutor,
    ThreadWorkerExecutor,
    WorkerExecutor,
    get_executor,
)
from workpool.execution.models import Execution, PoolState, PoolStats, WorkItem
from workpool.execution.pool import WorkPool
from workpool.execution.queue import TaskQueue
from workpool.execution.registry import (
    HandlerInfo,
    HandlerRegistry,
    get_default_registry,
    register_task,
    reset_default_registry,
)
from workpool.execution.scheduler import SchedulerLoop

__all__ = [
    "WorkPool",
    "SchedulerLoop",
    "TaskQueue",
    "WorkItem",
    "Execution",
    "PoolState",
    "PoolStats",
    "WorkerExecutor",
    "ThreadWorkerExecutor",
    "ProcessWorkerExecutor",
    "InlineWorkerExecutor",
    "get_executor",
    "HandlerRegistry",
    "HandlerInfo",
    "get_default_registry",
    "register_task",
    "reset_default_registry",
]
