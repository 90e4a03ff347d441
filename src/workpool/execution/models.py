"""Work item, execution and pool-state records.

ARCHITECTURE
────────────
::

    WorkItem   ─ born in WorkPool.execute(), lives until its future settles
      │           (queued ⇄ active, never both)
      ▼
    Execution  ─ one attempt of a WorkItem bound to a backend handle
      │           (exists only while dispatched)
      ▼
    PoolState  ─ capacity, queue, active set, flags, counters, and the
                  Condition that serialises every mutation

Related modules:
    queue.py      — TaskQueue holding WorkItems
    scheduler.py  — SchedulerLoop reconciling PoolState
    pool.py       — WorkPool owning a PoolState

Tags:
    workpool, execution, models, dataclass, lifecycle

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from workpool.execution.queue import TaskQueue


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def describe_task(task: Any) -> str:
    """Human-readable name for a task identity (registered name or callable)."""
    if isinstance(task, str):
        return task
    name = getattr(task, "__qualname__", None) or getattr(task, "__name__", None)
    if name is None and callable(task):
        # callable instances (partials, objects with __call__)
        name = type(task).__qualname__
    return name or repr(task)


@dataclass(eq=False)
class WorkItem:
    """A unit of submitted work.

    Attributes:
        task: Identity used for cancellation matching (name or callable)
        handler: Callable invoked as ``handler(payload)``
        payload: Argument passed to the handler
        timeout: Seconds an attempt may take; ``None`` or ``0`` disables the check
        retries: Initial retry budget
        future: Completion continuation handed back to the caller
        remaining_retries: Budget left; only ever decreases
        attempts: Attempts dispatched so far
    """

    task: Any
    handler: Callable[[Any], Any]
    payload: Any
    timeout: float | None
    retries: int
    future: Future = field(default_factory=Future)
    item_id: str = field(default_factory=lambda: f"wi-{uuid.uuid4().hex[:12]}")
    submitted_at: datetime = field(default_factory=utcnow)
    remaining_retries: int = field(init=False)
    attempts: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.remaining_retries = self.retries

    @property
    def task_name(self) -> str:
        return describe_task(self.task)

    def matches(self, task: Any) -> bool:
        """True if this item was submitted as ``task``."""
        return self.task is task or self.task == task

    def consume_retry(self) -> bool:
        """Spend one unit of retry budget; False if none was left."""
        if self.remaining_retries <= 0:
            return False
        self.remaining_retries -= 1
        return True


@dataclass(eq=False)
class Execution:
    """One attempt of a WorkItem, bound to a worker.

    ``started_at`` uses the monotonic clock; it is what the post-hoc
    timeout check compares against.
    """

    item: WorkItem
    attempt: int
    execution_id: str = field(default_factory=lambda: f"ex-{uuid.uuid4().hex[:12]}")
    started_at: float = field(default_factory=time.monotonic)
    handle: Future | None = None

    @property
    def elapsed(self) -> float:
        """Seconds since the attempt was dispatched."""
        return time.monotonic() - self.started_at

    def timed_out(self, elapsed: float | None = None) -> bool:
        """True if the item has a timeout and this attempt ran past it."""
        timeout = self.item.timeout
        if not timeout:
            return False
        return (self.elapsed if elapsed is None else elapsed) > timeout


@dataclass
class PoolState:
    """Mutable pool bookkeeping.

    Every read-modify-write happens while holding ``condition``; the
    scheduler waits on the same condition for its next wake-up.
    """

    capacity: int | None
    queue: TaskQueue = field(default_factory=TaskQueue)
    active: dict[str, Execution] = field(default_factory=dict)
    accepting: bool = True
    draining: bool = False
    terminated: bool = False
    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    retried: int = 0
    cancelled: int = 0
    abandoned: int = 0
    condition: threading.Condition = field(default_factory=threading.Condition, repr=False)

    def has_free_slot(self) -> bool:
        return self.capacity is None or len(self.active) < self.capacity

    def is_idle(self) -> bool:
        return not self.queue and not self.active


@dataclass(frozen=True)
class PoolStats:
    """Point-in-time snapshot of a pool."""

    name: str
    capacity: int | None
    active: int
    queued: int
    submitted: int
    succeeded: int
    failed: int
    retried: int
    cancelled: int
    abandoned: int
    accepting: bool
    draining: bool
    terminated: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "capacity": self.capacity,
            "active": self.active,
            "queued": self.queued,
            "submitted": self.submitted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "retried": self.retried,
            "cancelled": self.cancelled,
            "abandoned": self.abandoned,
            "accepting": self.accepting,
            "draining": self.draining,
            "terminated": self.terminated,
        }
