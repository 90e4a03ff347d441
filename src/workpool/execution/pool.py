"""WorkPool — bounded worker pool with timeout, retry, and two shutdown modes.

Manifesto:
Running callables concurrently is easy; running them *boundedly* with a
retry budget, a timeout policy and a clean way to stop is where ad-hoc
thread code goes wrong.  ``WorkPool`` accepts work, queues it while every
slot is busy, dispatches it to isolated execution contexts and hands each
caller a ``concurrent.futures.Future`` that settles exactly once.

ARCHITECTURE
────────────
::

    WorkPool(capacity=4)
      ├── .execute(task, payload)  ─ enqueue, return Future
      ├── .cancel(task)            ─ drop queued items submitted as task
      ├── .resize(n)               ─ new capacity, applied on next reconcile
      ├── .shutdown()              ─ stop intake, let work drain
      ├── .kill()                  ─ stop intake, discard the queue
      └── .join() / .stats()

    execute ─▶ TaskQueue ─▶ SchedulerLoop ─▶ WorkerExecutor.run
                  ▲                               │
                  │ push_front (retry budget)     ▼
                  └──────────────  _complete(execution, handle)
                                                  │
                                 resolve / RetriesExhausted ─▶ caller's Future

Failure routing:
    Any failed attempt, including one that finished after its timeout,
    becomes an ExecutionFailure (or TimeoutExceeded).  With retry budget
    left, the item is put back at the *front* of the queue and nothing is
    surfaced.  Otherwise ``error_count`` goes up by one and the future is
    rejected with RetriesExhausted wrapping the last failure.

    Timeout is detected after the fact: a slow task always runs to its
    natural end; only then is its elapsed time compared to the timeout.

Shutdown modes:
    shutdown()  queued and running work completes, new submissions are
                rejected with PoolInactive.
    kill()      queued work is discarded at once and its futures are
                rejected with PoolKilled; running attempts finish and are
                still counted, but none is retried.

Examples:
    >>> with WorkPool(capacity=2, default_retries=1) as pool:
    ...     futures = [pool.execute(resize_image, {"path": p}) for p in paths]
    ...     thumbnails = [f.result() for f in futures]

    Named tasks and cancellation:

    >>> pool = WorkPool(capacity=1)
    >>> pool.register("thumbnail", make_thumbnail)
    >>> pending = [pool.execute("thumbnail", {"path": p}) for p in paths]
    >>> pool.cancel("thumbnail")   # drops whatever has not started yet

Tags:
    workpool, execution, worker-pool, retry, timeout, concurrency

Doc-Types:
    - API Reference
    - Concurrency Guide
"""

from __future__ import annotations

import asyncio
import itertools
import threading
from collections.abc import Callable
from concurrent.futures import Future, InvalidStateError
from typing import TYPE_CHECKING, Any

from workpool.core.errors import (
    ExecutionFailure,
    InvalidConfigError,
    PoolInactive,
    PoolKilled,
    RetriesExhausted,
    TaskCancelled,
    TimeoutExceeded,
)
from workpool.core.logging import get_logger
from workpool.execution.executors import WorkerExecutor, get_executor
from workpool.execution.models import Execution, PoolState, PoolStats, WorkItem, describe_task
from workpool.execution.registry import HandlerRegistry, get_default_registry
from workpool.execution.scheduler import SchedulerLoop

if TYPE_CHECKING:
    from workpool.core.settings import PoolSettings

logger = get_logger(__name__)

_DEFAULT: Any = object()
_pool_ids = itertools.count(1)


def _check_capacity(capacity: int | None) -> int | None:
    if capacity is not None and (isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0):
        raise InvalidConfigError(f"capacity must be a non-negative integer or None, got {capacity!r}")
    return capacity


def _check_timeout(timeout: float | None) -> float | None:
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout < 0):
        raise InvalidConfigError(f"timeout must be a non-negative number of seconds or None, got {timeout!r}")
    return timeout


def _check_retries(retries: int) -> int:
    if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
        raise InvalidConfigError(f"retries must be a non-negative integer, got {retries!r}")
    return retries


def _settle(future: Future, *, result: Any = None, error: BaseException | None = None) -> bool:
    """Resolve or reject a caller's future unless the caller cancelled it first."""
    if future.done():
        return False
    try:
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)
    except InvalidStateError:
        return False
    return True


class WorkPool:
    """Bounded pool of isolated workers.

    Args:
        capacity: Maximum concurrent executions. ``None`` or ``0`` means
            unbounded; use ``resize(0)`` to pause dispatch.
        default_timeout: Seconds an attempt may take before it counts as a
            timeout failure. ``None`` or ``0`` disables the check.
        default_retries: Re-attempts allowed after a failure.
        auto_shutdown: Release a backend the pool built itself as soon as
            the pool drains after ``shutdown()`` or ``kill()``. Without it
            the backend is released when the ``with`` block exits.
        executor: A WorkerExecutor, or a backend name (``thread``,
            ``process``, ``inline``). Instances passed in are never shut
            down by the pool.
        registry: Handler registry for tasks submitted by name. Defaults to
            the module-level registry.
        name: Pool name for thread names and logs.
    """

    def __init__(
        self,
        capacity: int | None = None,
        default_timeout: float | None = 5.0,
        default_retries: int = 0,
        auto_shutdown: bool = False,
        *,
        executor: WorkerExecutor | str | None = None,
        registry: HandlerRegistry | None = None,
        name: str | None = None,
    ):
        capacity = _check_capacity(capacity) or None
        self._name = name or f"workpool-{next(_pool_ids)}"
        self._default_timeout = _check_timeout(default_timeout)
        self._default_retries = _check_retries(default_retries)
        self._auto_shutdown = auto_shutdown

        if executor is None or isinstance(executor, str):
            self._executor = get_executor(executor or "thread")
            self._owns_executor = True
        else:
            self._executor = executor
            self._owns_executor = False

        self._registry = registry if registry is not None else get_default_registry()
        self._state = PoolState(capacity=capacity)
        self._terminated = threading.Event()
        self._log = logger.bind(pool=self._name)

        self._scheduler = SchedulerLoop(
            self._state,
            launch=self._launch,
            on_abandon=self._reject_abandoned,
            on_terminate=self._finalize,
            name=self._name,
        )
        self._scheduler.start()
        self._log.info(
            "pool.started",
            capacity=capacity,
            default_timeout=default_timeout,
            default_retries=default_retries,
            auto_shutdown=auto_shutdown,
            backend=getattr(self._executor, "name", type(self._executor).__name__),
        )

    @classmethod
    def from_settings(cls, settings: PoolSettings | None = None, **overrides: Any) -> WorkPool:
        """Build a pool from :class:`~workpool.core.settings.PoolSettings`.

        Keyword overrides win over the settings (e.g. ``name=``, ``registry=``).
        """
        from workpool.core.settings import get_settings

        settings = settings or get_settings()
        kwargs: dict[str, Any] = {
            "capacity": settings.capacity,
            "default_timeout": settings.default_timeout,
            "default_retries": settings.default_retries,
            "auto_shutdown": settings.auto_shutdown,
            "executor": settings.backend,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    # ── Handler registration ─────────────────────────────────────────

    def register(self, name: str, handler: Callable[[Any], Any], description: str | None = None) -> None:
        """Register ``handler`` so it can be submitted as ``name``."""
        self._registry.register(name, handler, description=description)

    # ── Submission ───────────────────────────────────────────────────

    def execute(
        self,
        task: Callable[[Any], Any] | str,
        payload: Any = None,
        timeout: float | None = _DEFAULT,
        retries: int = _DEFAULT,
    ) -> Future:
        """Queue ``task(payload)`` and return a future for its result.

        Args:
            task: A callable, or the name of a registered handler. This is
                also the identity ``cancel()`` matches against.
            payload: Argument passed to the handler.
            timeout: Seconds before an attempt counts as timed out; defaults
                to the pool's ``default_timeout``. ``None``/``0`` disables.
            retries: Re-attempts allowed; defaults to ``default_retries``.

        Returns:
            Future resolved with the handler's return value, or rejected
            with RetriesExhausted, PoolKilled or TaskCancelled. If the pool
            no longer accepts work the future is already rejected with
            PoolInactive, whatever ``task`` is.

        Raises:
            InvalidConfigError: If ``timeout`` or ``retries`` is invalid
            HandlerNotFoundError: If ``task`` is an unregistered name
            TypeError: If ``task`` is neither a string nor callable
        """
        if not self.is_active:
            return self._reject_inactive(describe_task(task))

        timeout = self._default_timeout if timeout is _DEFAULT else _check_timeout(timeout)
        retries = self._default_retries if retries is _DEFAULT else _check_retries(retries)

        handler = self._registry.resolve(task)
        item = WorkItem(task=task, handler=handler, payload=payload, timeout=timeout, retries=retries)

        with self._state.condition:
            accepted = self._state.accepting
            if accepted:
                self._state.queue.push(item)
                self._state.submitted += 1
                queued = len(self._state.queue)
                self._state.condition.notify_all()

        if not accepted:
            return self._reject_inactive(item.task_name, item.future)

        self._log.debug(
            "pool.submitted", task=item.task_name, item_id=item.item_id, timeout=timeout, retries=retries, queued=queued
        )
        return item.future

    def execute_async(
        self,
        task: Callable[[Any], Any] | str,
        payload: Any = None,
        timeout: float | None = _DEFAULT,
        retries: int = _DEFAULT,
    ) -> asyncio.Future:
        """Like :meth:`execute`, but awaitable from the running event loop."""
        return asyncio.wrap_future(self.execute(task, payload, timeout, retries))

    # ── Control ──────────────────────────────────────────────────────

    def cancel(self, task: Callable[[Any], Any] | str) -> int:
        """Remove queued work submitted as ``task``.

        Running executions of the same task are not affected. Removed
        futures are rejected with TaskCancelled.

        Returns:
            Number of queued items removed
        """
        with self._state.condition:
            removed = self._state.queue.remove_matching(task)
            self._state.cancelled += len(removed)
            if removed:
                self._state.condition.notify_all()

        for item in removed:
            _settle(
                item.future,
                error=TaskCancelled(f"Task '{item.task_name}' was cancelled before it started").with_context(
                    task=item.task_name, item_id=item.item_id, pool=self._name
                ),
            )
        if removed:
            self._log.info("pool.cancelled", task=removed[0].task_name, count=len(removed))
        return len(removed)

    def resize(self, capacity: int | None) -> None:
        """Change capacity. Takes effect on the next reconciliation.

        Shrinking never interrupts running executions; it only holds back
        new dispatches until the active set fits.
        """
        capacity = _check_capacity(capacity)
        with self._state.condition:
            previous = self._state.capacity
            self._state.capacity = capacity
            self._state.condition.notify_all()
        self._log.info("pool.resized", previous=previous, capacity=capacity)

    def shutdown(self, wait: bool = False, timeout: float | None = None) -> None:
        """Stop accepting work; queued and running work drains normally.

        Args:
            wait: Block until the pool has terminated
            timeout: Maximum seconds to wait when ``wait`` is true
        """
        with self._state.condition:
            changed = self._state.accepting
            self._state.accepting = False
            self._state.condition.notify_all()
        if changed:
            self._log.info("pool.shutdown", queued=self.queued_count, active=self.active_count)
        if wait:
            self.join(timeout)

    def kill(self, wait: bool = False, timeout: float | None = None) -> None:
        """Stop accepting work and discard everything still queued.

        Queued futures are rejected with PoolKilled. Running executions are
        not aborted: they finish and are counted, but are never retried.
        """
        with self._state.condition:
            self._state.accepting = False
            self._state.draining = True
            abandoned = self._state.queue.clear()
            self._state.abandoned += len(abandoned)
            active = len(self._state.active)
            self._state.condition.notify_all()

        self._log.warning("pool.killed", abandoned=len(abandoned), active=active)
        self._reject_abandoned(abandoned)
        if wait:
            self.join(timeout)

    def join(self, timeout: float | None = None) -> bool:
        """Block until the pool has terminated. Returns False on timeout."""
        return self._terminated.wait(timeout)

    # ── Introspection ────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def executor(self) -> WorkerExecutor:
        return self._executor

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def capacity(self) -> int | None:
        return self._state.capacity

    @property
    def active_count(self) -> int:
        with self._state.condition:
            return len(self._state.active)

    @property
    def queued_count(self) -> int:
        with self._state.condition:
            return len(self._state.queue)

    @property
    def success_count(self) -> int:
        return self._state.succeeded

    @property
    def error_count(self) -> int:
        return self._state.failed

    @property
    def is_active(self) -> bool:
        """True while the pool accepts new work."""
        return self._state.accepting

    @property
    def is_terminated(self) -> bool:
        return self._terminated.is_set()

    def stats(self) -> PoolStats:
        """Consistent snapshot of counters and flags."""
        with self._state.condition:
            state = self._state
            return PoolStats(
                name=self._name,
                capacity=state.capacity,
                active=len(state.active),
                queued=len(state.queue),
                submitted=state.submitted,
                succeeded=state.succeeded,
                failed=state.failed,
                retried=state.retried,
                cancelled=state.cancelled,
                abandoned=state.abandoned,
                accepting=state.accepting,
                draining=state.draining,
                terminated=state.terminated,
            )

    # ── Execution lifecycle ──────────────────────────────────────────

    def _launch(self, execution: Execution) -> None:
        item = execution.item
        self._log.debug(
            "pool.dispatched",
            task=item.task_name,
            item_id=item.item_id,
            execution_id=execution.execution_id,
            attempt=execution.attempt,
        )
        try:
            handle = self._executor.run(item.task_name, item.handler, item.payload)
        except Exception as exc:
            handle = Future()
            handle.set_exception(exc)
        execution.handle = handle
        handle.add_done_callback(lambda done: self._complete(execution, done))

    def _complete(self, execution: Execution, handle: Future) -> None:
        """Route one finished attempt: resolve, requeue, or reject."""
        elapsed = execution.elapsed
        item = execution.item
        failure = self._failure_for(execution, handle, elapsed)
        result = handle.result() if failure is None else None

        requeued = False
        error: Exception | None = None
        with self._state.condition:
            self._state.active.pop(execution.execution_id, None)
            if failure is None:
                self._state.succeeded += 1
            elif not self._state.draining and item.consume_retry():
                self._state.queue.push_front(item)
                self._state.retried += 1
                requeued = True
            else:
                self._state.failed += 1
                if self._state.draining and item.remaining_retries > 0:
                    error = PoolKilled(
                        f"Pool '{self._name}' was killed before '{item.task_name}' could be retried",
                        context=failure.context,
                        cause=failure,
                    )
                else:
                    error = RetriesExhausted(failure, attempts=item.attempts)
            self._state.condition.notify_all()

        if requeued:
            self._log.info(
                "pool.retry_scheduled",
                task=item.task_name,
                item_id=item.item_id,
                attempt=execution.attempt,
                remaining_retries=item.remaining_retries,
                error=failure.message,
            )
            return

        if failure is None:
            _settle(item.future, result=result)
            self._log.debug("pool.succeeded", task=item.task_name, item_id=item.item_id, elapsed=round(elapsed, 4))
        else:
            _settle(item.future, error=error)
            self._log.warning("pool.failed", **error.to_dict())

    def _failure_for(self, execution: Execution, handle: Future, elapsed: float) -> ExecutionFailure | None:
        item = execution.item
        raised: BaseException | None
        if handle.cancelled():
            raised = None
            failure: ExecutionFailure | None = ExecutionFailure(f"Task '{item.task_name}' was cancelled by its backend")
        else:
            raised = handle.exception()
            failure = None
            if raised is not None:
                failure = ExecutionFailure(f"Task '{item.task_name}' raised {type(raised).__name__}: {raised}", cause=raised)

        if execution.timed_out(elapsed):
            failure = TimeoutExceeded(item.timeout, elapsed, task=item.task_name, cause=raised)

        if failure is not None:
            failure.with_context(
                task=item.task_name,
                item_id=item.item_id,
                execution_id=execution.execution_id,
                attempt=execution.attempt,
                elapsed=round(elapsed, 4),
                pool=self._name,
            )
        return failure

    def _reject_abandoned(self, items: list[WorkItem]) -> None:
        for item in items:
            _settle(
                item.future,
                error=PoolKilled(f"Pool '{self._name}' was killed before '{item.task_name}' started").with_context(
                    task=item.task_name, item_id=item.item_id, pool=self._name
                ),
            )

    def _reject_inactive(self, task_name: str, future: Future | None = None) -> Future:
        future = future if future is not None else Future()
        self._log.warning("pool.rejected", task=task_name, reason="inactive")
        future.set_exception(
            PoolInactive(f"Pool '{self._name}' is no longer accepting work").with_context(task=task_name, pool=self._name)
        )
        return future

    def _release_executor(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def _finalize(self) -> None:
        if self._auto_shutdown:
            self._release_executor()
            self._log.info("pool.auto_shutdown", released=self._owns_executor)
        self._log.info("pool.terminated", **self.stats().to_dict())
        self._terminated.set()

    # ── Context manager ──────────────────────────────────────────────

    def __enter__(self) -> WorkPool:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)
        self._release_executor()

    def __repr__(self) -> str:
        stats = self.stats()
        return (
            f"WorkPool(name={self._name!r}, capacity={stats.capacity}, active={stats.active}, "
            f"queued={stats.queued}, accepting={stats.accepting})"
        )
