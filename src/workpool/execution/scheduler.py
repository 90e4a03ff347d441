"""SchedulerLoop — reconciles pool state whenever something changes.

The loop runs on one daemon thread per pool.  It sleeps on the pool's
condition and is woken by every event that can change what should run:
a submission, a completed attempt, a resize, a cancel, shutdown or kill.
Each wake-up performs one reconciliation under the lock and then hands
the resulting work to the pool outside the lock.

ARCHITECTURE
────────────
::

    wait on PoolState.condition
        │  (notify_all from execute / completion / resize / cancel / shutdown / kill)
        ▼
    _reconcile()                         ── holding the lock
        1. draining?  → clear queue (abandon), dispatch nothing
        2. free slot and queue non-empty?
              → pop front, skip if the caller cancelled the future,
                build Execution, add to active set
        3. intake stopped and idle? → mark terminated
        │
        ▼
    ReconcilePlan                        ── lock released
        on_abandon(items)   → pool rejects abandoned futures
        launch(execution)   → pool hands each execution to the backend
        on_terminate()      → pool finalises; loop exits

Because claiming a slot (step 2) happens inside the same critical section
as the capacity check, ``len(active) <= capacity`` holds at every
observable instant.  The loop never waits on a task result.

Tags:
    workpool, execution, scheduler, dispatch, event-driven

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from workpool.core.logging import get_logger
from workpool.execution.models import Execution, PoolState, WorkItem

logger = get_logger(__name__)


@dataclass
class ReconcilePlan:
    """What one reconciliation decided; carried out after the lock is released."""

    dispatch: list[Execution] = field(default_factory=list)
    abandoned: list[WorkItem] = field(default_factory=list)
    skipped: int = 0
    terminate: bool = False

    @property
    def needs_action(self) -> bool:
        return bool(self.dispatch or self.abandoned or self.terminate)


class SchedulerLoop:
    """Owns the dispatch decision for one pool.

    Args:
        state: Shared pool state (its condition is the only lock used)
        launch: Called with each claimed Execution, outside the lock
        on_abandon: Called with items dropped by a kill, outside the lock
        on_terminate: Called once when the pool has fully drained
        name: Pool name, used for the thread name and logs
    """

    def __init__(
        self,
        state: PoolState,
        *,
        launch: Callable[[Execution], None],
        on_abandon: Callable[[list[WorkItem]], None],
        on_terminate: Callable[[], None],
        name: str = "workpool",
    ):
        self._state = state
        self._launch = launch
        self._on_abandon = on_abandon
        self._on_terminate = on_terminate
        self._name = name
        self._thread = threading.Thread(target=self._run, name=f"{name}-scheduler", daemon=True)

    def start(self) -> None:
        self._thread.start()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _run(self) -> None:
        logger.debug("scheduler.started", pool=self._name)
        while True:
            with self._state.condition:
                plan = self._reconcile()
                while not plan.needs_action:
                    self._state.condition.wait()
                    plan = self._reconcile()

            if plan.abandoned:
                self._on_abandon(plan.abandoned)
            for execution in plan.dispatch:
                self._launch(execution)
            if plan.terminate:
                self._on_terminate()
                logger.debug("scheduler.stopped", pool=self._name)
                return

    def _reconcile(self) -> ReconcilePlan:
        state = self._state
        plan = ReconcilePlan()

        if state.draining:
            plan.abandoned = state.queue.clear()
            state.abandoned += len(plan.abandoned)
        else:
            while state.has_free_slot() and state.queue:
                item = state.queue.pop()
                # first attempt only; retried items already have a running future
                if item.attempts == 0 and not item.future.set_running_or_notify_cancel():
                    state.cancelled += 1
                    plan.skipped += 1
                    continue
                item.attempts += 1
                execution = Execution(item=item, attempt=item.attempts)
                state.active[execution.execution_id] = execution
                plan.dispatch.append(execution)

        if not state.accepting and state.is_idle() and not state.terminated:
            state.terminated = True
            plan.terminate = True

        if plan.skipped:
            logger.debug("scheduler.skipped_cancelled", pool=self._name, count=plan.skipped)
        return plan
