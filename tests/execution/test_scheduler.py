"""Tests for SchedulerLoop reconciliation.

``_reconcile`` is exercised directly on a PoolState with a loop that is
never started, so every decision can be checked without threads.
"""

from __future__ import annotations

import pytest

from workpool.execution.models import PoolState, WorkItem
from workpool.execution.scheduler import ReconcilePlan, SchedulerLoop


def noop(payload):
    return payload


def make_item(task=noop, payload=None) -> WorkItem:
    return WorkItem(task=task, handler=task, payload=payload, timeout=None, retries=0)


def make_loop(state: PoolState, **kwargs) -> SchedulerLoop:
    return SchedulerLoop(
        state,
        launch=lambda execution: None,
        on_abandon=lambda items: None,
        on_terminate=lambda: None,
        **kwargs,
    )


def submit(state: PoolState, *items: WorkItem) -> None:
    for item in items:
        state.queue.push(item)
        state.submitted += 1


class TestReconcilePlan:
    def test_empty_plan_needs_no_action(self):
        assert not ReconcilePlan().needs_action

    def test_skipped_alone_needs_no_action(self):
        assert not ReconcilePlan(skipped=3).needs_action

    def test_terminate_needs_action(self):
        assert ReconcilePlan(terminate=True).needs_action


class TestDispatch:
    def test_fills_free_slots_in_fifo_order(self):
        state = PoolState(capacity=2)
        items = [make_item(payload=n) for n in range(3)]
        submit(state, *items)

        plan = make_loop(state)._reconcile()

        assert [e.item for e in plan.dispatch] == items[:2]
        assert len(state.active) == 2
        assert list(state.queue) == [items[2]]
        assert all(e.attempt == 1 for e in plan.dispatch)

    def test_no_free_slot_dispatches_nothing(self):
        state = PoolState(capacity=1)
        submit(state, make_item(), make_item())
        loop = make_loop(state)
        loop._reconcile()

        plan = loop._reconcile()

        assert plan.dispatch == []
        assert len(state.queue) == 1

    def test_unbounded_dispatches_everything(self):
        state = PoolState(capacity=None)
        submit(state, *(make_item(payload=n) for n in range(5)))

        plan = make_loop(state)._reconcile()

        assert len(plan.dispatch) == 5
        assert not state.queue

    def test_zero_capacity_dispatches_nothing(self):
        state = PoolState(capacity=0)
        submit(state, make_item())

        assert make_loop(state)._reconcile().dispatch == []

    def test_retried_item_keeps_counting_attempts(self):
        state = PoolState(capacity=1)
        item = make_item()
        submit(state, item)
        loop = make_loop(state)
        first = loop._reconcile().dispatch[0]

        state.active.pop(first.execution_id)
        state.queue.push_front(item)
        second = loop._reconcile().dispatch[0]

        assert second.attempt == 2
        assert second.execution_id != first.execution_id

    def test_caller_cancelled_item_is_skipped(self):
        state = PoolState(capacity=1)
        cancelled, kept = make_item(payload="c"), make_item(payload="k")
        submit(state, cancelled, kept)
        cancelled.future.cancel()

        plan = make_loop(state)._reconcile()

        assert [e.item for e in plan.dispatch] == [kept]
        assert plan.skipped == 1
        assert state.cancelled == 1
        assert kept.future.running()


class TestDraining:
    def test_abandons_queue_when_draining(self):
        state = PoolState(capacity=1)
        items = [make_item(), make_item()]
        submit(state, *items)
        state.draining = True
        state.accepting = False

        plan = make_loop(state)._reconcile()

        assert plan.abandoned == items
        assert plan.dispatch == []
        assert state.abandoned == 2
        assert plan.terminate


class TestTermination:
    def test_terminates_once_idle_and_closed(self):
        state = PoolState(capacity=1)
        state.accepting = False
        loop = make_loop(state)

        assert loop._reconcile().terminate
        assert state.terminated
        assert not loop._reconcile().terminate

    def test_does_not_terminate_while_work_is_active(self):
        state = PoolState(capacity=1)
        submit(state, make_item())
        loop = make_loop(state)
        loop._reconcile()
        state.accepting = False

        assert not loop._reconcile().terminate

    def test_open_pool_never_terminates(self):
        state = PoolState(capacity=1)
        assert not make_loop(state)._reconcile().terminate


class TestIdlePool:
    @pytest.mark.parametrize("submitted", [0, 1, 50])
    def test_idle_pool_keeps_accepting(self, submitted):
        state = PoolState(capacity=1)
        state.submitted = submitted

        plan = make_loop(state)._reconcile()

        assert not plan.needs_action
        assert state.accepting
        assert not state.terminated

    def test_stopped_idle_pool_terminates_after_work(self):
        state = PoolState(capacity=1)
        state.submitted = 3
        state.accepting = False

        assert make_loop(state)._reconcile().terminate


class TestLoopThread:
    def test_runs_plan_and_stops_after_termination(self):
        state = PoolState(capacity=1)
        launched, terminated = [], []
        loop = SchedulerLoop(
            state,
            launch=launched.append,
            on_abandon=lambda items: None,
            on_terminate=lambda: terminated.append(True),
            name="loop-test",
        )
        item = make_item()
        submit(state, item)
        loop.start()

        with state.condition:
            assert state.condition.wait_for(lambda: state.active, timeout=5)
            state.active.clear()
            state.accepting = False
            state.condition.notify_all()
        loop.join(timeout=5)

        assert not loop.is_running
        assert [e.item for e in launched] == [item]
        assert terminated == [True]
