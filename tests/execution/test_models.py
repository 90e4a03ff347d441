"""Tests for WorkItem, Execution, PoolState and PoolStats."""

from __future__ import annotations

import functools
import time

import pytest

from workpool.execution.models import Execution, PoolState, PoolStats, WorkItem, describe_task


def resize(payload):
    return payload


class Resizer:
    def __call__(self, payload):
        return payload


def make_item(**overrides) -> WorkItem:
    values = {"task": resize, "handler": resize, "payload": None, "timeout": None, "retries": 0}
    values.update(overrides)
    return WorkItem(**values)


class TestDescribeTask:
    @pytest.mark.parametrize(
        ("task", "expected"),
        [
            ("thumbnail", "thumbnail"),
            (resize, "resize"),
            (Resizer(), "Resizer"),
            (functools.partial(resize), "partial"),
            (len, "len"),
        ],
    )
    def test_names(self, task, expected):
        assert describe_task(task) == expected


class TestWorkItem:
    def test_defaults(self):
        item = make_item(retries=2)
        assert item.remaining_retries == 2
        assert item.attempts == 0
        assert item.item_id.startswith("wi-")
        assert not item.future.done()
        assert item.submitted_at.tzinfo is not None

    def test_consume_retry_until_exhausted(self):
        item = make_item(retries=2)
        assert item.consume_retry()
        assert item.consume_retry()
        assert not item.consume_retry()
        assert item.remaining_retries == 0

    def test_matches(self):
        named = make_item(task="resize")
        assert named.matches("resize")
        assert not named.matches(resize)
        assert make_item().matches(resize)

    def test_items_are_distinct(self):
        a, b = make_item(), make_item()
        assert a != b
        assert a.item_id != b.item_id


class TestExecution:
    def test_timed_out_with_explicit_elapsed(self):
        execution = Execution(item=make_item(timeout=1.0), attempt=1)
        assert execution.timed_out(1.5)
        assert not execution.timed_out(0.5)
        assert not execution.timed_out(1.0)

    @pytest.mark.parametrize("timeout", [None, 0])
    def test_disabled_timeout_never_fires(self, timeout):
        execution = Execution(item=make_item(timeout=timeout), attempt=1)
        assert not execution.timed_out(1_000)

    def test_elapsed_uses_monotonic_clock(self):
        execution = Execution(item=make_item(timeout=0.01), attempt=1)
        time.sleep(0.02)
        assert execution.elapsed >= 0.02
        assert execution.timed_out()


class TestPoolState:
    def test_free_slot(self):
        state = PoolState(capacity=1)
        assert state.has_free_slot()
        state.active["x"] = Execution(item=make_item(), attempt=1)
        assert not state.has_free_slot()

    def test_unbounded_always_has_a_slot(self):
        state = PoolState(capacity=None)
        for n in range(10):
            state.active[str(n)] = Execution(item=make_item(), attempt=1)
        assert state.has_free_slot()

    def test_idle(self):
        state = PoolState(capacity=1)
        assert state.is_idle()
        state.queue.push(make_item())
        assert not state.is_idle()


class TestPoolStats:
    def test_to_dict_round_trips_fields(self):
        stats = PoolStats(
            name="p",
            capacity=2,
            active=1,
            queued=3,
            submitted=10,
            succeeded=5,
            failed=1,
            retried=2,
            cancelled=0,
            abandoned=0,
            accepting=True,
            draining=False,
            terminated=False,
        )
        data = stats.to_dict()
        assert data["queued"] == 3
        assert data["retried"] == 2
        assert set(data) == set(PoolStats.__dataclass_fields__)
