"""
Shared pytest fixtures and configuration for workpool tests.

This module provides:
- Registry and settings cleanup for test isolation
- ``make_pool``: builds pools that are always torn down
- ``gated``: a task whose attempts block until the test releases them
- ``wait_until``: poll a condition with a deadline
"""

import os
import sys
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

# Ensure workpool package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from workpool.core.settings import clear_settings_cache
from workpool.execution.pool import WorkPool
from workpool.execution.registry import reset_default_registry


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_registry() -> Iterator[None]:
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in list(os.environ):
        if key.startswith("WORKPOOL_"):
            monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Pools
# =============================================================================


@pytest.fixture
def make_pool() -> Iterator[Callable[..., WorkPool]]:
    """Factory for pools; every pool is killed and joined at teardown."""
    pools: list[WorkPool] = []

    def factory(*args: Any, **kwargs: Any) -> WorkPool:
        pool = WorkPool(*args, **kwargs)
        pools.append(pool)
        return pool

    yield factory

    for pool in pools:
        pool.kill()
        pool.join(timeout=5)


# =============================================================================
# Helpers
# =============================================================================


def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    return _wait_until


class GatedTask:
    """Callable task whose attempts block until released.

    Each payload has its own gate, so tests can finish attempts one at a
    time.  The task records start order, end order and peak concurrency.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._gates: dict[Any, threading.Event] = {}
        self.started: list[Any] = []
        self.finished: list[Any] = []
        self.running = 0
        self.peak = 0
        self._release_all = False

    def gate(self, payload: Any) -> threading.Event:
        with self._lock:
            return self._gates.setdefault(payload, threading.Event())

    def release(self, payload: Any) -> None:
        self.gate(payload).set()

    def release_all(self) -> None:
        with self._lock:
            self._release_all = True
            gates = list(self._gates.values())
        for gate in gates:
            gate.set()

    def __call__(self, payload: Any) -> Any:
        gate = self.gate(payload)
        with self._lock:
            if self._release_all:
                gate.set()
            self.started.append(payload)
            self.running += 1
            self.peak = max(self.peak, self.running)
        try:
            if not gate.wait(timeout=10):
                raise TimeoutError(f"gate for {payload!r} was never released")
            return payload
        finally:
            with self._lock:
                self.running -= 1
                self.finished.append(payload)


@pytest.fixture
def gated() -> Iterator[GatedTask]:
    task = GatedTask()
    yield task
    task.release_all()
