"""WorkerExecutor Protocol — the single backend interface.

Manifesto:
A pool decides *when* a task runs; a backend decides *where*.  Whatever
the isolation mechanism (a fresh thread, a fresh process, the calling
thread for tests), the pool only needs a uniform way to start one attempt
and learn its outcome.  ``WorkerExecutor`` is a ``typing.Protocol``: any
object with the right methods satisfies it, no base class required.

ARCHITECTURE
────────────
::

    WorkerExecutor (Protocol)
      ├── .run(identity, handler, payload) ─ start one attempt, return Future
      └── .shutdown(wait)                  ─ release backend resources

    Implementations:
      ThreadWorkerExecutor   ─ one thread per attempt      (default)
      ProcessWorkerExecutor  ─ one process per attempt     (CPU-bound / isolation)
      InlineWorkerExecutor   ─ calling thread, synchronous (testing)

Contract:
    - The returned future settles exactly once: ``set_result`` with the
      handler's return value, or ``set_exception`` with what it raised.
    - ``run()`` must not block the caller on the handler.  Only
      ``InlineWorkerExecutor`` breaks this, on purpose.
    - The execution context is torn down after the handler returns,
      whatever the outcome.

Related modules:
    thread.py   — ThreadWorkerExecutor
    process.py  — ProcessWorkerExecutor
    inline.py   — InlineWorkerExecutor

Tags:
    workpool, execution, executor, protocol, interface

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class WorkerExecutor(Protocol):
    """Backend adapter - how one attempt of a task gets executed.

    Example implementation:
        >>> class MyExecutor:
        ...     name = "mine"
        ...
        ...     def run(self, identity, handler, payload):
        ...         future = Future()
        ...         future.set_result(handler(payload))
        ...         return future
        ...
        ...     def shutdown(self, wait=True):
        ...         pass
    """

    name: str

    def run(self, identity: str, handler: Callable[[Any], Any], payload: Any) -> Future:
        """Start one attempt.

        Args:
            identity: Readable task name, used for thread/process naming and logs
            handler: Callable invoked as ``handler(payload)``
            payload: The handler's argument

        Returns:
            Future settled with the handler's result or exception
        """
        ...

    def shutdown(self, wait: bool = True) -> None:
        """Release backend resources.

        Args:
            wait: Block until attempts already started have finished
        """
        ...


def invoke_handler(handler: Callable[[Any], Any], payload: Any) -> Any:
    """Call ``handler(payload)``, driving coroutine handlers to completion.

    Module-level so that process backends can pickle it.
    """
    if inspect.iscoroutinefunction(handler):
        return asyncio.run(handler(payload))
    result = handler(payload)
    if inspect.isawaitable(result):
        return asyncio.run(_await(result))
    return result


async def _await(awaitable: Any) -> Any:
    return await awaitable
