"""Thread Worker Executor — one fresh thread per attempt.

Manifesto:
The pool already bounds concurrency, so the backend must not add a second
bound of its own: a fixed-size ``ThreadPoolExecutor`` would quietly queue
attempts the pool counts as running, and the timeout clock would include
that hidden wait.  ``ThreadWorkerExecutor`` starts a dedicated daemon
thread for every attempt and lets it end with the handler.  Resizing the
pool therefore needs nothing from the backend.

ARCHITECTURE
────────────
::

    ThreadWorkerExecutor
      ├── .run(identity, handler, payload) ─ start thread, return Future
      ├── .live_count                     ─ threads still running
      └── .shutdown(wait)                 ─ refuse new runs, optionally join

Tags:
    workpool, execution, executor, thread, concurrency

Doc-Types:
    api-reference
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any

from workpool.core.logging import get_logger
from workpool.execution.executors.protocol import invoke_handler

logger = get_logger(__name__)


class ThreadWorkerExecutor:
    """Runs each attempt on its own daemon thread.

    Parameters
    ----------
    thread_name_prefix : str
        Prefix for worker thread names (``<prefix>-<identity>-<n>``).
    """

    name = "thread"

    def __init__(self, thread_name_prefix: str = "workpool") -> None:
        self._prefix = thread_name_prefix
        self._counter = itertools.count(1)
        self._threads: set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._shutdown = False

    def run(self, identity: str, handler: Callable[[Any], Any], payload: Any) -> Future:
        """Start ``handler(payload)`` on a new thread.

        Raises:
            RuntimeError: If the executor has been shut down
        """
        future: Future = Future()
        future.set_running_or_notify_cancel()

        def _target() -> None:
            try:
                result = invoke_handler(handler, payload)
            except BaseException as exc:  # handler errors belong to the future
                future.set_exception(exc)
            else:
                future.set_result(result)
            finally:
                with self._lock:
                    self._threads.discard(threading.current_thread())

        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot run new tasks after shutdown")
            thread = threading.Thread(
                target=_target,
                name=f"{self._prefix}-{identity}-{next(self._counter)}",
                daemon=True,
            )
            self._threads.add(thread)
        thread.start()
        return future

    @property
    def live_count(self) -> int:
        """Number of attempt threads still running."""
        with self._lock:
            return len(self._threads)

    def shutdown(self, wait: bool = True) -> None:
        """Refuse new attempts; join running threads if ``wait``."""
        with self._lock:
            self._shutdown = True
            threads = list(self._threads)
        if wait:
            for thread in threads:
                if thread is not threading.current_thread():
                    thread.join()
        logger.debug("thread_executor.shutdown", wait=wait, live=len(threads))
