"""Process Worker Executor — one worker process per attempt.

Manifesto:
Threads share the interpreter; a handler that leaks globals, holds the
GIL for seconds or crashes the interpreter takes its neighbours with it.
``ProcessWorkerExecutor`` gives every attempt a single-worker
``ProcessPoolExecutor`` of its own and shuts it down once the result is
delivered, so each attempt starts from a clean process.

Handlers and payloads cross the process boundary by pickling: handlers
must be module-level functions (register them by name and submit the
name), payloads plain data.

ARCHITECTURE
────────────
::

    ProcessWorkerExecutor
      ├── .run(identity, handler, payload) ─ new 1-worker ProcessPool, submit
      │                                      (pool shut down on completion)
      └── .shutdown(wait)                  ─ refuse new runs, optionally drain

Guardrails:
    - Lambdas and closures are not picklable; the attempt fails with the
      pickling error and goes through normal retry routing.
    - A worker process that dies surfaces as ``BrokenProcessPool`` on the
      attempt's future.

Tags:
    workpool, execution, executor, process-pool, isolation, CPU-bound

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ProcessPoolExecutor
from multiprocessing.context import BaseContext
from typing import Any

from workpool.core.logging import get_logger
from workpool.execution.executors.protocol import invoke_handler

logger = get_logger(__name__)


class ProcessWorkerExecutor:
    """Runs each attempt in a dedicated worker process.

    Parameters
    ----------
    mp_context : multiprocessing context, optional
        Start-method context passed to every ``ProcessPoolExecutor``
        (e.g. ``multiprocessing.get_context("spawn")``).
    """

    name = "process"

    def __init__(self, mp_context: BaseContext | None = None) -> None:
        self._mp_context = mp_context
        self._pools: set[ProcessPoolExecutor] = set()
        self._lock = threading.Lock()
        self._shutdown = False

    def run(self, identity: str, handler: Callable[[Any], Any], payload: Any) -> Future:
        """Submit ``handler(payload)`` to a fresh single-process pool.

        Raises:
            RuntimeError: If the executor has been shut down
        """
        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot run new tasks after shutdown")
            pool = ProcessPoolExecutor(max_workers=1, mp_context=self._mp_context)
            self._pools.add(pool)

        future = pool.submit(invoke_handler, handler, payload)
        future.add_done_callback(lambda _: self._retire(pool))
        logger.debug("process_executor.submitted", identity=identity)
        return future

    def _retire(self, pool: ProcessPoolExecutor) -> None:
        # runs on the pool's own manager thread, which must not shut itself down
        with self._lock:
            self._pools.discard(pool)
        threading.Thread(target=pool.shutdown, kwargs={"wait": True}, name="workpool-reaper", daemon=True).start()

    def shutdown(self, wait: bool = True) -> None:
        """Refuse new attempts; drain running worker processes if ``wait``."""
        with self._lock:
            self._shutdown = True
            pools = list(self._pools)
        for pool in pools:
            pool.shutdown(wait=wait)
        logger.info("process_executor.shutdown", wait=wait, live=len(pools))
