"""Inline Worker Executor — synchronous, in the dispatching thread.

Use for:
- Unit tests (deterministic ordering, no threads to wait for)
- Dry runs and debugging with a plain stack trace

Attempts run one after another on the pool's scheduler thread, so the
pool's capacity is never actually exercised in parallel.  Do not use in
production.

Tags:
    workpool, execution, executor, inline, testing

Doc-Types:
    api-reference
"""

from collections.abc import Callable
from concurrent.futures import Future
from typing import Any

from workpool.execution.executors.protocol import invoke_handler


class InlineWorkerExecutor:
    """Runs the handler immediately and returns an already-settled future."""

    name = "inline"

    def __init__(self):
        self.calls: list[str] = []

    def run(self, identity: str, handler: Callable[[Any], Any], payload: Any) -> Future:
        self.calls.append(identity)
        future: Future = Future()
        future.set_running_or_notify_cancel()
        try:
            future.set_result(invoke_handler(handler, payload))
        except BaseException as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait: bool = True) -> None:
        """Nothing to release."""
