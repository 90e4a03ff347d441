"""Worker backends for WorkPool.

All backends implement :class:`WorkerExecutor`.  ``get_executor(name)``
maps the ``backend`` setting to an instance.
"""

from workpool.core.errors import InvalidConfigError
from workpool.execution.executors.inline import InlineWorkerExecutor
from workpool.execution.executors.process import ProcessWorkerExecutor
from workpool.execution.executors.protocol import WorkerExecutor, invoke_handler
from workpool.execution.executors.thread import ThreadWorkerExecutor

_BACKENDS: dict[str, type] = {
    "thread": ThreadWorkerExecutor,
    "process": ProcessWorkerExecutor,
    "inline": InlineWorkerExecutor,
}


def get_executor(name: str) -> WorkerExecutor:
    """Build a backend by name (``thread``, ``process`` or ``inline``)."""
    try:
        backend = _BACKENDS[name]
    except KeyError:
        raise InvalidConfigError(
            f"Unknown worker backend {name!r}. Available backends: {sorted(_BACKENDS)}"
        ) from None
    return backend()


__all__ = [
    "WorkerExecutor",
    "ThreadWorkerExecutor",
    "ProcessWorkerExecutor",
    "InlineWorkerExecutor",
    "get_executor",
    "invoke_handler",
]
