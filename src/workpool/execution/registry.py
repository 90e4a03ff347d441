"""Handler Registry — name → handler lookup for tasks submitted by name.

A task can be submitted to a pool either as a callable or as a name that
was registered here beforehand.  Names make cancellation by identity
straightforward (``pool.cancel("thumbnail")``) and keep process-backed
pools working with picklable, module-level handlers.

ARCHITECTURE
────────────
::

    HandlerRegistry
      ├── .register(name, handler)   ─ store handler + metadata
      ├── .resolve(task)             ─ task identity → handler (used by WorkPool.execute)
      ├── .get(name)                 ─ lookup (HandlerNotFoundError if missing)
      ├── .describe(name)            ─ name, description, tags, is_async
      └── .names()                   ─ registered names, sorted

    register_task(name)          ─ decorator on the default registry
    get_default_registry()       ─ module-level singleton
    reset_default_registry()     ─ fresh singleton, for tests

Tags:
    workpool, execution, registry, handler-registry, lookup

Doc-Types:
    api-reference
"""

from __future__ import annotations

import inspect
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from workpool.core.errors import HandlerNotFoundError

Handler = Callable[[Any], Any]


@dataclass(frozen=True)
class HandlerInfo:
    """What the registry knows about one named handler."""

    name: str
    handler: Handler
    description: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    is_async: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "tags": dict(self.tags), "is_async": self.is_async}


def _first_doc_line(handler: Handler) -> str | None:
    doc = inspect.getdoc(handler)
    return doc.splitlines()[0] if doc else None


class HandlerRegistry:
    """Thread-safe mapping of task names to handlers.

    Example:
        >>> registry = HandlerRegistry()
        >>> registry.register("double", lambda n: n * 2)
        >>> registry.resolve("double")(21)
        42
    """

    def __init__(self) -> None:
        self._entries: dict[str, HandlerInfo] = {}
        self._lock = threading.Lock()

    def register(
        self,
        name: str,
        handler: Handler,
        description: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> HandlerInfo:
        """Register ``handler`` under ``name``, replacing any previous entry.

        Coroutine functions are accepted; workers drive them with
        ``asyncio.run``.
        """
        if not callable(handler):
            raise TypeError(f"Handler for {name!r} must be callable, got {type(handler).__name__}")
        info = HandlerInfo(
            name=name,
            handler=handler,
            description=description or _first_doc_line(handler),
            tags=dict(tags or {}),
            is_async=inspect.iscoroutinefunction(handler),
        )
        with self._lock:
            self._entries[name] = info
        return info

    def unregister(self, name: str) -> bool:
        """Remove ``name``. Returns False if it was not registered."""
        with self._lock:
            return self._entries.pop(name, None) is not None

    def get(self, name: str) -> Handler:
        """Handler registered as ``name``.

        Raises:
            HandlerNotFoundError: If nothing is registered under ``name``
        """
        with self._lock:
            info = self._entries.get(name)
            if info is None:
                available = sorted(self._entries) or "none"
                raise HandlerNotFoundError(f"No handler registered for {name!r}. Available handlers: {available}")
            return info.handler

    def resolve(self, task: str | Handler) -> Handler:
        """Turn a submitted task identity into the callable to run.

        Strings are looked up by name; callables are their own handler.

        Raises:
            HandlerNotFoundError: If ``task`` is an unregistered name
            TypeError: If ``task`` is neither a string nor callable
        """
        if isinstance(task, str):
            return self.get(task)
        if callable(task):
            return task
        raise TypeError(f"task must be callable or a registered name, got {type(task).__name__}")

    def describe(self, name: str) -> HandlerInfo | None:
        with self._lock:
            return self._entries.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_default_registry: HandlerRegistry | None = None
_default_lock = threading.Lock()


def get_default_registry() -> HandlerRegistry:
    """Module-level registry, created on first use."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = HandlerRegistry()
        return _default_registry


def reset_default_registry() -> None:
    """Replace the default registry with an empty one."""
    global _default_registry
    with _default_lock:
        _default_registry = HandlerRegistry()


def register_task(
    name: str,
    registry: HandlerRegistry | None = None,
    description: str | None = None,
    tags: dict[str, str] | None = None,
) -> Callable[[Handler], Handler]:
    """Decorator form of :meth:`HandlerRegistry.register`.

    Example:
        >>> @register_task("thumbnail")
        ... def make_thumbnail(payload):
        ...     return {"path": payload["path"], "size": 128}
        >>> pool.execute("thumbnail", {"path": "a.png"})
    """

    def decorator(func: Handler) -> Handler:
        target = registry if registry is not None else get_default_registry()
        target.register(name, func, description, tags)
        return func

    return decorator
