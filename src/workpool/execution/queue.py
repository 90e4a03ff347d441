"""TaskQueue — ordered holding area for work that has not been dispatched.

Fresh submissions go to the back; a failed item that still has retry
budget goes to the front, so it is attempted again before anything
submitted after its failure.  Cancellation removes items by the identity
they were submitted with.

The queue itself is not thread-safe; :class:`~workpool.execution.models.PoolState`
guards it with the pool condition.

Tags:
    workpool, execution, queue, fifo, retry

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from workpool.execution.models import WorkItem


class TaskQueue:
    """Deque of WorkItems with front-insertion and identity removal."""

    def __init__(self) -> None:
        self._items: deque[WorkItem] = deque()

    def push(self, item: WorkItem) -> None:
        """Append to the back (new submissions)."""
        self._items.append(item)

    def push_front(self, item: WorkItem) -> None:
        """Prepend (retry re-dispatch only)."""
        self._items.appendleft(item)

    def pop(self) -> WorkItem | None:
        """Remove and return the front item, or ``None`` when empty."""
        if not self._items:
            return None
        return self._items.popleft()

    def peek(self) -> WorkItem | None:
        return self._items[0] if self._items else None

    def remove_matching(self, task: Any) -> list[WorkItem]:
        """Delete every queued item submitted as ``task``.

        Returns:
            The removed items, in queue order. ``len()`` of the result is
            the count removed.
        """
        removed = [item for item in self._items if item.matches(task)]
        if removed:
            self._items = deque(item for item in self._items if not item.matches(task))
        return removed

    def clear(self) -> list[WorkItem]:
        """Remove and return every queued item."""
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[WorkItem]:
        return iter(list(self._items))

    def __repr__(self) -> str:
        return f"TaskQueue(size={len(self._items)})"
