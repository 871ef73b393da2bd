"""
Cache cells - memoized, coalesced async values.

A cell moves through EMPTY -> PENDING -> READY. A failed load leaves it in
FAILED, which behaves like EMPTY on the next read: the error is remembered
for inspection but never returned from the cache.

Concurrent readers of a PENDING cell all await the same task, so a loader is
invoked at most once per fill regardless of how many callers are waiting.
Each reader awaits the task through asyncio.shield: cancelling one reader
leaves the shared load running for the others. If the load itself is
cancelled the cell falls back to EMPTY.
"""

from __future__ import annotations

import asyncio
import enum
from typing import Any, Awaitable, Callable, Optional


class CellState(enum.Enum):
    EMPTY = "empty"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class CacheCell:
    __slots__ = ("state", "value", "error", "_task")

    def __init__(self) -> None:
        self.state = CellState.EMPTY
        self.value: Any = None
        self.error: Optional[BaseException] = None
        self._task: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"CacheCell(state={self.state.value}, value={self.value!r})"

    @property
    def is_ready(self) -> bool:
        return self.state is CellState.READY

    def peek(self, default: Any = None) -> Any:
        """Return the cached value without loading, or ``default``."""
        if self.state is CellState.READY:
            return self.value
        return default

    def store(self, value: Any) -> None:
        """Fill the cell locally. A fetch still in flight will not overwrite it."""
        self.state = CellState.READY
        self.value = value
        self.error = None
        self._task = None

    def clear(self) -> None:
        self.state = CellState.EMPTY
        self.value = None
        self.error = None
        self._task = None

    async def get(self, loader: Callable[[], Awaitable[Any]]) -> Any:
        if self.state is CellState.READY:
            return self.value
        task = self._task
        if self.state is not CellState.PENDING or task is None:
            task = asyncio.ensure_future(self._load(loader))
            task.add_done_callback(_retrieve_result)
            self._task = task
            self.state = CellState.PENDING
        return await asyncio.shield(task)

    async def _load(self, loader: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await loader()
        except asyncio.CancelledError:
            if self._owns_current_task():
                self.state = CellState.EMPTY
                self._task = None
            raise
        except Exception as exc:
            if self._owns_current_task():
                self.state = CellState.FAILED
                self.error = exc
                self._task = None
            raise
        if not self._owns_current_task():
            # Superseded by a local store() while the load was in flight.
            return self.peek(value)
        self.state = CellState.READY
        self.value = value
        self.error = None
        self._task = None
        return value

    def _owns_current_task(self) -> bool:
        return self._task is not None and self._task is asyncio.current_task()


def _retrieve_result(task: asyncio.Task) -> None:
    # Every reader may have been cancelled; mark the outcome as observed.
    if not task.cancelled():
        task.exception()


__all__ = ["CacheCell", "CellState"]
