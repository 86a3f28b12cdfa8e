"""
CRISTAL Core Resilience — In-Flight Coalescing
================================================
Concurrent callers asking for the same key share one running task.

The first caller starts the work; later callers await the same task
and receive the same result (or the same exception). The key is
released when the task settles, so the next call starts fresh.
A cancelled caller never cancels the shared task.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class InFlightRegistry(Generic[K, T]):

    def __init__(self) -> None:
        self._tasks: Dict[K, "asyncio.Task[T]"] = {}

    async def run(self, key: K, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda done, key=key: self._release(key, done))
        return await asyncio.shield(task)

    def in_flight(self, key: K) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def _release(self, key: K, task: "asyncio.Task[T]") -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
