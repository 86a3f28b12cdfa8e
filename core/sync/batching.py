"""
CRISTAL Core Sync — Debounced Batching
========================================
Coalesces rapid writes by key and flushes them after a quiet period.

- Last writer per key wins within a window.
- Every submit reschedules the timer (one loop.call_later handle).
- `originals` keeps the first pre-window value per key so a failed
  flush can restore what was there before the window opened.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, Optional, Set, TypeVar

logger = logging.getLogger("cristal.sync")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class Batch(Generic[K, V]):
    values: Dict[K, V] = field(default_factory=dict)
    originals: Dict[K, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.values)


class DebouncedBatcher(Generic[K, V]):

    def __init__(
        self,
        delay_seconds: float,
        flush: Callable[[Batch[K, V]], Awaitable[None]],
        *,
        name: str = "batch",
    ) -> None:
        if delay_seconds <= 0:
            raise ValueError("delay_seconds must be > 0.")
        self._delay = delay_seconds
        self._flush = flush
        self._name = name
        self._batch: Batch[K, V] = Batch()
        self._handle: Optional[asyncio.TimerHandle] = None
        self._running: Set["asyncio.Task[None]"] = set()

    @property
    def pending(self) -> Dict[K, V]:
        return dict(self._batch.values)

    @property
    def scheduled(self) -> bool:
        return self._handle is not None

    def submit(self, key: K, value: V, original: Any = None) -> None:
        """Queue `value` for `key`; `original` is kept only for the first submit per window."""
        self._batch.values[key] = value
        self._batch.originals.setdefault(key, original)
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        batch, self._batch = self._batch, Batch()
        if not batch:
            return
        task = asyncio.ensure_future(self._run(batch))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self, batch: Batch[K, V]) -> None:
        try:
            await self._flush(batch)
        except Exception:
            logger.exception("%s flush of %d key(s) failed", self._name, len(batch.values))

    async def flush_now(self) -> None:
        """Flush the open window immediately and wait for every running flush."""
        if self._handle is not None:
            self._handle.cancel()
            self._fire()
        await self.drain()

    async def drain(self) -> None:
        while self._running:
            await asyncio.gather(*list(self._running))

    def cancel(self) -> None:
        """Drop the open window without writing it."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._batch = Batch()
