"""
CRISTAL Core Resilience — Attempt Policy
==========================================
Bounded retry with per-attempt client-side timeouts and linear backoff.

Attempt N races `timeouts[N-1]` seconds (None = no client-side
timeout). A timed-out call is abandoned, not cancelled: the remote
request keeps running and its eventual result is discarded.
After failed attempt N the caller waits `backoff_seconds * N`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from core.actions.errors import CristalError

logger = logging.getLogger("cristal.resilience")

T = TypeVar("T")


@dataclass(frozen=True)
class AttemptPolicy:
    timeouts: Tuple[Optional[float], ...] = (10.0, 30.0, None)
    backoff_seconds: float = 2.0

    def __post_init__(self) -> None:
        if not self.timeouts:
            raise ValueError("AttemptPolicy needs at least one attempt.")
        for timeout in self.timeouts:
            if timeout is not None and timeout <= 0:
                raise ValueError(f"Attempt timeout must be > 0, got {timeout}.")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0.")

    @property
    def max_attempts(self) -> int:
        return len(self.timeouts)

    def timeout_for(self, attempt: int) -> Optional[float]:
        """Timeout for a 1-based attempt number."""
        return self.timeouts[attempt - 1]

    def delay_after(self, attempt: int) -> float:
        return self.backoff_seconds * attempt


class RetryExhausted(CristalError):
    """Every attempt failed or timed out."""

    def __init__(self, operation: str, attempts: int, last_error: Optional[BaseException]) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempt(s): {last_error!r}"
        )


def _discard_outcome(task: "asyncio.Future") -> None:
    # Retrieve the abandoned call's exception so asyncio does not report it.
    if not task.cancelled():
        task.exception()


async def run_with_attempts(
    fn: Callable[[], Awaitable[T]],
    policy: AttemptPolicy,
    *,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    operation: str = "operation",
) -> T:
    """
    Run `fn` under `policy`.

    Exceptions outside `retryable` propagate immediately.
    Raises RetryExhausted when the last attempt fails.
    """
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        task = asyncio.ensure_future(fn())
        timeout = policy.timeout_for(attempt)
        try:
            if timeout is None:
                return await task
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError as exc:
            last_error = exc
            task.add_done_callback(_discard_outcome)
            logger.warning(
                "%s attempt %d/%d timed out after %.1fs",
                operation, attempt, policy.max_attempts, timeout,
            )
        except retryable as exc:
            last_error = exc
            logger.warning(
                "%s attempt %d/%d failed: %s",
                operation, attempt, policy.max_attempts, exc,
            )

        if attempt < policy.max_attempts:
            await sleep(policy.delay_after(attempt))

    raise RetryExhausted(operation, policy.max_attempts, last_error)
