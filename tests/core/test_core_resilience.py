"""
Tests for core.resilience — attempt policy and in-flight coalescing.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from core.resilience import AttemptPolicy, InFlightRegistry, RetryExhausted, run_with_attempts


# ── AttemptPolicy Tests ──────────────────────────────────────

class TestAttemptPolicy:
    def test_defaults(self):
        policy = AttemptPolicy()
        assert policy.max_attempts == 3
        assert policy.timeout_for(1) == 10.0
        assert policy.timeout_for(3) is None

    def test_linear_backoff(self):
        policy = AttemptPolicy(backoff_seconds=2.0)
        assert [policy.delay_after(n) for n in (1, 2)] == [2.0, 4.0]

    def test_rejects_empty(self):
        with pytest.raises(ValueError, match="at least one"):
            AttemptPolicy(timeouts=())

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError, match="must be > 0"):
            AttemptPolicy(timeouts=(0,))


# ── run_with_attempts Tests ──────────────────────────────────

class TestRunWithAttempts:
    @pytest.mark.asyncio
    async def test_first_success_returns(self):
        fn = AsyncMock(return_value="ok")
        assert await run_with_attempts(fn, AttemptPolicy(), sleep=AsyncMock()) == "ok"
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_retryable_errors(self):
        fn = AsyncMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "ok"])
        sleep = AsyncMock()
        result = await run_with_attempts(
            fn, AttemptPolicy(), retryable=(ConnectionError,), sleep=sleep
        )
        assert result == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_non_retryable_propagates(self):
        fn = AsyncMock(side_effect=KeyError("bug"))
        with pytest.raises(KeyError):
            await run_with_attempts(fn, AttemptPolicy(), retryable=(ConnectionError,), sleep=AsyncMock())
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_exhaustion(self):
        fn = AsyncMock(side_effect=ConnectionError("down"))
        with pytest.raises(RetryExhausted) as exc:
            await run_with_attempts(
                fn, AttemptPolicy(), retryable=(ConnectionError,), sleep=AsyncMock(), operation="load"
            )
        assert exc.value.attempts == 3
        assert isinstance(exc.value.last_error, ConnectionError)

    @pytest.mark.asyncio
    async def test_timed_out_call_is_abandoned_not_cancelled(self):
        finished = []
        release = asyncio.Event()

        async def slow():
            await release.wait()
            finished.append(True)
            return "late"

        with pytest.raises(RetryExhausted):
            await run_with_attempts(slow, AttemptPolicy(timeouts=(0.01,)), sleep=AsyncMock())
        release.set()
        await asyncio.sleep(0.01)
        assert finished == [True]


# ── InFlightRegistry Tests ───────────────────────────────────

class TestInFlightRegistry:
    @pytest.mark.asyncio
    async def test_same_key_shares_one_task(self):
        registry = InFlightRegistry()
        calls = []

        async def work():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "done"

        results = await asyncio.gather(
            registry.run("k", work), registry.run("k", work), registry.run("k", work)
        )
        assert results == ["done"] * 3
        assert len(calls) == 1
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_different_keys_run_separately(self):
        registry = InFlightRegistry()
        calls = []

        async def work():
            calls.append(1)
            return len(calls)

        await asyncio.gather(registry.run("a", work), registry.run("b", work))
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_key_released_after_failure(self):
        registry = InFlightRegistry()

        async def boom():
            raise ValueError("x")

        with pytest.raises(ValueError):
            await registry.run("k", boom)
        assert not registry.in_flight("k")

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_task(self):
        registry = InFlightRegistry()
        release = asyncio.Event()

        async def work():
            await release.wait()
            return 42

        first = asyncio.ensure_future(registry.run("k", work))
        second = asyncio.ensure_future(registry.run("k", work))
        await asyncio.sleep(0)
        first.cancel()
        release.set()
        assert await second == 42
