"""Tests for backoff strategies and the resilience wrapper.

Validates:
- Exponential delays with jitter stay in [0.5, 1.0) of the nominal delay
- Transient failures (429, 5xx) are retried up to the attempt limit
- Fatal failures propagate after a single call with no delay
- Cancellation propagates out of the backoff sleep
"""

from __future__ import annotations

import asyncio

import pytest

from gemini_mcp.foundation.config import RetrySettings
from gemini_mcp.foundation.errors import BackendError, RetriesExhaustedError
from gemini_mcp.runtime.retry import NO_RETRY, ConstantBackoff, ExponentialBackoff, ResilienceWrapper, RetryPolicy

from .conftest import SleepRecorder


class Flaky:
    """Operation that raises queued errors, then returns a value."""

    def __init__(self, *errors: BackendError, value: str = "ok") -> None:
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


# ═════════════════════════════════════════════════════════════════════════════
# Backoff
# ═════════════════════════════════════════════════════════════════════════════


def test_exponential_backoff_without_jitter() -> None:
    backoff = ExponentialBackoff(base=1.0, max_delay=30.0, jitter=False)
    assert [backoff.delay(a) for a in range(6)] == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0]


def test_exponential_backoff_jitter_range() -> None:
    """Jittered delay lies in [0.5, 1.0) of base * 2^attempt."""
    backoff = ExponentialBackoff(base=1.0)
    for attempt in range(4):
        nominal = 2.0 ** attempt
        for _ in range(50):
            assert 0.5 * nominal <= backoff.delay(attempt) < nominal


def test_constant_backoff() -> None:
    assert ConstantBackoff(0.25).delay(7) == 0.25


def test_policy_from_settings() -> None:
    policy = RetryPolicy.from_settings(RetrySettings(max_attempts=5, base_delay=0.5, max_delay=4.0, jitter=False))
    assert policy.max_attempts == 5
    assert [policy.get_delay(a) for a in range(5)] == [0.5, 1.0, 2.0, 4.0, 4.0]


def test_should_retry() -> None:
    policy = RetryPolicy(max_attempts=3)
    assert policy.should_retry(BackendError(429, "slow down"), attempt=1)
    assert policy.should_retry(BackendError(503, "unavailable"), attempt=2)
    assert not policy.should_retry(BackendError(503, "unavailable"), attempt=3)
    assert not policy.should_retry(BackendError(400, "bad request"), attempt=1)
    assert not policy.should_retry(BackendError(None, "unknown"), attempt=1)


# ═════════════════════════════════════════════════════════════════════════════
# Resilience wrapper
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_success_first_try(sleeps: SleepRecorder) -> None:
    op = Flaky()
    assert await ResilienceWrapper(sleep=sleeps).call(op) == "ok"
    assert op.calls == 1
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_rate_limited_twice_then_success(sleeps: SleepRecorder) -> None:
    """429, 429, success: three calls, two strictly increasing delays."""
    op = Flaky(BackendError(429, "slow down"), BackendError(429, "slow down"), value="done")

    assert await ResilienceWrapper(RetryPolicy(), sleep=sleeps).call(op) == "done"

    assert op.calls == 3
    first, second = sleeps.delays
    assert 0.5 <= first < 1.0
    assert 1.0 <= second < 2.0
    assert first < second


@pytest.mark.asyncio
async def test_fatal_error_not_retried(sleeps: SleepRecorder) -> None:
    """A 400 propagates unchanged after exactly one call and no delay."""
    error = BackendError(400, "invalid argument")
    op = Flaky(error)

    with pytest.raises(BackendError) as exc:
        await ResilienceWrapper(sleep=sleeps).call(op)

    assert exc.value is error
    assert op.calls == 1
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_server_error_exhausts_retries(sleeps: SleepRecorder) -> None:
    """Persistent 500: three calls, then RetriesExhaustedError."""
    op = Flaky(*(BackendError(500, "internal") for _ in range(5)))

    with pytest.raises(RetriesExhaustedError) as exc:
        await ResilienceWrapper(sleep=sleeps).call(op)

    assert op.calls == 3
    assert len(sleeps.delays) == 2
    assert exc.value.attempts == 3
    assert exc.value.message == "Maximum retries exceeded"
    assert exc.value.last_error.status == 500


@pytest.mark.asyncio
async def test_no_retry_policy(sleeps: SleepRecorder) -> None:
    op = Flaky(BackendError(503, "unavailable"))
    with pytest.raises(RetriesExhaustedError):
        await ResilienceWrapper(NO_RETRY, sleep=sleeps).call(op)
    assert op.calls == 1


@pytest.mark.asyncio
async def test_on_retry_observer(sleeps: SleepRecorder) -> None:
    seen: list[tuple[int, int | None, float]] = []
    policy = RetryPolicy(backoff=ConstantBackoff(0.1), on_retry=lambda *args: seen.append(args))
    op = Flaky(BackendError(429, "a"), BackendError(502, "b"))

    await ResilienceWrapper(policy, sleep=sleeps).call(op)

    assert seen == [(0, 429, 0.1), (1, 502, 0.1)]


@pytest.mark.asyncio
async def test_retry_state_is_per_call(sleeps: SleepRecorder) -> None:
    """One wrapper serving two calls does not carry attempts between them."""
    wrapper = ResilienceWrapper(sleep=sleeps)
    assert await wrapper.call(Flaky(BackendError(429, "a"), BackendError(429, "b"))) == "ok"
    assert await wrapper.call(Flaky(BackendError(429, "a"), BackendError(429, "b"))) == "ok"


@pytest.mark.asyncio
async def test_cancellation_during_backoff() -> None:
    """Cancelling the caller while it sleeps stops further attempts."""
    sleeping = asyncio.Event()

    async def slow_sleep(delay: float) -> None:
        sleeping.set()
        await asyncio.sleep(3600)

    op = Flaky(BackendError(429, "slow down"))
    task = asyncio.create_task(ResilienceWrapper(sleep=slow_sleep).call(op))
    await sleeping.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert op.calls == 1
