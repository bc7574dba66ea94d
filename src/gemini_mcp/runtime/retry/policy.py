"""Retry policy and resilience wrapper for backend calls.

Every dispatcher invocation gets its own wrapper call, so retry state is
never shared between requests. Only transient failures are retried:

- status 429 (rate limited)
- status 500-599 (server error)

Any other `BackendError` propagates unchanged after a single call. When all
attempts fail, `RetriesExhaustedError` is raised. Cancellation propagates out
of both the in-flight call and the backoff sleep, and no further attempt is
made.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Annotated, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from gemini_mcp.foundation.errors import BackendError, RetriesExhaustedError

from .backoff import Backoff, ExponentialBackoff

if TYPE_CHECKING:
    from gemini_mcp.foundation.config import RetrySettings


logger = logging.getLogger("gemini_mcp.retry")

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Configurable retry policy for backend operations.

    Attributes:
        max_attempts: Total calls allowed, first attempt included
        backoff: Backoff strategy for delay calculation
        on_retry: Optional observer called as `(attempt, status, delay)` before each sleep

    Example:
        >>> policy = RetryPolicy(max_attempts=3, backoff=ExponentialBackoff(base=1.0))
        >>> policy.should_retry(BackendError(429, "slow down"), attempt=1)
        True
        >>> policy.should_retry(BackendError(400, "bad request"), attempt=1)
        False
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        extra="forbid",
        revalidate_instances="never",
    )

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    backoff: Backoff = Field(default_factory=ExponentialBackoff, repr=False)
    on_retry: Callable[[int, int | None, float], None] | None = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> RetryPolicy:
        return cls(
            max_attempts=settings.max_attempts,
            backoff=ExponentialBackoff(
                base=settings.base_delay, max_delay=settings.max_delay, jitter=settings.jitter,
            ),
        )

    def should_retry(self, error: BackendError, attempt: int) -> bool:
        """Whether another call is allowed after `attempt` calls have failed."""
        return error.is_transient and attempt < self.max_attempts

    def get_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (0-indexed)."""
        return self.backoff.delay(attempt)


# Singleton for no-retry policy
NO_RETRY = RetryPolicy(max_attempts=1)


class ResilienceWrapper:
    """Runs a backend operation under a retry policy.

    Example:
        >>> wrapper = ResilienceWrapper(RetryPolicy())
        >>> text = await wrapper.call(lambda: backend.generate("gemini-2.0-flash", "2+2"))
    """

    __slots__ = ("_policy", "_sleep")

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def call(self, operation: Callable[[], Awaitable[T]], *, name: str = "backend") -> T:
        """Await `operation()` until it succeeds, fails fatally or attempts run out.

        Raises:
            BackendError: non-retryable failure, unchanged
            RetriesExhaustedError: every allowed attempt failed transiently
        """
        policy = self._policy
        attempt = 0
        while True:
            try:
                return await operation()
            except BackendError as e:
                attempt += 1
                if not e.is_transient:
                    raise
                if not policy.should_retry(e, attempt):
                    logger.warning(f"[{name}] Giving up after {attempt} attempts (status: {e.status})")
                    raise RetriesExhaustedError(attempt, e) from e
                delay = policy.get_delay(attempt - 1)
                logger.info(
                    f"[{name}] Retry {attempt}/{policy.max_attempts - 1} "
                    f"after {delay:.2f}s (status: {e.status})"
                )
                if policy.on_retry:
                    policy.on_retry(attempt - 1, e.status, delay)
                await self._sleep(delay)
