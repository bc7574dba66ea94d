"""Retry policies for backend calls.

Example:
    >>> from gemini_mcp.runtime.retry import ExponentialBackoff, ResilienceWrapper, RetryPolicy
    >>>
    >>> wrapper = ResilienceWrapper(RetryPolicy(
    ...     max_attempts=3,
    ...     backoff=ExponentialBackoff(base=1.0, max_delay=30.0),
    ... ))
    >>> text = await wrapper.call(lambda: backend.generate(model, prompt))
"""

from .backoff import Backoff, ConstantBackoff, ExponentialBackoff
from .policy import NO_RETRY, ResilienceWrapper, RetryPolicy

__all__ = [
    # Backoff strategies
    "Backoff",
    "ExponentialBackoff",
    "ConstantBackoff",
    # Policy
    "RetryPolicy",
    "NO_RETRY",
    "ResilienceWrapper",
]
