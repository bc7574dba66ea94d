"""Runtime: dispatcher, resilience and observability.

- dispatcher: validates and routes invocations, owns the request state machine
- retry: backoff strategies, retry policy and the resilience wrapper
- observability: logging configuration
"""

from .dispatcher import Dispatcher, ValidatedCall, as_text, first_violation
from .retry import NO_RETRY, ConstantBackoff, ExponentialBackoff, ResilienceWrapper, RetryPolicy

__all__ = [
    "Dispatcher", "ValidatedCall", "as_text", "first_violation",
    "RetryPolicy", "ResilienceWrapper", "ExponentialBackoff", "ConstantBackoff", "NO_RETRY",
]
