"""
Retry helpers for connection attempts.

Provides bounded exponential backoff that only retries errors classified as
transient and stops as soon as the surrounding ConnectContext is cancelled.
"""

import logging
from typing import Callable, Optional, TypeVar

from mysqlprovider.errors import CancellationError, ProviderConnectionError, ProviderError
from mysqlprovider.utils.context import ConnectContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackoffPolicy:
    """Exponential backoff with a ceiling."""

    def __init__(self, initial_delay: float = 0.5, backoff: float = 2.0, max_delay: float = 10.0):
        if initial_delay <= 0 or backoff < 1 or max_delay < initial_delay:
            raise ValueError("Invalid backoff policy")
        self.initial_delay = initial_delay
        self.backoff = backoff
        self.max_delay = max_delay

    def delays(self):
        """Yield successive delays, capped at max_delay."""
        delay = self.initial_delay
        while True:
            yield delay
            delay = min(delay * self.backoff, self.max_delay)


def call_with_retry(
    func: Callable[[], T],
    context: ConnectContext,
    policy: Optional[BackoffPolicy] = None,
    operation: str = "connect",
) -> T:
    """
    Call func until it succeeds, a fatal error occurs, or the budget is spent.

    Only errors whose ``retryable`` flag is set are retried; configuration and
    authentication errors propagate on the first occurrence.

    Args:
        func: Zero-argument callable performing one attempt
        context: Deadline and cancellation for the whole sequence
        policy: Backoff policy (default: 0.5s doubling up to 10s)
        operation: Name used in log lines and error messages

    Returns:
        Result of the first successful attempt

    Raises:
        CancellationError: If the context is cancelled before or between attempts
        ProviderConnectionError: If transient failures exhaust the budget
        ProviderError: Any non-retryable error, unmodified
    """
    policy = policy or BackoffPolicy()
    last_error: Optional[ProviderError] = None
    attempt = 0

    for delay in policy.delays():
        if context.cancelled:
            raise CancellationError(f"{operation} cancelled after {attempt} attempts")
        if context.expired:
            break

        attempt += 1
        try:
            return func()
        except ProviderError as e:
            if not e.retryable:
                logger.error(f"{operation} failed with non-retryable {e.classification} error: {e.message}")
                raise
            last_error = e

        remaining = context.remaining()
        if remaining is not None and remaining <= 0:
            break
        logger.warning(
            f"Attempt {attempt} of {operation} failed: {last_error.message}. "
            f"Retrying in {delay:.2f}s..."
        )
        context.sleep(delay)

    if context.cancelled:
        raise CancellationError(f"{operation} cancelled after {attempt} attempts")

    logger.error(f"All {attempt} attempts of {operation} failed")
    message = f"{operation} did not succeed within the retry budget after {attempt} attempts"
    if last_error is not None:
        message += f": {last_error.message}"
    raise ProviderConnectionError(
        message,
        details={"attempts": attempt},
        original_error=last_error,
    )
