"""
Deadline and cancellation handling for connect sequences.

A ConnectContext is passed to every credential fetch and dial so that no
external call outlives the configured budget.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Optional, TypeVar

from mysqlprovider.errors import CancellationError, ProviderConnectionError

T = TypeVar("T")

_POLL_INTERVAL = 0.1


class ConnectContext:
    """Monotonic deadline plus a cancellation flag shared by one connect sequence."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize a context.

        Args:
            timeout: Seconds until the deadline, or None for no deadline
            cancel_event: Event set by the caller to cancel; created if omitted
        """
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancel_event = cancel_event or threading.Event()

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (never negative), None if unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def bounded(self, timeout: float) -> float:
        """Clamp a per-call timeout to what is left of the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        return max(0.001, min(timeout, remaining))

    def check(self, operation: str = "operation") -> None:
        """
        Raise if the sequence was cancelled or ran out of time.

        Raises:
            CancellationError: If cancel() was called
            ProviderConnectionError: If the deadline has passed
        """
        if self.cancelled:
            raise CancellationError(f"{operation} cancelled")
        if self.expired:
            raise ProviderConnectionError(f"{operation} timed out")

    def sleep(self, seconds: float) -> None:
        """
        Sleep up to seconds, waking early on cancellation.

        Raises:
            CancellationError: If cancelled while sleeping
        """
        if self._cancel_event.wait(self.bounded(seconds)):
            raise CancellationError("connect sequence cancelled during backoff")

    def run(self, func: Callable[[], T], timeout: float, operation: str = "operation") -> T:
        """
        Run a blocking call on a worker thread, bounded by timeout and the deadline.

        Used for SDK calls that do not accept a timeout of their own.

        Raises:
            CancellationError: If the sequence is cancelled before the call returns
            ProviderConnectionError: If the call does not finish in time
        """
        self.check(operation)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mysqlprovider")
        future = executor.submit(func)
        executor.shutdown(wait=False)

        budget = self.bounded(timeout)
        waited = 0.0
        while True:
            step = min(_POLL_INTERVAL, budget - waited)
            try:
                return future.result(timeout=max(step, 0.001))
            except FutureTimeoutError:
                waited += step
                if self.cancelled:
                    raise CancellationError(f"{operation} cancelled")
                if waited >= budget:
                    future.cancel()
                    raise ProviderConnectionError(f"{operation} timed out after {budget:.1f}s")
