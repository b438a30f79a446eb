"""Bounded retries with exponential backoff for whole capture attempts.

Each attempt is expected to build and tear down its own browser session, so
a retried attempt never inherits state from a failed one.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import LaunchFailure, TransientProtocolError
from ..models.capture import RetryState

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Error message fragments that indicate a transient browser or network failure
RETRYABLE_ERROR_SIGNATURES = (
    "net::ERR_CONNECTION_RESET",
    "net::ERR_CONNECTION_CLOSED",
    "net::ERR_CONNECTION_REFUSED",
    "net::ERR_NETWORK_CHANGED",
    "net::ERR_TIMED_OUT",
    "net::ERR_CONNECTION_TIMED_OUT",
    "net::ERR_INTERNET_DISCONNECTED",
    "Protocol error",
    "Target closed",
    "Session closed",
    "Page crashed",
    "Navigation failed",
    "connect to Chrome",
    "Browser closed",
    "browser has disconnected",
    "Target page, context or browser has been closed",
    "Browser has been closed",
)

DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 1.0


def is_retryable_error(error: BaseException) -> bool:
    """Check whether an error is worth another attempt.

    Args:
        error: Exception raised by an attempt

    Returns:
        True if the error is transient
    """
    if isinstance(error, (TransientProtocolError, LaunchFailure)):
        return True

    message = str(error)
    return any(signature in message for signature in RETRYABLE_ERROR_SIGNATURES)


class RetryController:
    """Runs an attempt function under a bounded retry policy."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        is_retryable: Callable[[BaseException], bool] = is_retryable_error,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize retry controller.

        Args:
            max_retries: Total number of attempts, including the first one
            base_delay: Delay in seconds before the second attempt; doubles after each failure
            is_retryable: Predicate deciding whether an error may be retried
            sleep: Awaitable used for backoff delays
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.is_retryable = is_retryable
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given zero-based attempt."""
        return self.base_delay * (2 ** attempt)

    async def run(self, attempt_fn: Callable[[RetryState], Awaitable[T]]) -> T:
        """Run ``attempt_fn`` until it succeeds or the budget is spent.

        Non-retryable errors are raised immediately. When every attempt fails
        the error of the final attempt is re-raised unchanged.
        """
        state = RetryState(max_attempts=self.max_retries)

        for attempt in range(self.max_retries):
            state.attempt = attempt
            try:
                return await attempt_fn(state)
            except Exception as e:
                state.last_error = e

                if not self.is_retryable(e):
                    logger.debug(f"Non-retryable error on attempt {attempt + 1}: {e}")
                    raise

                if state.exhausted:
                    logger.error(f"All {self.max_retries} attempts failed: {e}")
                    raise

                state.delay_seconds = self.delay_for(attempt)
                logger.warning(
                    f"Attempt {attempt + 1}/{self.max_retries} failed with retryable error: {e}. "
                    f"Retrying in {state.delay_seconds:.1f}s"
                )
                await self._sleep(state.delay_seconds)

        # Unreachable: the loop either returns or raises
        raise RuntimeError("Retry loop exited without a result")


async def retry_with_backoff(
    attempt_fn: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    is_retryable: Optional[Callable[[BaseException], bool]] = None,
) -> T:
    """Convenience wrapper around :class:`RetryController` for plain callables."""
    controller = RetryController(
        max_retries=max_retries,
        base_delay=base_delay,
        is_retryable=is_retryable or is_retryable_error,
    )
    return await controller.run(lambda _state: attempt_fn())
