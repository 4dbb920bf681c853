"""Retry policy for individual generation units.

Errors are classified by message text so that failures surfaced by any
collaborator (SDK exceptions, HTTP errors, plain exceptions) are treated
consistently. Typed service errors short-circuit the text match.
"""

import asyncio
import random
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import structlog

from mediagen.services.exceptions import PermanentError, TransientError

T = TypeVar("T")

logger = structlog.get_logger(__name__)

RETRIABLE_ERROR_PATTERN = re.compile(
    r"rate limit|\b429\b|timeout|timed out|abort|server error|service unavailable|\b50[0234]\b",
    re.IGNORECASE,
)

JITTER_MS = 250


def is_retriable_error(error: BaseException) -> bool:
    """Return True for rate limit, timeout, abort and 5xx-class failures.

    Args:
        error: Exception raised by a unit attempt

    Returns:
        True if the error is transient and may succeed on retry
    """
    if isinstance(error, PermanentError):
        return False
    if isinstance(error, TransientError):
        return True
    return bool(RETRIABLE_ERROR_PATTERN.search(str(error)))


@dataclass
class RetryPolicy:
    """Exponential backoff with jitter for one unit of work.

    Attempt 0 is the first try; attempts 1..max_retries are retries.
    Delay before retry k+1 is base_delay_ms * 2**k plus uniform jitter in [0, 250ms).
    """

    max_retries: int = 2
    base_delay_ms: int = 1500
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)
    rng: Callable[[], float] = field(default=random.random, repr=False)

    def should_retry(self, error: BaseException, attempt_index: int) -> bool:
        return attempt_index < self.max_retries and is_retriable_error(error)

    def backoff_delay(self, attempt_index: int) -> float:
        """Delay in seconds to wait after a failed attempt_index."""
        delay_ms = self.base_delay_ms * (2**attempt_index) + self.rng() * JITTER_MS
        return delay_ms / 1000

    async def run(self, operation: Callable[[], Awaitable[T]], **log_context) -> T:
        """Run operation until it succeeds, fails fatally, or retries run out.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            **log_context: Extra fields attached to retry log events

        Returns:
            The operation's result

        Raises:
            Exception: The last error once it is fatal or retries are exhausted
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not self.should_retry(e, attempt):
                    raise
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "variation.retry",
                    attempt_number=attempt + 1,
                    max_retries=self.max_retries,
                    delay_seconds=round(delay, 3),
                    error_type=type(e).__name__,
                    error_message=str(e),
                    **log_context,
                )
                await self.sleep(delay)
                attempt += 1
