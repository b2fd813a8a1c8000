"""
Retry with exponential backoff and jitter for transient API failures.

Only `RetryableError` subclasses are retried. A `RateLimitError` carrying a
Retry-After value waits at least that long.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar
from core.config import settings
from core.exceptions import RateLimitError, RetryableError, RetryExhaustedError
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Backoff parameters: delay = min(base * multiplier**attempt, max) plus jitter"""
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: float = 0.3

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries=settings.MAX_RETRIES,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            max_delay=settings.RETRY_MAX_DELAY_SECONDS,
            multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
            jitter=settings.RETRY_JITTER,
        )

    def compute_delay(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Delay before retry number `attempt` (0-indexed)."""
        delay = min(self.base_delay * (self.multiplier ** attempt), self.max_delay)
        if self.jitter > 0:
            delay += delay * self.jitter * rng()
        return delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    description: str = "operation",
) -> T:
    """
    Run `operation`, retrying retryable failures up to `policy.max_retries` times.

    Raises:
        RetryExhaustedError: When every attempt failed with a retryable error
        Exception: Non-retryable errors propagate unchanged on first occurrence
    """
    policy = policy or RetryPolicy.from_settings()
    last_error: Optional[Exception] = None

    for attempt in range(policy.max_retries + 1):
        try:
            return await operation()
        except RetryableError as e:
            last_error = e
            if attempt == policy.max_retries:
                break

            delay = policy.compute_delay(attempt)
            if isinstance(e, RateLimitError) and e.retry_after:
                delay = max(delay, float(e.retry_after))

            logger.warning(
                f"Retrying {description} in {delay:.2f}s "
                f"(attempt {attempt + 1}/{policy.max_retries}): {e.message}"
            )
            await sleep(delay)

    attempts = policy.max_retries + 1
    raise RetryExhaustedError(
        f"{description} failed after {attempts} attempts",
        attempts=attempts,
        last_error=last_error,
        context={"operation": description}
    )
