"""
Token bucket rate limiter for the Congress.gov API.

Congress.gov allows 1000 requests per hour per key. The bucket allows a
burst of `max_tokens` requests and refills continuously at
`refill_rate_per_hour`, so long-running imports stay under the ceiling
without hand-tuned sleeps.

Clock and sleep are injectable so tests can drive time explicitly.
"""

import asyncio
import math
import time
from typing import Awaitable, Callable, Dict, Optional, Union
from core.config import settings
from core.exceptions import RateLimitTimeoutError
import logging

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 60 * 60


class TokenBucketRateLimiter:
    """
    Token bucket with lazy refill.

    Invariants:
        0 <= tokens <= max_tokens
        refill is proportional to elapsed clock time and never negative
    """

    def __init__(
        self,
        max_tokens: int,
        refill_rate_per_hour: float,
        initial_tokens: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if refill_rate_per_hour <= 0:
            raise ValueError("refill_rate_per_hour must be positive")

        self.max_tokens = max_tokens
        self.refill_rate_per_hour = refill_rate_per_hour
        self._refill_per_second = refill_rate_per_hour / SECONDS_PER_HOUR
        self._clock = clock
        self._sleep = sleep

        start = initial_tokens if initial_tokens is not None else max_tokens
        self._tokens = float(min(max(start, 0), max_tokens))
        self._last_refill = clock()
        self._hour_started = self._last_refill
        self._requests_this_hour = 0
        self._waiting = 0

    def _refill(self):
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)

        if now - self._hour_started >= SECONDS_PER_HOUR:
            self._requests_this_hour = 0
            self._hour_started = now

        self._tokens = min(self.max_tokens, self._tokens + elapsed * self._refill_per_second)
        self._last_refill = now

    def _consume(self):
        self._tokens -= 1
        self._requests_this_hour += 1

    def _wait_time(self) -> float:
        """Seconds until one whole token is available."""
        needed = 1 - self._tokens
        if needed <= 0:
            return 0.0
        return needed / self._refill_per_second

    def try_acquire(self) -> bool:
        """Consume a token if one is available right now."""
        self._refill()
        if self._tokens >= 1:
            self._consume()
            return True
        return False

    async def acquire(self, timeout: Optional[float] = None):
        """
        Wait for a token and consume it.

        Args:
            timeout: Maximum seconds to wait (defaults to
                RATE_LIMIT_ACQUIRE_TIMEOUT_SECONDS)

        Raises:
            RateLimitTimeoutError: If the projected wait exceeds the deadline
        """
        if timeout is None:
            timeout = settings.RATE_LIMIT_ACQUIRE_TIMEOUT_SECONDS
        deadline = self._clock() + timeout

        self._waiting += 1
        try:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._consume()
                    return

                wait = self._wait_time()
                remaining = deadline - self._clock()
                if wait > remaining:
                    raise RateLimitTimeoutError(
                        f"Rate limit wait of {wait:.1f}s exceeds timeout of {timeout:.1f}s",
                        context={
                            "wait_seconds": round(wait, 3),
                            "timeout_seconds": timeout,
                            "current_tokens": round(self._tokens, 3),
                        }
                    )

                logger.debug(f"Rate limiter: waiting {wait:.2f}s for token")
                await self._sleep(wait)
        finally:
            self._waiting -= 1

    def get_stats(self) -> Dict[str, Union[int, float]]:
        """Snapshot for progress logs and the status API"""
        self._refill()
        return {
            "current_tokens": math.floor(self._tokens),
            "max_tokens": self.max_tokens,
            "refill_rate_per_hour": self.refill_rate_per_hour,
            "requests_this_hour": self._requests_this_hour,
            "waiting_requests": self._waiting,
        }

    def reset(self):
        """Restore a full bucket and clear the hourly counter."""
        now = self._clock()
        self._tokens = float(self.max_tokens)
        self._last_refill = now
        self._hour_started = now
        self._requests_this_hour = 0


def build_congress_rate_limiter(**kwargs) -> TokenBucketRateLimiter:
    """Rate limiter configured from settings (900/hour, burst 100 by default)."""
    return TokenBucketRateLimiter(
        max_tokens=settings.RATE_LIMIT_BURST_CAPACITY,
        refill_rate_per_hour=settings.RATE_LIMIT_MAX_REQUESTS_PER_HOUR,
        **kwargs
    )
