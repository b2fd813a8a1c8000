"""
Unit tests for the token bucket rate limiter
"""

import asyncio

import pytest
from core.exceptions import RateLimitTimeoutError
from ingestion.rate_limiter import TokenBucketRateLimiter


def build_limiter(clock, max_tokens=2, per_hour=3600):
    """One token per second refill keeps the arithmetic readable."""
    return TokenBucketRateLimiter(
        max_tokens=max_tokens,
        refill_rate_per_hour=per_hour,
        clock=clock,
        sleep=clock.sleep,
    )


class TestTokenBucket:
    """Token accounting"""

    def test_burst_then_empty(self, fake_clock):
        limiter = build_limiter(fake_clock)

        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False

    def test_refill_is_proportional_to_elapsed_time(self, fake_clock):
        limiter = build_limiter(fake_clock)
        limiter.try_acquire()
        limiter.try_acquire()

        fake_clock.advance(0.5)
        assert limiter.try_acquire() is False

        fake_clock.advance(0.5)
        assert limiter.try_acquire() is True

    def test_refill_never_exceeds_capacity(self, fake_clock):
        limiter = build_limiter(fake_clock)
        fake_clock.advance(10_000)

        stats = limiter.get_stats()
        assert stats["current_tokens"] == 2
        assert stats["max_tokens"] == 2

    def test_initial_tokens_are_clamped(self, fake_clock):
        limiter = TokenBucketRateLimiter(
            max_tokens=5, refill_rate_per_hour=60, initial_tokens=50, clock=fake_clock
        )
        assert limiter.get_stats()["current_tokens"] == 5

    def test_invalid_configuration(self, fake_clock):
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(max_tokens=0, refill_rate_per_hour=60, clock=fake_clock)
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(max_tokens=1, refill_rate_per_hour=0, clock=fake_clock)

    def test_hourly_counter_rolls_over(self, fake_clock):
        limiter = build_limiter(fake_clock)
        limiter.try_acquire()
        assert limiter.get_stats()["requests_this_hour"] == 1

        fake_clock.advance(3600)
        assert limiter.get_stats()["requests_this_hour"] == 0

    def test_reset_restores_full_bucket(self, fake_clock):
        limiter = build_limiter(fake_clock)
        limiter.try_acquire()
        limiter.try_acquire()

        limiter.reset()

        stats = limiter.get_stats()
        assert stats["current_tokens"] == 2
        assert stats["requests_this_hour"] == 0


class TestAcquire:
    """Waiting for tokens"""

    @pytest.mark.asyncio
    async def test_acquire_without_waiting(self, fake_clock):
        limiter = build_limiter(fake_clock)

        await limiter.acquire(timeout=1)

        assert fake_clock.sleeps == []
        assert limiter.get_stats()["requests_this_hour"] == 1

    @pytest.mark.asyncio
    async def test_acquire_sleeps_until_a_token_refills(self, fake_clock):
        limiter = build_limiter(fake_clock)
        await limiter.acquire(timeout=1)
        await limiter.acquire(timeout=1)

        await limiter.acquire(timeout=10)

        assert fake_clock.sleeps == [pytest.approx(1.0)]
        assert limiter.get_stats()["waiting_requests"] == 0

    @pytest.mark.asyncio
    async def test_acquire_times_out_when_wait_exceeds_deadline(self, fake_clock):
        limiter = build_limiter(fake_clock, per_hour=60)  # one token per minute
        await limiter.acquire(timeout=1)
        await limiter.acquire(timeout=1)

        with pytest.raises(RateLimitTimeoutError) as exc_info:
            await limiter.acquire(timeout=5)

        assert exc_info.value.context["timeout_seconds"] == 5
        assert fake_clock.sleeps == []
        assert limiter.get_stats()["waiting_requests"] == 0

    @pytest.mark.asyncio
    async def test_sustained_load_stays_under_hourly_ceiling(self, fake_clock):
        limiter = build_limiter(fake_clock, max_tokens=100, per_hour=900)
        start = fake_clock()
        granted = 0

        while True:
            await limiter.acquire(timeout=60)
            if fake_clock() - start >= 3600:
                break
            granted += 1

        assert 990 <= granted <= 100 + 900
        assert all(delay <= 4 + 1e-6 for delay in fake_clock.sleeps)

    @pytest.mark.asyncio
    async def test_concurrent_waiters_share_refilled_tokens(self, fake_clock):
        async def yielding_sleep(seconds):
            await asyncio.sleep(0)
            await fake_clock.sleep(seconds)

        limiter = TokenBucketRateLimiter(
            max_tokens=2, refill_rate_per_hour=3600, clock=fake_clock, sleep=yielding_sleep
        )
        start = fake_clock()
        await limiter.acquire(timeout=1)
        await limiter.acquire(timeout=1)

        await asyncio.gather(*(limiter.acquire(timeout=60) for _ in range(5)))

        stats = limiter.get_stats()
        assert stats["requests_this_hour"] == 7
        assert stats["waiting_requests"] == 0
        assert stats["current_tokens"] >= 0
        assert 7 <= 2 + (fake_clock() - start)
