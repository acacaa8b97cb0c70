"""Tests for the fixed-window rate limiter."""

from __future__ import annotations

import asyncio

import pytest

from chatapp.shared.providers.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitConfig,
    RateLimitResult,
)

CHAT_LIMIT = RateLimitConfig(max_requests=20, window_seconds=60)


@pytest.fixture
def limiter(clock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(clock=clock)


class TestRateLimitConfig:
    @pytest.mark.parametrize("max_requests,window", [(0, 60), (-1, 60), (20, 0), (20, -5)])
    def test_rejects_non_positive_values(self, max_requests, window) -> None:
        with pytest.raises(ValueError):
            RateLimitConfig(max_requests=max_requests, window_seconds=window)


class TestFixedWindowRateLimiter:
    def test_first_request_opens_window(self, limiter, clock) -> None:
        result = limiter.check("1.2.3.4", CHAT_LIMIT)
        assert result.allowed is True
        assert result.remaining == 19
        assert result.reset_at == clock.now + 60

    def test_twenty_first_request_in_window_is_refused(self, limiter, clock) -> None:
        results = []
        for _ in range(21):
            results.append(limiter.check("1.2.3.4", CHAT_LIMIT))
            clock.advance(0.5)

        assert all(r.allowed for r in results[:20])
        assert results[-1].allowed is False
        assert results[-1].remaining == 0

    def test_remaining_strictly_decreases(self, limiter) -> None:
        remaining = [limiter.check("1.2.3.4", CHAT_LIMIT).remaining for _ in range(20)]
        assert remaining == list(range(19, -1, -1))

    def test_reset_at_is_constant_within_window(self, limiter, clock) -> None:
        first = limiter.check("1.2.3.4", CHAT_LIMIT)
        clock.advance(30)
        second = limiter.check("1.2.3.4", CHAT_LIMIT)
        assert second.reset_at == first.reset_at

    def test_identifiers_are_counted_separately(self, limiter) -> None:
        for _ in range(20):
            limiter.check("1.2.3.4", CHAT_LIMIT)
        assert limiter.check("1.2.3.4", CHAT_LIMIT).allowed is False
        assert limiter.check("5.6.7.8", CHAT_LIMIT).allowed is True

    def test_new_window_after_reset(self, limiter, clock) -> None:
        for _ in range(21):
            limiter.check("1.2.3.4", CHAT_LIMIT)

        clock.advance(61)
        result = limiter.check("1.2.3.4", CHAT_LIMIT)
        assert result.allowed is True
        assert result.remaining == 19
        assert result.reset_at == clock.now + 60

    def test_reset_instant_still_belongs_to_current_window(self, limiter, clock) -> None:
        for _ in range(20):
            limiter.check("1.2.3.4", CHAT_LIMIT)

        clock.advance(60)
        assert limiter.check("1.2.3.4", CHAT_LIMIT).allowed is False

        clock.advance(0.001)
        assert limiter.check("1.2.3.4", CHAT_LIMIT).allowed is True

    def test_refused_requests_keep_counting(self, limiter) -> None:
        for _ in range(25):
            result = limiter.check("1.2.3.4", CHAT_LIMIT)
        assert result.allowed is False
        assert result.remaining == 0

    def test_purge_expired_drops_only_stale_entries(self, limiter, clock) -> None:
        limiter.check("old", CHAT_LIMIT)
        clock.advance(45)
        limiter.check("new", CHAT_LIMIT)
        clock.advance(20)

        assert limiter.purge_expired() == 1
        assert len(limiter) == 1
        # "new" still counts inside its original window
        assert limiter.check("new", CHAT_LIMIT).remaining == 18

    def test_purge_on_empty_limiter(self, limiter) -> None:
        assert limiter.purge_expired() == 0

    @pytest.mark.asyncio
    async def test_sweeper_purges_until_cancelled(self, limiter, clock) -> None:
        limiter.check("1.2.3.4", CHAT_LIMIT)
        clock.advance(120)

        task = asyncio.create_task(limiter.run_sweeper(interval_seconds=0.01))
        for _ in range(50):
            await asyncio.sleep(0.01)
            if len(limiter) == 0:
                break
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(limiter) == 0


class TestRateLimitResult:
    def test_retry_after_rounds_up(self) -> None:
        result = RateLimitResult(allowed=False, remaining=0, reset_at=1_060.0)
        assert result.retry_after(now=1_000.2) == 60

    def test_retry_after_is_at_least_one_second(self) -> None:
        result = RateLimitResult(allowed=False, remaining=0, reset_at=1_000.0)
        assert result.retry_after(now=1_000.0) == 1

    def test_headers(self) -> None:
        result = RateLimitResult(allowed=True, remaining=7, reset_at=0.0)
        assert result.headers() == {
            "X-RateLimit-Remaining": "7",
            "X-RateLimit-Reset": "1970-01-01T00:00:00Z",
        }
