"""Fixed-window rate limiter — per-client request counting in process memory.

Each identifier (usually the client IP) gets a counter that lives for one
window.  The first request after the window has passed starts a fresh one.
Expired entries are purged by a periodic sweep so memory stays bounded.

Fixed windows allow up to ``2 × max_requests`` across a window seam.
"""

from __future__ import annotations

import asyncio
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    """Limit applied to one identifier."""

    max_requests: int
    window_seconds: float

    def __post_init__(self) -> None:
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single ``check`` call."""

    allowed: bool
    remaining: int
    reset_at: float

    def retry_after(self, now: float | None = None) -> int:
        """Whole seconds until the window resets (never less than 1)."""
        now = time.time() if now is None else now
        return max(1, math.ceil(self.reset_at - now))

    def headers(self) -> dict[str, str]:
        reset = datetime.fromtimestamp(self.reset_at, tz=timezone.utc)
        return {
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": reset.isoformat().replace("+00:00", "Z"),
        }


class FixedWindowRateLimiter:
    """Thread-safe, fixed-window request counter keyed by client identifier."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """Count one request for ``identifier`` and decide whether it may pass.

        A window is over only once ``now > reset_at``; the reset instant itself
        still counts against the current window.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(identifier)

            if entry is None or now > entry.reset_at:
                entry = RateLimitEntry(count=1, reset_at=now + config.window_seconds)
                self._entries[identifier] = entry
                return RateLimitResult(
                    allowed=True,
                    remaining=config.max_requests - 1,
                    reset_at=entry.reset_at,
                )

            entry.count += 1
            if entry.count > config.max_requests:
                return RateLimitResult(allowed=False, remaining=0, reset_at=entry.reset_at)

            return RateLimitResult(
                allowed=True,
                remaining=config.max_requests - entry.count,
                reset_at=entry.reset_at,
            )

    def now(self) -> float:
        return self._clock()

    def purge_expired(self) -> int:
        """Drop entries whose window has already passed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("rate_limit_entries_purged", purged=len(expired), remaining=len(self))
        return len(expired)

    async def run_sweeper(self, interval_seconds: float = 300.0) -> None:
        """Purge expired entries forever; cancel the task to stop."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.purge_expired()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
