"""TTL health cache for upstream chat providers.

Probing before every real call would double latency and cost, so each
provider's liveness is cached for a short TTL.  A stale record triggers one
cheap probe; an observed failure during a real call marks the provider
unhealthy immediately, without waiting for the TTL.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Callable, Iterable

import structlog

from chatapp.shared.observability.metrics import PROVIDER_HEALTHY, PROVIDER_PROBES
from chatapp.shared.providers.types import ProviderHealth

if TYPE_CHECKING:
    from chatapp.ports.outbound import ChatProviderPort

logger = structlog.get_logger(__name__)


class ProviderHealthCache:
    """Per-provider liveness with probe-on-expiry."""

    def __init__(
        self,
        providers: Iterable[ChatProviderPort],
        *,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._providers: dict[str, ChatProviderPort] = {}
        self._records: dict[str, ProviderHealth] = {}
        self._probe_locks: dict[str, asyncio.Lock] = {}

        for provider in providers:
            pid = provider.provider_id
            self._providers[pid] = provider
            self._records[pid] = ProviderHealth(provider_id=pid)
            self._probe_locks[pid] = asyncio.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    async def is_healthy(self, provider_id: str) -> bool:
        """Return cached liveness, probing first if the record is stale."""
        record = self._records[provider_id]
        if self._is_fresh(record):
            return record.healthy

        async with self._probe_locks[provider_id]:
            # Another caller may have probed while we waited for the lock.
            if self._is_fresh(record):
                return record.healthy

            provider = self._providers[provider_id]
            try:
                await provider.probe()
            except Exception as exc:
                record.healthy = False
                record.last_error = f"Health check failed: {exc}"
                PROVIDER_PROBES.labels(provider=provider_id, result="failure").inc()
                logger.warning("provider_probe_failed", provider=provider_id, error=str(exc))
            else:
                record.healthy = True
                record.last_error = None
                PROVIDER_PROBES.labels(provider=provider_id, result="success").inc()
            record.last_checked_at = self._clock()

        PROVIDER_HEALTHY.labels(provider=provider_id).set(1 if record.healthy else 0)
        logger.info("provider_health_checked", provider=provider_id, healthy=record.healthy)
        return record.healthy

    def mark_unhealthy(self, provider_id: str, reason: str) -> None:
        """Record an observed failure; bypasses the TTL."""
        record = self._records[provider_id]
        record.healthy = False
        record.last_checked_at = self._clock()
        record.last_error = reason
        PROVIDER_HEALTHY.labels(provider=provider_id).set(0)
        logger.warning("provider_marked_unhealthy", provider=provider_id, reason=reason)

    def snapshot(self, provider_id: str) -> ProviderHealth:
        return replace(self._records[provider_id])

    def snapshots(self) -> list[ProviderHealth]:
        return [replace(r) for r in self._records.values()]

    def _is_fresh(self, record: ProviderHealth) -> bool:
        if record.last_checked_at is None:
            return False
        return self._clock() - record.last_checked_at < self._ttl
