"""Response router — picks a provider by cached health and fails over once.

State machine:
    SELECT_PROVIDER → CALL_PROVIDER
    CALL_PROVIDER   → SUCCESS          (reply received)
    CALL_PROVIDER   → RETRY_SECONDARY  (call failed, alternate untried and eligible)
    CALL_PROVIDER   → FAIL             (call failed, no eligible alternate left)
    RETRY_SECONDARY → CALL_PROVIDER

The alternate is eligible when it was healthy at selection time, or when
both providers were unhealthy and the primary was tried as a last resort.
Each provider is called at most once per request, so a request makes at
most two upstream calls.
"""

from __future__ import annotations

import enum
import time
from typing import TYPE_CHECKING, Sequence

import structlog

from chatapp.shared.observability.metrics import (
    PROVIDER_CALLS,
    PROVIDER_FAILOVERS,
    PROVIDER_LATENCY,
)
from chatapp.shared.providers.health import ProviderHealthCache
from chatapp.shared.providers.types import ChatMessage

if TYPE_CHECKING:
    from chatapp.ports.outbound import ChatProviderPort

logger = structlog.get_logger(__name__)


class AllProvidersFailedError(Exception):
    """Raised when every provider was tried for a request and none replied."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        detail = "; ".join(f"{pid}: {msg}" for pid, msg in errors.items())
        super().__init__(f"All providers failed ({detail})")


class RouterState(str, enum.Enum):
    SELECT_PROVIDER = "select_provider"
    CALL_PROVIDER = "call_provider"
    RETRY_SECONDARY = "retry_secondary"
    SUCCESS = "success"
    FAIL = "fail"


_TRANSITIONS: dict[RouterState, frozenset[RouterState]] = {
    RouterState.SELECT_PROVIDER: frozenset({RouterState.CALL_PROVIDER}),
    RouterState.CALL_PROVIDER: frozenset(
        {RouterState.SUCCESS, RouterState.RETRY_SECONDARY, RouterState.FAIL}
    ),
    RouterState.RETRY_SECONDARY: frozenset({RouterState.CALL_PROVIDER}),
    RouterState.SUCCESS: frozenset(),
    RouterState.FAIL: frozenset(),
}


class _RoutingRun:
    """Book-keeping for one ``get_response`` call."""

    def __init__(self) -> None:
        self.state = RouterState.SELECT_PROVIDER
        self.attempted: list[str] = []
        self.errors: dict[str, str] = {}
        self.healthy_at_selection: dict[str, bool] = {}

    def may_retry(self, alternate_id: str) -> bool:
        if alternate_id in self.attempted:
            return False
        if self.healthy_at_selection.get(alternate_id, False):
            return True
        # Both were unhealthy at selection: the last-resort path tries both
        return not any(self.healthy_at_selection.values())

    def advance(self, target: RouterState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal router transition {self.state.value} -> {target.value}")
        self.state = target


class ResponseRouter:
    """Routes chat requests to a primary provider with a single fallback."""

    def __init__(
        self,
        primary: ChatProviderPort,
        secondary: ChatProviderPort,
        health_cache: ProviderHealthCache,
    ) -> None:
        if primary.provider_id == secondary.provider_id:
            raise ValueError("primary and secondary providers must differ")
        self._primary = primary
        self._secondary = secondary
        self._health = health_cache

    @property
    def health_cache(self) -> ProviderHealthCache:
        return self._health

    @property
    def providers(self) -> tuple[ChatProviderPort, ChatProviderPort]:
        return self._primary, self._secondary

    async def get_response(self, messages: Sequence[ChatMessage]) -> str:
        """Return the assistant reply for ``messages``.

        Raises:
            ValueError: ``messages`` is empty.
            AllProvidersFailedError: both providers failed for this request.
        """
        if not messages:
            raise ValueError("messages must not be empty")

        run = _RoutingRun()
        provider = await self._select(run)
        run.advance(RouterState.CALL_PROVIDER)

        while True:
            pid = provider.provider_id
            run.attempted.append(pid)
            log = logger.bind(provider=pid, attempt=len(run.attempted))

            start = time.monotonic()
            try:
                reply = await provider.send(messages)
            except Exception as exc:
                latency_s = time.monotonic() - start
                error_msg = f"{type(exc).__name__}: {exc}"
                run.errors[pid] = error_msg
                self._health.mark_unhealthy(pid, error_msg)
                PROVIDER_CALLS.labels(provider=pid, status="failure").inc()
                PROVIDER_LATENCY.labels(provider=pid).observe(latency_s)
                log.warning("provider_call_failed", error=error_msg)

                alternate = self._alternate(provider)
                if not run.may_retry(alternate.provider_id):
                    run.advance(RouterState.FAIL)
                    logger.error("all_providers_failed", errors=run.errors)
                    raise AllProvidersFailedError(run.errors) from exc

                run.advance(RouterState.RETRY_SECONDARY)
                PROVIDER_FAILOVERS.labels(from_provider=pid, to_provider=alternate.provider_id).inc()
                log.info("provider_failover", to_provider=alternate.provider_id)
                provider = alternate
                run.advance(RouterState.CALL_PROVIDER)
                continue

            latency_s = time.monotonic() - start
            run.advance(RouterState.SUCCESS)
            PROVIDER_CALLS.labels(provider=pid, status="success").inc()
            PROVIDER_LATENCY.labels(provider=pid).observe(latency_s)
            log.info(
                "provider_call_succeeded",
                latency_ms=round(latency_s * 1000, 1),
                reply_chars=len(reply),
            )
            return reply

    async def _select(self, run: _RoutingRun) -> ChatProviderPort:
        primary_ok = await self._health.is_healthy(self._primary.provider_id)
        secondary_ok = await self._health.is_healthy(self._secondary.provider_id)
        run.healthy_at_selection = {
            self._primary.provider_id: primary_ok,
            self._secondary.provider_id: secondary_ok,
        }

        if primary_ok:
            return self._primary
        if secondary_ok:
            logger.info(
                "primary_unhealthy_using_secondary",
                primary=self._primary.provider_id,
                secondary=self._secondary.provider_id,
            )
            return self._secondary

        # Health is advisory: with both marked down, still try the primary.
        logger.warning("all_providers_unhealthy_attempting_primary", primary=self._primary.provider_id)
        return self._primary

    def _alternate(self, provider: ChatProviderPort) -> ChatProviderPort:
        return self._secondary if provider is self._primary else self._primary
