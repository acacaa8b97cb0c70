"""Tests for provider health caching and response routing.

Covers the two components behind every chat reply: ProviderHealthCache
(TTL liveness with probe-on-expiry) and ResponseRouter (health-based
selection with a single failover).
"""

from __future__ import annotations

import asyncio

import pytest

from chatapp.shared.providers.health import ProviderHealthCache
from chatapp.shared.providers.router import (
    AllProvidersFailedError,
    ResponseRouter,
    RouterState,
    _RoutingRun,
)
from chatapp.shared.providers.types import ChatMessage

from conftest import FakeProvider

MESSAGES = [ChatMessage.user("Hello there")]


@pytest.fixture
def cache(primary, secondary, clock) -> ProviderHealthCache:
    return ProviderHealthCache([primary, secondary], ttl_seconds=30, clock=clock)


@pytest.fixture
def router(primary, secondary, cache) -> ResponseRouter:
    return ResponseRouter(primary, secondary, cache)


# ═══════════════════════════════════════════════════════════════
#  ProviderHealthCache
# ═══════════════════════════════════════════════════════════════
class TestProviderHealthCache:
    def test_starts_optimistic_and_unchecked(self, cache) -> None:
        record = cache.snapshot("gemini")
        assert record.healthy is True
        assert record.last_checked_at is None
        assert record.last_error is None

    @pytest.mark.asyncio
    async def test_first_check_probes(self, cache, primary, clock) -> None:
        assert await cache.is_healthy("gemini") is True
        assert primary.probe_calls == 1
        assert cache.snapshot("gemini").last_checked_at == clock.now

    @pytest.mark.asyncio
    async def test_fresh_record_is_served_from_cache(self, cache, primary, clock) -> None:
        await cache.is_healthy("gemini")
        clock.advance(29)
        await cache.is_healthy("gemini")
        assert primary.probe_calls == 1

    @pytest.mark.asyncio
    async def test_stale_record_is_reprobed(self, cache, primary, clock) -> None:
        await cache.is_healthy("gemini")
        clock.advance(30)
        await cache.is_healthy("gemini")
        assert primary.probe_calls == 2

    @pytest.mark.asyncio
    async def test_probe_failure_marks_unhealthy_without_raising(self, cache, primary) -> None:
        primary.fail_probe = True
        assert await cache.is_healthy("gemini") is False

        record = cache.snapshot("gemini")
        assert record.healthy is False
        assert record.last_error is not None
        assert record.last_error.startswith("Health check failed:")

    @pytest.mark.asyncio
    async def test_recovery_after_ttl(self, cache, primary, clock) -> None:
        primary.fail_probe = True
        assert await cache.is_healthy("gemini") is False

        primary.fail_probe = False
        clock.advance(31)
        assert await cache.is_healthy("gemini") is True
        assert cache.snapshot("gemini").last_error is None

    @pytest.mark.asyncio
    async def test_mark_unhealthy_bypasses_ttl(self, cache, primary, clock) -> None:
        await cache.is_healthy("gemini")
        clock.advance(5)
        cache.mark_unhealthy("gemini", "ProviderError: boom")

        assert await cache.is_healthy("gemini") is False
        assert primary.probe_calls == 1
        record = cache.snapshot("gemini")
        assert record.last_error == "ProviderError: boom"
        assert record.last_checked_at == clock.now

    @pytest.mark.asyncio
    async def test_stale_unhealthy_records_are_reprobed(
        self, cache, primary, secondary, clock
    ) -> None:
        cache.mark_unhealthy("gemini", "down")
        cache.mark_unhealthy("openrouter", "down")
        clock.advance(31)

        assert await cache.is_healthy("gemini") is True
        assert await cache.is_healthy("openrouter") is True
        assert primary.probe_calls == 1
        assert secondary.probe_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_checks_share_one_probe(self, cache, primary) -> None:
        results = await asyncio.gather(*(cache.is_healthy("gemini") for _ in range(5)))
        assert results == [True] * 5
        assert primary.probe_calls == 1

    @pytest.mark.asyncio
    async def test_unknown_provider_raises(self, cache) -> None:
        with pytest.raises(KeyError):
            await cache.is_healthy("nope")

    def test_snapshot_is_a_copy(self, cache) -> None:
        snap = cache.snapshot("gemini")
        snap.healthy = False
        assert cache.snapshot("gemini").healthy is True

    def test_snapshots_cover_all_providers(self, cache) -> None:
        assert [h.provider_id for h in cache.snapshots()] == ["gemini", "openrouter"]


# ═══════════════════════════════════════════════════════════════
#  Router state machine
# ═══════════════════════════════════════════════════════════════
class TestRoutingRun:
    def test_legal_path(self) -> None:
        run = _RoutingRun()
        run.advance(RouterState.CALL_PROVIDER)
        run.advance(RouterState.RETRY_SECONDARY)
        run.advance(RouterState.CALL_PROVIDER)
        run.advance(RouterState.SUCCESS)
        assert run.state is RouterState.SUCCESS

    def test_illegal_transition_raises(self) -> None:
        run = _RoutingRun()
        with pytest.raises(RuntimeError):
            run.advance(RouterState.SUCCESS)

    def test_terminal_states_have_no_exits(self) -> None:
        run = _RoutingRun()
        run.advance(RouterState.CALL_PROVIDER)
        run.advance(RouterState.FAIL)
        with pytest.raises(RuntimeError):
            run.advance(RouterState.CALL_PROVIDER)


# ═══════════════════════════════════════════════════════════════
#  ResponseRouter
# ═══════════════════════════════════════════════════════════════
class TestResponseRouter:
    def test_rejects_identical_providers(self, cache) -> None:
        a = FakeProvider("gemini")
        b = FakeProvider("gemini")
        with pytest.raises(ValueError):
            ResponseRouter(a, b, cache)

    @pytest.mark.asyncio
    async def test_empty_messages_rejected(self, router, primary, secondary) -> None:
        with pytest.raises(ValueError):
            await router.get_response([])
        assert primary.send_calls == []
        assert secondary.send_calls == []

    @pytest.mark.asyncio
    async def test_healthy_primary_serves(self, router, primary, secondary) -> None:
        assert await router.get_response(MESSAGES) == "reply from gemini"
        assert len(primary.send_calls) == 1
        assert secondary.send_calls == []

    @pytest.mark.asyncio
    async def test_primary_used_even_when_secondary_probe_fails(
        self, router, primary, secondary, cache
    ) -> None:
        secondary.fail_probe = True
        assert await router.get_response(MESSAGES) == "reply from gemini"
        assert secondary.send_calls == []
        assert cache.snapshot("openrouter").healthy is False

    @pytest.mark.asyncio
    async def test_unhealthy_primary_routes_to_secondary(self, router, primary, secondary) -> None:
        primary.fail_probe = True
        assert await router.get_response(MESSAGES) == "reply from openrouter"
        assert primary.send_calls == []
        assert len(secondary.send_calls) == 1

    @pytest.mark.asyncio
    async def test_failed_primary_retried_once_on_secondary(
        self, router, primary, secondary, cache
    ) -> None:
        primary.fail_send = True
        assert await router.get_response(MESSAGES) == "reply from openrouter"
        assert len(primary.send_calls) == 1
        assert len(secondary.send_calls) == 1

        record = cache.snapshot("gemini")
        assert record.healthy is False
        assert record.last_error is not None and "boom" in record.last_error

    @pytest.mark.asyncio
    async def test_failed_primary_not_retried_on_unhealthy_secondary(
        self, router, primary, secondary
    ) -> None:
        primary.fail_send = True
        secondary.fail_probe = True

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await router.get_response(MESSAGES)

        assert len(primary.send_calls) == 1
        assert secondary.send_calls == []
        assert set(exc_info.value.errors) == {"gemini"}

    @pytest.mark.asyncio
    async def test_failed_secondary_not_retried_on_unhealthy_primary(
        self, router, primary, secondary
    ) -> None:
        primary.fail_probe = True
        secondary.fail_send = True

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await router.get_response(MESSAGES)

        assert len(secondary.send_calls) == 1
        assert primary.send_calls == []
        assert set(exc_info.value.errors) == {"openrouter"}

    @pytest.mark.asyncio
    async def test_last_resort_falls_back_to_secondary(self, router, primary, secondary) -> None:
        primary.fail_probe = True
        secondary.fail_probe = True
        primary.fail_send = True

        assert await router.get_response(MESSAGES) == "reply from openrouter"
        assert len(primary.send_calls) == 1
        assert len(secondary.send_calls) == 1

    @pytest.mark.asyncio
    async def test_last_resort_both_failing_raises_after_two_calls(
        self, router, primary, secondary
    ) -> None:
        for provider in (primary, secondary):
            provider.fail_probe = True
            provider.fail_send = True

        with pytest.raises(AllProvidersFailedError):
            await router.get_response(MESSAGES)

        assert len(primary.send_calls) == 1
        assert len(secondary.send_calls) == 1

    @pytest.mark.asyncio
    async def test_both_failing_raises_after_two_calls(self, router, primary, secondary) -> None:
        primary.fail_send = True
        secondary.fail_send = True

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await router.get_response(MESSAGES)

        assert len(primary.send_calls) == 1
        assert len(secondary.send_calls) == 1
        assert set(exc_info.value.errors) == {"gemini", "openrouter"}
        assert "All providers failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_both_unhealthy_still_attempts_primary(self, router, primary, secondary) -> None:
        primary.fail_probe = True
        secondary.fail_probe = True
        assert await router.get_response(MESSAGES) == "reply from gemini"
        assert len(primary.send_calls) == 1
        assert secondary.send_calls == []

    @pytest.mark.asyncio
    async def test_empty_reply_is_returned_as_is(self, router, primary) -> None:
        primary.reply = ""
        assert await router.get_response(MESSAGES) == ""

    @pytest.mark.asyncio
    async def test_failure_is_remembered_across_requests(
        self, router, primary, secondary, clock
    ) -> None:
        primary.fail_send = True
        await router.get_response(MESSAGES)

        primary.fail_send = False
        clock.advance(10)
        assert await router.get_response(MESSAGES) == "reply from openrouter"
        assert len(primary.send_calls) == 1

        clock.advance(30)
        assert await router.get_response(MESSAGES) == "reply from gemini"

    @pytest.mark.asyncio
    async def test_history_is_passed_through(self, router, primary) -> None:
        history = [
            ChatMessage.user("Hi"),
            ChatMessage.assistant("Hello! How can I help?"),
            ChatMessage.user("Tell me a joke"),
        ]
        await router.get_response(history)
        assert primary.send_calls[0] == history
