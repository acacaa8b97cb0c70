"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from chatapp.domain.exceptions import ProviderError
from chatapp.ports.outbound import ChatProviderPort, FileStoragePort
from chatapp.shared.providers.types import ChatMessage


class FakeProvider(ChatProviderPort):
    """Scriptable in-memory provider that records every call."""

    def __init__(
        self,
        provider_id: str,
        *,
        reply: str = "",
        fail_send: bool = False,
        fail_probe: bool = False,
    ) -> None:
        self.provider_id = provider_id
        self.reply = reply or f"reply from {provider_id}"
        self.fail_send = fail_send
        self.fail_probe = fail_probe
        self.send_calls: list[list[ChatMessage]] = []
        self.probe_calls = 0
        self.closed = False

    async def send(self, messages: Sequence[ChatMessage]) -> str:
        self.send_calls.append(list(messages))
        if self.fail_send:
            raise ProviderError(self.provider_id, "boom")
        return self.reply

    async def probe(self) -> None:
        self.probe_calls += 1
        if self.fail_probe:
            raise ProviderError(self.provider_id, "probe failed")

    async def close(self) -> None:
        self.closed = True


class FakeStorage(FileStoragePort):
    def __init__(self, base_url: str = "https://files.example.com") -> None:
        self.base_url = base_url
        self.uploads: dict[str, tuple[bytes, str]] = {}

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        self.uploads[path] = (content, content_type)
        return f"{self.base_url}/{path}"


class FakeClock:
    """Manually advanced clock for TTL and window tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def primary() -> FakeProvider:
    return FakeProvider("gemini")


@pytest.fixture
def secondary() -> FakeProvider:
    return FakeProvider("openrouter")


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()
