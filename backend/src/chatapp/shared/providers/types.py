"""Core types for provider routing, health caching and rate limiting."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ChatRole(str, enum.Enum):
    """Speaker of a message in the provider-neutral format."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """Provider-neutral chat message.

    Adapters translate a sequence of these into their native call shape.
    """

    role: ChatRole
    content: str

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(ChatRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(ChatRole.ASSISTANT, content)


@dataclass
class ProviderHealth:
    """Cached liveness of a single upstream provider.

    Attributes:
        provider_id:      Provider identity (e.g. "gemini", "openrouter").
        healthy:          Last known liveness; optimistic until evidence otherwise.
        last_checked_at:  Clock reading of the last probe or observed failure;
                          None until the provider is first checked.
        last_error:       Reason recorded with the last failure, if any.
    """

    provider_id: str
    healthy: bool = True
    last_checked_at: float | None = None
    last_error: str | None = None
