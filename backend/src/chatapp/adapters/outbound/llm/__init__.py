"""Chat provider adapters.

Each adapter is a plain request/response client; failover and health
caching live in ``chatapp.shared.providers``.
"""

from __future__ import annotations

import structlog

from chatapp.adapters.outbound.llm.base import HttpChatAdapter
from chatapp.adapters.outbound.llm.gemini import GeminiChatAdapter
from chatapp.adapters.outbound.llm.openrouter import OpenRouterChatAdapter
from chatapp.config import Settings
from chatapp.ports.outbound import ChatProviderPort

logger = structlog.get_logger(__name__)


def build_chat_providers(settings: Settings) -> list[ChatProviderPort]:
    """Build the provider adapters in configured priority order."""
    available: dict[str, ChatProviderPort] = {
        "gemini": GeminiChatAdapter(
            settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            max_output_tokens=settings.reply_max_output_tokens,
            timeout_s=settings.provider_timeout_seconds,
        ),
        "openrouter": OpenRouterChatAdapter(
            settings.openrouter_api_key,
            model=settings.openrouter_model,
            base_url=settings.openrouter_base_url,
            referer=settings.openrouter_referer,
            title=settings.openrouter_title,
            timeout_s=settings.provider_timeout_seconds,
        ),
    }

    for pid, key in (("gemini", settings.gemini_api_key), ("openrouter", settings.openrouter_api_key)):
        if not key:
            logger.warning("provider_api_key_missing", provider=pid)

    return [available[pid] for pid in settings.provider_priority]


__all__ = [
    "GeminiChatAdapter",
    "HttpChatAdapter",
    "OpenRouterChatAdapter",
    "build_chat_providers",
]
