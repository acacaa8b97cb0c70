"""OpenRouter adapter — OpenAI-compatible chat completions, used as fallback."""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from chatapp.adapters.outbound.llm.base import (
    PROBE_MAX_OUTPUT_TOKENS,
    PROBE_PROMPT,
    HttpChatAdapter,
)
from chatapp.shared.providers.types import ChatMessage

DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_OPENROUTER_MODEL = "meta-llama/llama-3.2-3b-instruct:free"


class OpenRouterChatAdapter(HttpChatAdapter):
    provider_id = "openrouter"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_OPENROUTER_MODEL,
        base_url: str = DEFAULT_OPENROUTER_BASE_URL,
        referer: str = "http://localhost:3000",
        title: str = "chatapp",
        max_output_tokens: int | None = None,
        timeout_s: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(api_key, timeout_s=timeout_s, client=client)
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._referer = referer
        self._title = title
        self._max_output_tokens = max_output_tokens

    async def send(self, messages: Sequence[ChatMessage]) -> str:
        return await self._complete(messages, self._max_output_tokens)

    async def probe(self) -> None:
        await self._complete([ChatMessage.user(PROBE_PROMPT)], PROBE_MAX_OUTPUT_TOKENS)

    async def _complete(self, messages: Sequence[ChatMessage], max_tokens: int | None) -> str:
        body: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": m.role.value, "content": m.content} for m in messages],
        }
        if max_tokens:
            body["max_tokens"] = max_tokens

        data = await self._post_json(
            f"{self._base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
                "HTTP-Referer": self._referer,
                "X-Title": self._title,
            },
            body=body,
        )

        if "error" in data and "choices" not in data:
            error = data["error"]
            detail = error.get("message") if isinstance(error, dict) else error
            raise self._malformed(f"upstream error: {detail}")

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise self._malformed("no choices")
        choice = choices[0]
        message = choice.get("message") if isinstance(choice, dict) else None
        if not isinstance(message, dict):
            raise self._malformed("choice has no message")
        content = message.get("content")
        if content is None:
            return ""
        if not isinstance(content, str):
            raise self._malformed("message content is not a string")
        return content
