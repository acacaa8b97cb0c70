"""Google Gemini adapter — the primary chat provider."""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from chatapp.adapters.outbound.llm.base import (
    PROBE_MAX_OUTPUT_TOKENS,
    PROBE_PROMPT,
    HttpChatAdapter,
)
from chatapp.shared.providers.types import ChatMessage, ChatRole

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


class GeminiChatAdapter(HttpChatAdapter):
    """Calls ``models/{model}:generateContent`` with the whole conversation."""

    provider_id = "gemini"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        max_output_tokens: int = 2048,
        timeout_s: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(api_key, timeout_s=timeout_s, client=client)
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._max_output_tokens = max_output_tokens

    async def send(self, messages: Sequence[ChatMessage]) -> str:
        return await self._generate(messages, self._max_output_tokens)

    async def probe(self) -> None:
        await self._generate([ChatMessage.user(PROBE_PROMPT)], PROBE_MAX_OUTPUT_TOKENS)

    async def _generate(self, messages: Sequence[ChatMessage], max_tokens: int) -> str:
        data = await self._post_json(
            f"{self._base_url}/models/{self._model}:generateContent",
            params={"key": self._api_key},
            headers={"Content-Type": "application/json"},
            body={
                "contents": [self._to_content(m) for m in messages],
                "generationConfig": {"maxOutputTokens": max_tokens},
            },
        )
        return self._extract_text(data)

    @staticmethod
    def _to_content(message: ChatMessage) -> dict[str, Any]:
        role = "user" if message.role == ChatRole.USER else "model"
        return {"role": role, "parts": [{"text": message.content}]}

    def _extract_text(self, data: dict[str, Any]) -> str:
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            feedback = data.get("promptFeedback")
            reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            raise self._malformed(f"no candidates (block reason: {reason})" if reason else "no candidates")

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise self._malformed("candidate is not an object")
        content = candidate.get("content") or {}
        if not isinstance(content, dict):
            raise self._malformed("candidate content is not an object")
        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise self._malformed("candidate parts is not a list")
        return "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))
