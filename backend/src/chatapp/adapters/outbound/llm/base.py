"""Shared HTTP plumbing for chat provider adapters.

Subclasses only build the request body and pull the reply out of the
response envelope; transport, status and JSON failures are mapped to
``ProviderError`` here.
"""

from __future__ import annotations

from typing import Any

import httpx

from chatapp.domain.exceptions import ProviderError
from chatapp.ports.outbound import ChatProviderPort

PROBE_PROMPT = "Hi"
PROBE_MAX_OUTPUT_TOKENS = 10


class HttpChatAdapter(ChatProviderPort):
    """Base class for adapters that talk JSON over one ``httpx.AsyncClient``."""

    provider_id = "http"

    def __init__(
        self,
        api_key: str,
        *,
        timeout_s: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def _post_json(
        self,
        url: str,
        *,
        body: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        if not self._api_key:
            raise ProviderError(self.provider_id, "API key is not configured")

        try:
            response = await self._client.post(url, json=body, headers=headers, params=params)
        except httpx.TimeoutException as exc:
            raise ProviderError(self.provider_id, f"request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(self.provider_id, f"transport error: {exc}") from exc

        if response.status_code in (401, 403):
            raise ProviderError(self.provider_id, f"invalid credentials (HTTP {response.status_code})")
        if response.status_code == 429:
            raise ProviderError(self.provider_id, "rate limited by upstream (HTTP 429)")
        if response.is_error:
            raise ProviderError(
                self.provider_id,
                f"HTTP {response.status_code}: {response.text[:200]}",
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(self.provider_id, "response body is not JSON") from exc
        if not isinstance(data, dict):
            raise ProviderError(self.provider_id, "response body is not a JSON object")
        return data

    def _malformed(self, detail: str) -> ProviderError:
        return ProviderError(self.provider_id, f"malformed response: {detail}")

    async def close(self) -> None:
        await self._client.aclose()
