"""Supabase Storage adapter — uploads chat attachments over the REST API."""

from __future__ import annotations

import httpx
import structlog

from chatapp.domain.exceptions import StorageError
from chatapp.ports.outbound import FileStoragePort

logger = structlog.get_logger(__name__)


class SupabaseStorageAdapter(FileStoragePort):
    """Stores blobs in one public Supabase bucket."""

    def __init__(
        self,
        url: str,
        key: str,
        *,
        bucket: str = "chat-files",
        timeout_s: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._key = key
        self._bucket = bucket
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    @property
    def configured(self) -> bool:
        return self._url.startswith("http") and bool(self._key)

    def public_url(self, path: str) -> str:
        return f"{self._url}/storage/v1/object/public/{self._bucket}/{path}"

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        if not self.configured:
            raise StorageError("File storage is not configured")

        try:
            response = await self._client.post(
                f"{self._url}/storage/v1/object/{self._bucket}/{path}",
                content=content,
                headers={
                    "Authorization": f"Bearer {self._key}",
                    "apikey": self._key,
                    "Content-Type": content_type or "application/octet-stream",
                    "x-upsert": "false",
                },
            )
        except httpx.HTTPError as exc:
            logger.error("storage_upload_transport_error", path=path, error=str(exc))
            raise StorageError("Failed to upload file") from exc

        if response.is_error:
            logger.error(
                "storage_upload_rejected",
                path=path,
                status=response.status_code,
                body=response.text[:200],
            )
            raise StorageError("Failed to upload file")

        logger.info("storage_upload_succeeded", path=path, bytes=len(content))
        return self.public_url(path)

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["SupabaseStorageAdapter"]
