"""Object storage client for user uploads (Supabase Storage REST API)."""

from typing import Optional, Sequence

import httpx
import structlog
from fastapi import Request

from masjidku.core.config import settings
from masjidku.core.exceptions import UpstreamError

logger = structlog.get_logger(__name__)


class StorageClient:
    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        bucket: str,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self._client = http_client or httpx.AsyncClient(timeout=30.0)

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Upload bytes to ``path`` inside the bucket and return the public URL."""
        if not self.base_url or not self.api_key:
            raise UpstreamError("Object storage is not configured")
        try:
            response = await self._client.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
                content=content,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "apikey": self.api_key,
                    "Content-Type": content_type or "application/octet-stream",
                    "x-upsert": "true",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("storage_upload_failed", path=path, error=str(e))
            raise UpstreamError("Failed to upload file") from e
        return self.public_url(path)

    async def delete(self, paths: Sequence[str]) -> None:
        """Remove objects from the bucket; paths are relative to the bucket root."""
        if not paths:
            return
        if not self.base_url or not self.api_key:
            raise UpstreamError("Object storage is not configured")
        try:
            response = await self._client.request(
                "DELETE",
                f"{self.base_url}/storage/v1/object/{self.bucket}",
                json={"prefixes": list(paths)},
                headers={"Authorization": f"Bearer {self.api_key}", "apikey": self.api_key},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("storage_delete_failed", paths=list(paths), error=str(e))
            raise UpstreamError("Failed to delete file") from e

    async def aclose(self) -> None:
        await self._client.aclose()


def build_storage_client() -> StorageClient:
    return StorageClient(
        base_url=settings.storage_url,
        api_key=settings.storage_api_key,
        bucket=settings.storage_bucket,
    )


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.storage_client
