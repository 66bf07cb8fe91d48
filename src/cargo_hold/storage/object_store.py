"""HTTP client for the blob store (``/buckets/{bucket}/objects/{key}``)."""

from __future__ import annotations

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cargo_hold.common.errors import StorageError

logger = structlog.get_logger()

MAX_ATTEMPTS = 3


class ObjectStorageClient:
    def __init__(
        self,
        base_url: str,
        bucket: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def bucket(self) -> str:
        return self._bucket

    def object_url(self, key: str) -> str:
        return f"{self._base_url}/buckets/{self._bucket}/objects/{key}"

    async def upload(self, key: str, data: bytes, content_type: str | None = None) -> None:
        headers = {"Content-Type": content_type} if content_type else None
        response = await self._send("PUT", key, content=data, headers=headers)
        if not response.is_success:
            raise StorageError(f"Upload failed with status: {response.status_code}")

    async def download(self, key: str) -> bytes:
        response = await self._send("GET", key)
        if not response.is_success:
            raise StorageError(f"Download failed with status: {response.status_code}")
        return response.content

    async def delete(self, key: str) -> None:
        """Delete an object. A missing object counts as deleted."""
        response = await self._send("DELETE", key)
        if not response.is_success and response.status_code != 404:
            raise StorageError(f"Delete failed with status: {response.status_code}")

    async def close(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, key: str, **kwargs) -> httpx.Response:
        try:
            return await self._request(method, self.object_url(key), **kwargs)
        except httpx.TransportError as exc:
            logger.warning("storage_request_failed", method=method, key=key, error=str(exc))
            raise StorageError(f"HTTP request failed: {exc}") from exc

    @retry(
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.1, max=2),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        return await self._client.request(method, url, **kwargs)
