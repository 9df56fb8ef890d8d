import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from bbe_admin.core.logging import log_external_call

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 3 * 1024 * 1024  # 3MB
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp")
BLOB_HOST_MARKER = "vercel-storage.com"
BLOB_API_VERSION = "7"


class BlobStorageError(Exception):
    pass


class BlobValidationError(BlobStorageError):
    pass


def is_blob_url(url: Optional[str]) -> bool:
    return bool(url) and BLOB_HOST_MARKER in url


def validate_image(content_type: Optional[str], size: int) -> None:
    if size > MAX_UPLOAD_BYTES:
        raise BlobValidationError("File size exceeds 3MB limit")
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise BlobValidationError("Invalid file type. Only images are allowed (JPEG, PNG, GIF, WebP)")


class BlobStorageClient:
    """Public image uploads for client hero images."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://blob.vercel-storage.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "x-api-version": BLOB_API_VERSION,
        }

    async def upload(
        self,
        filename: str,
        content: bytes,
        content_type: Optional[str],
        old_url: Optional[str] = None,
    ) -> dict[str, Any]:
        validate_image(content_type, len(content))
        if not self.token:
            raise BlobStorageError("Blob storage token is not configured")

        if is_blob_url(old_url):
            try:
                await self.delete(old_url)
            except BlobStorageError as e:
                # The new upload still goes through
                logger.warning(f"Failed to delete old image {old_url}: {e}")

        headers = self._get_headers()
        headers["x-content-type"] = content_type
        headers["x-add-random-suffix"] = "1"
        url = f"{self.base_url}/{quote(filename)}"
        log_external_call(logger, "blob-storage", f"PUT {filename} ({len(content)} bytes)")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                resp = await client.put(url, content=content, headers=headers)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                raise BlobStorageError(f"Failed to upload file: {e}") from e

        try:
            blob = resp.json()
        except ValueError as e:
            raise BlobStorageError(f"Invalid response from blob storage: {e}") from e
        if not isinstance(blob, dict):
            raise BlobStorageError("Invalid response from blob storage: expected an object")
        return {
            "url": blob.get("url"),
            "downloadUrl": blob.get("downloadUrl"),
            "pathname": blob.get("pathname"),
            "contentType": blob.get("contentType"),
            "contentDisposition": blob.get("contentDisposition"),
        }

    async def delete(self, url: str) -> None:
        if not is_blob_url(url):
            raise BlobValidationError("Can only delete Vercel Blob images")
        log_external_call(logger, "blob-storage", f"DELETE {url}")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                resp = await client.post(
                    f"{self.base_url}/delete", json={"urls": [url]}, headers=self._get_headers()
                )
                resp.raise_for_status()
            except httpx.HTTPError as e:
                raise BlobStorageError(f"Failed to delete file: {e}") from e
