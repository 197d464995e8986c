"""Blob storage access: signed URLs and byte retrieval for stored attachments."""
from typing import Optional, Protocol, Tuple
from urllib.parse import quote

import httpx

from clinic_reports.config.settings import Settings, get_settings
from clinic_reports.config.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class BlobStoreError(Exception):
    """Signing or fetching a stored object failed."""
    pass


class BlobStore(Protocol):
    """Capability consumed by the attachment resolver."""

    async def sign_url(self, bucket: str, path: str, expires_in: int) -> str:
        """Return a time-bounded retrieval URL for bucket/path."""
        ...

    async def fetch(self, url: str) -> Tuple[bytes, str]:
        """Return (bytes, mime type) for a retrieval URL."""
        ...


class SupabaseBlobStore:
    """BlobStore backed by the Supabase Storage REST API."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        logger.info("Supabase blob store initialized", base_url=self.base_url)

    @property
    def _auth_headers(self) -> dict:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }

    async def sign_url(self, bucket: str, path: str, expires_in: int) -> str:
        """
        Create a signed URL for an object.

        Args:
            bucket: Storage bucket name
            path: Object path inside the bucket
            expires_in: URL lifetime in seconds

        Returns:
            Absolute signed URL
        """
        endpoint = f"{self.base_url}/storage/v1/object/sign/{quote(bucket)}/{quote(path)}"
        try:
            response = await self._client.post(
                endpoint,
                json={"expiresIn": expires_in},
                headers=self._auth_headers,
            )
        except httpx.HTTPError as e:
            raise BlobStoreError(f"Signing request failed for {bucket}/{path}: {e}") from e

        if response.status_code >= 400:
            raise BlobStoreError(
                f"Signing {bucket}/{path} returned HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise BlobStoreError(f"Signing {bucket}/{path} returned invalid JSON") from e

        signed_path = body.get("signedURL") or body.get("signedUrl") if isinstance(body, dict) else None

        if not signed_path:
            raise BlobStoreError(f"Signing {bucket}/{path} returned no URL")
        if signed_path.startswith("http://") or signed_path.startswith("https://"):
            return signed_path
        return f"{self.base_url}/storage/v1/{signed_path.lstrip('/')}"

    async def fetch(self, url: str) -> Tuple[bytes, str]:
        """Download an object; non-2xx responses raise BlobStoreError."""
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise BlobStoreError(f"Fetch failed: {e}") from e

        if not response.is_success:
            raise BlobStoreError(f"Fetch returned HTTP {response.status_code}")

        mime_type = response.headers.get("content-type") or DEFAULT_MIME_TYPE
        return response.content, mime_type

    async def close(self) -> None:
        await self._client.aclose()


# Global instance
_blob_store: Optional[SupabaseBlobStore] = None


def get_blob_store(settings: Optional[Settings] = None) -> SupabaseBlobStore:
    """Get or create the global blob store."""
    global _blob_store
    if _blob_store is None:
        settings = settings or get_settings()
        if not settings.supabase_url:
            logger.warning("SUPABASE_URL not set, attachments will render as placeholders")
        _blob_store = SupabaseBlobStore(
            base_url=settings.supabase_url,
            api_key=settings.supabase_key,
            timeout=settings.attachment_fetch_timeout_seconds,
        )
    return _blob_store


async def close_blob_store() -> None:
    """Close the global blob store's HTTP client."""
    global _blob_store
    if _blob_store is not None:
        await _blob_store.close()
        _blob_store = None
