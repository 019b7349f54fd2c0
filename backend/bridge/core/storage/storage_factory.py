"""Storage backend abstraction for uploaded documents.

Provides a unified interface for storing files in either Cloudflare R2 or the
local filesystem. Every stored object has a durable URL; `fetch` reads an
object back from such a URL (or from any other http(s) URL).
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx

from bridge.config import settings
from bridge.core.storage.cloudflare_r2 import CloudflareR2Storage
from bridge.errors import ConfigurationError
from bridge.utils.logging import logger


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    def __init__(self, public_base_url: str, fetch_timeout_seconds: int = 30):
        self.public_base_url = public_base_url.rstrip("/")
        self.fetch_timeout_seconds = fetch_timeout_seconds

    @abstractmethod
    def put(self, storage_key: str, data: bytes, content_type: str) -> str:
        """
        Store bytes under a key.

        Returns:
            Durable URL of the stored object
        """

    @abstractmethod
    def get(self, storage_key: str) -> bytes:
        """
        Read an object.

        Raises:
            FileNotFoundError: If storage_key doesn't exist
        """

    @abstractmethod
    def exists(self, storage_key: str) -> bool:
        pass

    @abstractmethod
    def delete(self, storage_key: str) -> None:
        """
        Delete an object.

        Note:
            Should not raise if the object doesn't exist (idempotent)
        """

    @abstractmethod
    def get_storage_type(self) -> str:
        """Return storage backend type ('r2' or 'local')."""

    def url_for_key(self, storage_key: str) -> str:
        return f"{self.public_base_url}/{storage_key}"

    def key_for_url(self, url: str) -> Optional[str]:
        """Storage key for a URL this backend issued, None for foreign URLs."""
        prefix = self.public_base_url + "/"
        if url.startswith(prefix):
            return url[len(prefix):]
        return None

    async def fetch(self, url: str) -> bytes:
        """Read bytes for a durable URL.

        Objects owned by this backend are read directly; other http(s) URLs
        are downloaded.

        Raises:
            FileNotFoundError: Own object missing
            ValueError: Key resolves outside the local storage root
            botocore.exceptions.BotoCoreError, ClientError: R2 read failed
            httpx.HTTPError, httpx.InvalidURL: Download failed or the URL is unusable
        """
        key = self.key_for_url(url)
        if key is not None:
            return await asyncio.to_thread(self.get, key)

        async with httpx.AsyncClient(timeout=self.fetch_timeout_seconds, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content


class R2StorageBackend(StorageBackend):
    """Cloudflare R2 storage backend (S3-compatible)."""

    def __init__(self, r2_client: CloudflareR2Storage, public_base_url: str, fetch_timeout_seconds: int = 30):
        super().__init__(public_base_url, fetch_timeout_seconds)
        self.r2 = r2_client

    def put(self, storage_key: str, data: bytes, content_type: str) -> str:
        self.r2.store_bytes(storage_key, data, content_type)
        return self.url_for_key(storage_key)

    def get(self, storage_key: str) -> bytes:
        return self.r2.get_bytes(storage_key)

    def exists(self, storage_key: str) -> bool:
        return self.r2.exists(storage_key)

    def delete(self, storage_key: str) -> None:
        self.r2.delete(storage_key)

    def get_storage_type(self) -> str:
        return "r2"


class LocalFilesystemBackend(StorageBackend):
    """Local filesystem storage backend (development without R2 credentials)."""

    def __init__(self, base_path, public_base_url: str, fetch_timeout_seconds: int = 30):
        """
        Args:
            base_path: Directory for stored files
            public_base_url: URL prefix the API serves base_path under
        """
        super().__init__(public_base_url, fetch_timeout_seconds)
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, storage_key: str) -> Path:
        path = (self.base_path / storage_key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes storage root: {storage_key}")
        return path

    def put(self, storage_key: str, data: bytes, content_type: str) -> str:
        target_path = self._path(storage_key)
        target_path.parent.mkdir(parents=True, exist_ok=True)
        target_path.write_bytes(data)
        logger.info("Stored file in local storage", extra={"key": storage_key, "size": len(data)})
        return self.url_for_key(storage_key)

    def get(self, storage_key: str) -> bytes:
        path = self._path(storage_key)
        if not path.exists():
            raise FileNotFoundError(f"File not found in local storage: {storage_key}")
        return path.read_bytes()

    def exists(self, storage_key: str) -> bool:
        return self._path(storage_key).exists()

    def delete(self, storage_key: str) -> None:
        file_path = self._path(storage_key)
        if file_path.exists():
            file_path.unlink()
            logger.info("Deleted file from local storage", extra={"key": storage_key})
        else:
            logger.warning("Attempted to delete non-existent file", extra={"key": storage_key})

    def get_storage_type(self) -> str:
        return "local"


def get_storage_backend(force_type: Optional[str] = None) -> StorageBackend:
    """
    Build the configured storage backend.

    Args:
        force_type: Optional override for storage type ('r2' or 'local').
                   If not provided, uses settings.storage_backend.

    Raises:
        ConfigurationError: R2 requested but not configured outside development/mock mode
    """
    storage_type = force_type or settings.storage_backend

    if storage_type == "r2":
        if settings.r2_configured and settings.r2_public_base_url:
            client = CloudflareR2Storage(
                access_key_id=settings.r2_access_key_id,
                secret_access_key=settings.r2_secret_access_key,
                endpoint_url=settings.r2_endpoint_url,
                bucket=settings.r2_bucket,
            )
            logger.info("Using R2 storage backend for documents")
            return R2StorageBackend(client, settings.r2_public_base_url, settings.storage_fetch_timeout_seconds)

        if not (settings.mock_mode or settings.environment == "development"):
            raise ConfigurationError("R2_BUCKET", "document storage")
        logger.warning("R2 storage not configured. Falling back to local filesystem.")

    logger.info("Using local filesystem storage backend for documents")
    return LocalFilesystemBackend(
        settings.local_storage_dir,
        settings.local_storage_base_url,
        settings.storage_fetch_timeout_seconds,
    )


__all__ = [
    "StorageBackend",
    "R2StorageBackend",
    "LocalFilesystemBackend",
    "get_storage_backend",
]
