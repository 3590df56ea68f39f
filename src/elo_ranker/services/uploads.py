"""Image upload backends."""

from __future__ import annotations

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from elo_ranker.core.config import UploadConfig
from elo_ranker.core.errors import UploadError

logger = structlog.get_logger()


def make_upload_name(prefix: str = "meme") -> str:
    """Build an upload name from the current epoch milliseconds plus a short random suffix."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class ImageUploader(ABC):
    """Abstract base class for async image uploaders."""

    @abstractmethod
    async def upload(self, content: bytes, file_name: str) -> str:
        """Store image bytes.

        Args:
            content: Raw image bytes.
            file_name: Target file name.

        Returns:
            Public URL of the stored image.

        Raises:
            UploadError: If the image could not be stored.
        """

    async def close(self) -> None:  # noqa: B027
        """Close any resources. Override if needed."""


class LocalImageUploader(ImageUploader):
    """Write images to a local directory (development and dry runs)."""

    def __init__(self, base_dir: str | Path, folder: str = "elo-ranker-memes") -> None:
        self.base_dir = Path(base_dir) / folder

    async def upload(self, content: bytes, file_name: str) -> str:
        # Only the final path component is used so names cannot leave base_dir
        safe_name = Path(file_name).name
        if safe_name in ("", ".", ".."):
            msg = f"Invalid image file name: {file_name!r}"
            raise UploadError(msg)

        def _save() -> Path:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            path = self.base_dir / safe_name
            path.write_bytes(content)
            return path

        try:
            path = await asyncio.to_thread(_save)
        except OSError as e:
            msg = f"Failed to write image {file_name}: {e}"
            raise UploadError(msg) from e

        logger.debug("image_saved", path=str(path))
        return path.resolve().as_uri()


class ImageKitUploader(ImageUploader):
    """Async ImageKit upload client with retries."""

    UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"

    def __init__(
        self,
        private_key: str,
        folder: str = "elo-ranker-memes",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize ImageKit uploader.

        Args:
            private_key: ImageKit private API key (used for HTTP basic auth).
            folder: Destination folder in the media library.
            client: Optional preconfigured HTTP client.
        """
        self.private_key = private_key
        self.folder = folder
        self.client = client or httpx.AsyncClient(timeout=60.0)

    async def upload(self, content: bytes, file_name: str) -> str:
        try:
            data = await self._call_api(content, file_name)
        except httpx.HTTPError as e:
            logger.error("image_upload_failed", file_name=file_name, error=str(e))
            msg = f"Failed to upload the image: {e}"
            raise UploadError(msg) from e
        except ValueError as e:
            logger.error("image_upload_failed", file_name=file_name, error=str(e))
            msg = f"Image upload response was not valid JSON: {e}"
            raise UploadError(msg) from e

        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            msg = "Image upload response did not include a URL"
            raise UploadError(msg)

        logger.info("image_uploaded", file_name=file_name, url=url)
        return url

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.TransportError, httpx.HTTPStatusError)),
        reraise=True,
    )
    async def _call_api(self, content: bytes, file_name: str) -> dict:
        """Make upload call with retries.

        Raises:
            httpx.HTTPError: On transport or API error after retries.
        """
        response = await self.client.post(
            self.UPLOAD_URL,
            auth=(self.private_key, ""),
            files={"file": (file_name, content)},
            data={"fileName": file_name, "folder": self.folder},
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()


def create_uploader(config: UploadConfig) -> ImageUploader:
    """Create the configured image uploader.

    Args:
        config: Upload configuration.

    Returns:
        ImageUploader instance.

    Raises:
        MissingCredentialsError: If ImageKit is selected without a private key.
    """
    if config.backend == "imagekit":
        return ImageKitUploader(config.require_private_key(), folder=config.folder)

    logger.info("using_local_uploader", path=config.local_dir)
    return LocalImageUploader(config.local_dir, folder=config.folder)
