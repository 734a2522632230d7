"""
Profile Image Storage

Two backends behind one interface:
  - LocalImageStorage: writes the file under UPLOAD_DIR and returns its path
  - CloudinaryImageStorage: upload through the Cloudinary SDK, returns the secure URL
"""
import asyncio
import io
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import cloudinary.exceptions
import cloudinary.uploader

from account_service.config import settings
from account_service.core.errors import StorageError

logger = logging.getLogger(__name__)


class ImageStorage(ABC):
    """Image storage abstract base class"""

    @abstractmethod
    async def save(self, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
        """
        Store an image.

        Returns:
        - str: Local path or public URL of the stored image
        """
        raise NotImplementedError


class LocalImageStorage(ImageStorage):
    def __init__(self, upload_dir: str):
        self.upload_dir = Path(upload_dir)

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    async def save(self, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
        # "<epoch ms>-<original name>", directory parts of the client name are dropped
        name = f"{int(time.time() * 1000)}-{Path(filename or 'upload').name}"
        path = self.upload_dir / name
        try:
            await asyncio.to_thread(self._write, path, content)
        except OSError as exc:
            logger.error("[upload] writing %s failed: %s", path, exc, exc_info=True)
            raise StorageError() from exc
        logger.info("[upload] stored %s (%d bytes)", path, len(content))
        return str(path)


class CloudinaryImageStorage(ImageStorage):
    def __init__(self, cloud_name: Optional[str], api_key: Optional[str], api_secret: Optional[str]):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret

    def is_available(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _upload(self, filename: str, content: bytes) -> dict:
        file = io.BytesIO(content)
        file.name = filename
        return cloudinary.uploader.upload(
            file,
            resource_type="image",
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
        )

    async def save(self, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
        if not self.is_available():
            logger.error("[upload] CLOUDINARY_* settings missing, remote upload refused")
            raise StorageError("Remote image storage is not configured")

        try:
            # The SDK is blocking; keep it off the event loop
            result = await asyncio.to_thread(self._upload, filename or "upload", content)
        except (cloudinary.exceptions.Error, OSError) as exc:
            logger.error("[upload] remote upload failed: %s", exc, exc_info=True)
            raise StorageError() from exc

        secure_url = (result or {}).get("secure_url")
        if not secure_url:
            logger.error("[upload] remote upload returned no secure_url: %s", result)
            raise StorageError()
        logger.info("[upload] stored remotely: %s", secure_url)
        return secure_url


def get_local_storage() -> ImageStorage:
    return LocalImageStorage(settings.upload_dir)


def get_remote_storage() -> ImageStorage:
    return CloudinaryImageStorage(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
    )
