"""
photos.py — Attempt photo storage backends and the blob reference resolver.

Three physical encodings have been used for attempt photos:
  1. inline base64 data URI kept in the attempt record
  2. absolute URL to an object store
  3. path relative to a locally served upload directory

Callers only ever see the resolved `photo_url` (or None for a placeholder).
"""
from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlsplit

import httpx

from .errors import StorageUnavailable
from .types import StoredPhoto
from .validation import PhotoUpload

logger = logging.getLogger(__name__)


def encode_data_uri(data: bytes, mime_type: str) -> str:
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{b64}"


def _is_data_uri(value: object) -> bool:
    return isinstance(value, str) and value.startswith("data:image/") and ";base64," in value


def _is_absolute_url(value: object) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    parts = urlsplit(value.strip())
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _is_relative_path(value: object) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    if urlsplit(value).scheme:
        return False
    return ".." not in Path(value.strip().lstrip("/")).parts


def resolve_photo_url(photo: StoredPhoto | None, base_url: str = "") -> str | None:
    """Single displayable reference for a stored photo.

    Precedence: inline data > absolute URL > relative path joined with
    `base_url`. Pure; unrecognized values resolve to None.
    """
    if photo is None:
        return None
    if _is_data_uri(photo.image_base64):
        return photo.image_base64
    if _is_absolute_url(photo.image_url):
        return photo.image_url.strip()
    if _is_relative_path(photo.image_path):
        path = photo.image_path.strip().lstrip("/")
        base = (base_url or "/").rstrip("/")
        return f"{base}/{path}"
    return None


class BlobStore(Protocol):
    async def store(self, upload: PhotoUpload) -> StoredPhoto:
        ...

    async def discard(self, photo: StoredPhoto) -> None:
        """Remove a photo whose attempt was never saved. Must not raise."""
        ...


class InlineBlobStore:
    """Keeps the photo inside the attempt record as a data URI."""

    async def store(self, upload: PhotoUpload) -> StoredPhoto:
        return StoredPhoto(image_base64=encode_data_uri(upload.data, upload.mime_type))

    async def discard(self, photo: StoredPhoto) -> None:
        # Nothing lives outside the record.
        return None


def _file_name(mime_type: str) -> str:
    ext = mimetypes.guess_extension(mime_type) or ".bin"
    if ext == ".jpe":
        ext = ".jpg"
    return f"{uuid.uuid4().hex}{ext}"


class LocalFileBlobStore:
    """Writes photos under `directory`; records keep the relative file name."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    async def store(self, upload: PhotoUpload) -> StoredPhoto:
        name = _file_name(upload.mime_type)
        target = self.directory / name
        try:
            await asyncio.to_thread(self._write, target, upload.data)
        except OSError as ex:
            raise StorageUnavailable(f"cannot write photo to {target}: {ex}") from ex
        logger.info("Stored photo %s (%d bytes)", name, len(upload.data))
        return StoredPhoto(image_path=name)

    async def discard(self, photo: StoredPhoto) -> None:
        if not photo.image_path:
            return
        target = self.directory / photo.image_path
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as ex:
            logger.warning("Could not remove orphaned photo %s: %s", target, ex)
            return
        logger.info("Removed orphaned photo %s", photo.image_path)

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


class HttpObjectBlobStore:
    """PUTs photos to an object store bucket and keeps the public URL."""

    def __init__(
        self,
        base_url: str,
        *,
        public_base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.public_base_url = (public_base_url or base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "chug-core/1.0"},
        )

    async def store(self, upload: PhotoUpload) -> StoredPhoto:
        key = f"attempts/{_file_name(upload.mime_type)}"
        url = f"{self.base_url}/{key}"
        try:
            resp = await self._client.put(
                url,
                content=upload.data,
                headers={"Content-Type": upload.mime_type},
            )
            resp.raise_for_status()
        except httpx.HTTPError as ex:
            raise StorageUnavailable(f"object store upload failed: {ex}") from ex
        logger.info("Uploaded photo to %s", url)
        return StoredPhoto(image_url=f"{self.public_base_url}/{key}")

    async def discard(self, photo: StoredPhoto) -> None:
        prefix = f"{self.public_base_url}/"
        if not photo.image_url or not photo.image_url.startswith(prefix):
            return
        url = f"{self.base_url}/{photo.image_url[len(prefix):]}"
        try:
            resp = await self._client.delete(url)
            resp.raise_for_status()
        except httpx.HTTPError as ex:
            logger.warning("Could not delete orphaned photo %s: %s", url, ex)
            return
        logger.info("Deleted orphaned photo %s", url)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
