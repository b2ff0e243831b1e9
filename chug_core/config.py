"""
Runtime configuration for chug-core.
All values come from environment variables with sensible defaults.
"""
from __future__ import annotations

import logging
import os
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import StorageUnavailable
from .photos import BlobStore, HttpObjectBlobStore, InlineBlobStore, LocalFileBlobStore
from .stopwatch import DEFAULT_TICK_INTERVAL
from .store import InMemoryStore, SqliteStore
from .validation import MAX_PHOTO_BYTES

logger = logging.getLogger(__name__)


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{key}={raw!r} is not an integer; using {default}")
        return default


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{key}={raw!r} is not a number; using {default}")
        return default


class Settings(BaseModel):
    store: Literal["memory", "sqlite"] = "memory"
    sqlite_path: str = "chug.db"
    photo_backend: Literal["inline", "local", "object"] = "inline"
    photo_dir: str = "uploads"
    # Serving base joined with relative photo paths
    photo_base_url: str = "/uploads/"
    object_store_url: Optional[str] = None
    max_photo_bytes: int = Field(MAX_PHOTO_BYTES, gt=0)
    tick_interval: float = Field(DEFAULT_TICK_INTERVAL, gt=0)
    log_level: str = "INFO"

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_object_store(self) -> "Settings":
        if self.photo_backend == "object" and not self.object_store_url:
            raise ValueError("photo_backend 'object' requires object_store_url")
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        """Settings from CHUG_* variables.

        Raises:
            StorageUnavailable: If the variables describe no usable setup.
        """
        try:
            return cls(
                store=os.getenv("CHUG_STORE", "memory").lower(),
                sqlite_path=os.getenv("CHUG_SQLITE_PATH", "chug.db"),
                photo_backend=os.getenv("CHUG_PHOTO_BACKEND", "inline").lower(),
                photo_dir=os.getenv("CHUG_PHOTO_DIR", "uploads"),
                photo_base_url=os.getenv("CHUG_PHOTO_BASE_URL", "/uploads/"),
                object_store_url=os.getenv("CHUG_OBJECT_STORE_URL") or None,
                max_photo_bytes=_env_int("CHUG_MAX_PHOTO_BYTES", MAX_PHOTO_BYTES),
                tick_interval=_env_float("CHUG_TICK_INTERVAL", DEFAULT_TICK_INTERVAL),
                log_level=os.getenv("CHUG_LOG_LEVEL", "INFO").upper(),
            )
        except PydanticValidationError as ex:
            raise StorageUnavailable(f"invalid configuration: {ex}") from ex


def configure_logging(level: str = "INFO") -> None:
    """Basic console logging for hosts that did not configure any."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_store(settings: Settings) -> InMemoryStore | SqliteStore:
    """One store object serving both the attempt and party contracts.

    Raises:
        StorageUnavailable: If the configured database cannot be opened.
    """
    if settings.store == "sqlite":
        return SqliteStore(settings.sqlite_path)
    logger.warning("Using in-memory store; attempts are lost on restart")
    return InMemoryStore()


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.photo_backend == "local":
        try:
            os.makedirs(settings.photo_dir, exist_ok=True)
        except OSError as ex:
            raise StorageUnavailable(f"cannot create photo dir {settings.photo_dir}: {ex}") from ex
        return LocalFileBlobStore(settings.photo_dir)
    if settings.photo_backend == "object":
        return HttpObjectBlobStore(settings.object_store_url or "")
    return InlineBlobStore()
