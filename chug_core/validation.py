"""
Input validation schemas using Pydantic v2
Validates attempt submissions, party creation and photo uploads
"""
from __future__ import annotations

import logging
import math
import re
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .types import DEFAULT_METHOD, UNKNOWN_BEER_TYPE, Method

logger = logging.getLogger(__name__)

MAX_PHOTO_BYTES = 5 * 1024 * 1024
MAX_NAME_LENGTH = 100

# Labels used by the original Danish UI are still found in stored data.
_METHOD_ALIASES: dict[str, Method] = {
    "glass": "Glass",
    "glas": "Glass",
    "can": "Can",
    "dåse": "Can",
    "dase": "Can",
}


# ==================== VALIDATOR FUNCTIONS ====================


def coerce_time(value: Any) -> float | None:
    """Parse a user-supplied time into a finite float.

    Accepts ints, floats and numeric strings (comma decimal separator too,
    since phones in some locales produce one). Returns None for anything
    else, including booleans, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        stripped = value.strip().replace(",", ".")
        if not stripped:
            return None
        try:
            parsed = float(stripped)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def normalize_method(value: Any) -> Method:
    if value is None or (isinstance(value, str) and not value.strip()):
        return DEFAULT_METHOD
    if isinstance(value, str):
        method = _METHOD_ALIASES.get(value.strip().lower())
        if method is not None:
            return method
    raise ValueError(f"method must be one of Glass, Can; got {value!r}")


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        value = value.strip()
        value = value[:max_length]
        # Remove null bytes
        value = value.replace("\0", "")
        return value

    @staticmethod
    def sanitize_participant_name(name: str) -> str:
        """Sanitize participant name for display - keeps letters incl. æøå, digits, spaces"""
        name = InputSanitizer.sanitize_string(name, MAX_NAME_LENGTH)

        # Remove control characters and markup brackets only
        dangerous_chars = r"[<>{}\\`\x00-\x1f\x7f]"
        name = re.sub(dangerous_chars, "", name)
        # Collapse runs of whitespace so "Bo  B" and "Bo B" group together
        name = re.sub(r"\s+", " ", name)

        return name.strip()

    @staticmethod
    def sanitize_label(label: str) -> str:
        """Sanitize beer type / party name"""
        label = InputSanitizer.sanitize_string(label, MAX_NAME_LENGTH)
        return re.sub(r"[\x00-\x1f\x7f]", "", label).strip()


class AttemptDraft(BaseModel):
    """A submitted attempt before the store assigns id and created_at."""

    name: str = Field(..., description="Participant display name")
    time: float = Field(..., description="Elapsed seconds, strictly positive")
    beer_type: str = Field(
        UNKNOWN_BEER_TYPE, validation_alias=AliasChoices("beer_type", "beerType")
    )
    method: Method = DEFAULT_METHOD
    party_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("party_id", "partyId")
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        if v is None:
            raise ValueError("name is required")
        name = InputSanitizer.sanitize_participant_name(str(v))
        if not name:
            raise ValueError("name cannot be empty")
        return name

    @field_validator("time", mode="before")
    @classmethod
    def validate_time(cls, v: Any) -> float:
        parsed = coerce_time(v)
        if parsed is None:
            raise ValueError("time must be a finite number")
        if parsed <= 0:
            raise ValueError("time must be greater than 0")
        return parsed

    @field_validator("beer_type", mode="before")
    @classmethod
    def validate_beer_type(cls, v: Any) -> str:
        if v is None:
            return UNKNOWN_BEER_TYPE
        label = InputSanitizer.sanitize_label(str(v))
        return label or UNKNOWN_BEER_TYPE

    @field_validator("method", mode="before")
    @classmethod
    def validate_method(cls, v: Any) -> Method:
        return normalize_method(v)

    @field_validator("party_id", mode="before")
    @classmethod
    def validate_party_id(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        party_id = str(v).strip()
        return party_id or None


class PartyDraft(BaseModel):
    name: str

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        if v is None:
            raise ValueError("name is required")
        name = InputSanitizer.sanitize_label(str(v))
        if not name:
            raise ValueError("name cannot be empty")
        return name


class PhotoUpload(BaseModel):
    """Binary photo payload; size limit comes from the validation context."""

    data: bytes
    mime_type: str

    model_config = ConfigDict(frozen=True)

    @field_validator("data")
    @classmethod
    def validate_size(cls, v: bytes, info: ValidationInfo) -> bytes:
        limit = MAX_PHOTO_BYTES
        if info.context and info.context.get("max_photo_bytes"):
            limit = int(info.context["max_photo_bytes"])
        if not v:
            raise ValueError("photo is empty")
        if len(v) > limit:
            raise ValueError(f"photo exceeds {limit} bytes")
        return v

    @field_validator("mime_type")
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        v = v.strip().lower()
        if not re.fullmatch(r"image/[a-z0-9.+-]+", v):
            raise ValueError(f"photo must be an image, got {v!r}")
        return v


def _to_core_error(exc: PydanticValidationError) -> ValidationError:
    first = exc.errors()[0]
    field = str(first["loc"][0]) if first.get("loc") else None
    message = str(first.get("msg", "invalid input"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return ValidationError(message, field=field)


def validate_attempt(data: dict[str, Any] | AttemptDraft) -> AttemptDraft:
    """Validate and sanitize an attempt submission.

    Raises:
        ValidationError: If any field is missing or invalid
    """
    if isinstance(data, AttemptDraft):
        return data
    try:
        return AttemptDraft.model_validate(data)
    except PydanticValidationError as e:
        logger.warning(f"Attempt validation failed: {e}")
        raise _to_core_error(e) from e


def validate_party(data: dict[str, Any] | PartyDraft) -> PartyDraft:
    if isinstance(data, PartyDraft):
        return data
    try:
        return PartyDraft.model_validate(data)
    except PydanticValidationError as e:
        logger.warning(f"Party validation failed: {e}")
        raise _to_core_error(e) from e


def validate_photo(
    data: bytes, mime_type: str, *, max_bytes: int = MAX_PHOTO_BYTES
) -> PhotoUpload:
    try:
        return PhotoUpload.model_validate(
            {"data": data, "mime_type": mime_type},
            context={"max_photo_bytes": max_bytes},
        )
    except PydanticValidationError as e:
        # Do not log the payload itself
        logger.warning(f"Photo validation failed: {len(e.errors())} error(s)")
        raise _to_core_error(e) from e


# ==================== EXPORT ====================

__all__ = [
    "AttemptDraft",
    "PartyDraft",
    "PhotoUpload",
    "InputSanitizer",
    "coerce_time",
    "normalize_method",
    "validate_attempt",
    "validate_party",
    "validate_photo",
]
