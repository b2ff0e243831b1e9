"""Record types and wire payload shapes."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional, TypedDict


Method = Literal["Glass", "Can"]

DEFAULT_METHOD: Method = "Glass"
UNKNOWN_BEER_TYPE = "unknown"
UNKNOWN_PARTY = "Unknown Party"


@dataclass(frozen=True)
class StoredPhoto:
    """Photo as the store physically kept it.

    Exactly one field is normally set, but records migrated between backends
    may carry more than one; see photos.resolve_photo_url for precedence.
    """

    image_base64: str | None = None  # data URI
    image_url: str | None = None  # absolute URL to an object store
    image_path: str | None = None  # relative to the photo serving base URL


@dataclass(frozen=True)
class Attempt:
    id: str
    name: str
    time: float
    created_at: datetime
    beer_type: str = UNKNOWN_BEER_TYPE
    method: Method = DEFAULT_METHOD
    party_id: str | None = None
    photo: StoredPhoto | None = None


@dataclass(frozen=True)
class Party:
    id: str
    name: str
    created_at: datetime


class AttemptPayload(TypedDict):
    """Attempt as sent to clients."""
    id: str
    name: str
    time: float
    beer_type: str
    method: str
    partyId: Optional[str]
    # Resolved photo reference, None renders as a placeholder
    image_url: Optional[str]
    created_at: str  # ISO 8601


class PartyPayload(TypedDict):
    id: str
    name: str
    created_at: str


class HallOfFamePayload(AttemptPayload):
    rank: int
    partyName: str
