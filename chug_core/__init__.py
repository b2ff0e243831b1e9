from .errors import (
    ChugError,
    InvalidTransition,
    NotFoundError,
    StorageUnavailable,
    ValidationError,
)
from .types import (
    UNKNOWN_BEER_TYPE,
    UNKNOWN_PARTY,
    Attempt,
    AttemptPayload,
    HallOfFamePayload,
    Party,
    PartyPayload,
    StoredPhoto,
)
from .clock import Clock, MonotonicClock, utc_now
from .stopwatch import Stopwatch
from .validation import AttemptDraft, InputSanitizer, PartyDraft, PhotoUpload
from .ranking import (
    SUB_THREE_SECONDS,
    LeaderboardRow,
    Podium,
    attempt_numbers,
    chronological,
    format_time,
    is_sub_three,
    leaderboard,
    ordinal_for_participant,
    participant_defaults,
    podium,
    rank,
    unique_participants,
)
from .photos import (
    BlobStore,
    HttpObjectBlobStore,
    InlineBlobStore,
    LocalFileBlobStore,
    encode_data_uri,
    resolve_photo_url,
)
from .store import AttemptStore, InMemoryStore, PartyStore, SqliteStore
from .hall_of_fame import HallOfFameEntry, hall_of_fame
from .config import Settings
from .service import AttemptService, PartyBoard, Submission, build_service

__all__ = [
    "ChugError",
    "InvalidTransition",
    "NotFoundError",
    "StorageUnavailable",
    "ValidationError",
    "UNKNOWN_BEER_TYPE",
    "UNKNOWN_PARTY",
    "Attempt",
    "AttemptPayload",
    "HallOfFamePayload",
    "Party",
    "PartyPayload",
    "StoredPhoto",
    "Clock",
    "MonotonicClock",
    "utc_now",
    "Stopwatch",
    "AttemptDraft",
    "InputSanitizer",
    "PartyDraft",
    "PhotoUpload",
    "SUB_THREE_SECONDS",
    "LeaderboardRow",
    "Podium",
    "attempt_numbers",
    "chronological",
    "format_time",
    "is_sub_three",
    "leaderboard",
    "ordinal_for_participant",
    "participant_defaults",
    "podium",
    "rank",
    "unique_participants",
    "BlobStore",
    "HttpObjectBlobStore",
    "InlineBlobStore",
    "LocalFileBlobStore",
    "encode_data_uri",
    "resolve_photo_url",
    "AttemptStore",
    "InMemoryStore",
    "PartyStore",
    "SqliteStore",
    "HallOfFameEntry",
    "hall_of_fame",
    "Settings",
    "AttemptService",
    "PartyBoard",
    "Submission",
    "build_service",
]
