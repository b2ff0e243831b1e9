"""Application service: the boundary a transport layer calls.

Wires validation, the blob backend, the stores, the ranking engine and the
Hall of Fame together. Holds no state between calls beyond its collaborators,
so the list returned after a write is always a fresh read.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .config import Settings, build_blob_store, build_store, configure_logging
from .errors import StorageUnavailable
from .hall_of_fame import HallOfFameEntry, hall_of_fame
from .photos import BlobStore, resolve_photo_url
from .ranking import (
    LeaderboardRow,
    ParticipantDefaults,
    Podium,
    leaderboard,
    participant_defaults,
    podium,
    unique_participants,
)
from .store import AttemptStore, PartyStore, SqliteStore
from .types import (
    Attempt,
    AttemptPayload,
    HallOfFamePayload,
    Party,
    PartyPayload,
    StoredPhoto,
)
from .validation import AttemptDraft, PartyDraft, validate_attempt, validate_party, validate_photo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Submission:
    attempt: Attempt
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class PartyBoard:
    party: Party
    rows: tuple[LeaderboardRow, ...]
    podium: Podium
    participants: tuple[str, ...] = field(default_factory=tuple)


class AttemptService:
    def __init__(
        self,
        attempts: AttemptStore,
        parties: PartyStore,
        blobs: BlobStore,
        settings: Settings | None = None,
    ) -> None:
        self.attempts = attempts
        self.parties = parties
        self.blobs = blobs
        self.settings = settings or Settings()

    async def aclose(self) -> None:
        """Release the blob backend client and the database connection."""
        aclose = getattr(self.blobs, "aclose", None)
        if aclose is not None:
            await aclose()
        stores = [self.attempts] if self.parties is self.attempts else [self.attempts, self.parties]
        for store in stores:
            close = getattr(store, "close", None)
            if close is not None:
                close()

    async def __aenter__(self) -> "AttemptService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ----- attempts -----

    async def submit_attempt(
        self,
        data: dict[str, Any] | AttemptDraft,
        photo: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> Submission:
        """Validate and persist an attempt.

        Photo storage failure does not fail the submission: the attempt is
        saved without a photo and the problem is returned as a warning.

        Raises:
            ValidationError: invalid fields or photo; nothing is written
            NotFoundError: party_id does not resolve
            StorageUnavailable: the attempt store cannot be reached
        """
        draft = validate_attempt(data)
        upload = None
        if photo is not None:
            upload = validate_photo(
                photo,
                mime_type or "",
                max_bytes=self.settings.max_photo_bytes,
            )
        if draft.party_id is not None:
            await self.parties.get_party(draft.party_id)

        warnings: list[str] = []
        stored: StoredPhoto | None = None
        if upload is not None:
            try:
                stored = await self.blobs.store(upload)
            except StorageUnavailable as ex:
                logger.warning(f"Photo not stored for {draft.name!r}: {ex}")
                warnings.append(f"photo was not saved: {ex}")

        try:
            attempt = await self.attempts.create_attempt(draft, stored)
        except Exception:
            if stored is not None:
                await self.blobs.discard(stored)
            raise
        logger.info(
            f"Attempt {attempt.id} saved: {attempt.name} {attempt.time:.2f}s"
            f" party={attempt.party_id or '-'}"
        )
        return Submission(attempt=attempt, warnings=tuple(warnings))

    async def delete_attempt(self, attempt_id: str) -> None:
        deleted = await self.attempts.delete_attempt(attempt_id)
        if deleted:
            logger.info(f"Attempt {attempt_id} deleted")
        else:
            logger.debug(f"Attempt {attempt_id} already gone")

    async def list_attempts(self, party_id: str | None = None) -> list[LeaderboardRow]:
        return leaderboard(await self.attempts.list_attempts(party_id))

    async def participant_defaults(
        self, party_id: str, name: str
    ) -> ParticipantDefaults | None:
        return participant_defaults(await self.attempts.list_attempts(party_id), name)

    # ----- parties -----

    async def create_party(self, data: dict[str, Any] | PartyDraft) -> Party:
        party = await self.parties.create_party(validate_party(data))
        logger.info(f"Party {party.id} created: {party.name}")
        return party

    async def list_parties(self) -> list[Party]:
        return await self.parties.list_parties()

    async def get_party(self, party_id: str) -> Party:
        return await self.parties.get_party(party_id)

    async def party_board(self, party_id: str) -> PartyBoard:
        party = await self.parties.get_party(party_id)
        attempts = await self.attempts.list_attempts(party_id)
        rows = leaderboard(attempts)
        return PartyBoard(
            party=party,
            rows=tuple(rows),
            podium=podium([row.attempt for row in rows]),
            participants=tuple(unique_participants(attempts)),
        )

    async def hall_of_fame(self) -> list[HallOfFameEntry]:
        return await hall_of_fame(self.attempts, self.parties)

    # ----- payloads -----

    def photo_url(self, attempt: Attempt) -> str | None:
        return resolve_photo_url(attempt.photo, self.settings.photo_base_url)

    def attempt_payload(self, attempt: Attempt) -> AttemptPayload:
        return {
            "id": attempt.id,
            "name": attempt.name,
            "time": attempt.time,
            "beer_type": attempt.beer_type,
            "method": attempt.method,
            "partyId": attempt.party_id,
            "image_url": self.photo_url(attempt),
            "created_at": attempt.created_at.isoformat(),
        }

    @staticmethod
    def party_payload(party: Party) -> PartyPayload:
        return {
            "id": party.id,
            "name": party.name,
            "created_at": party.created_at.isoformat(),
        }

    def hall_of_fame_payload(self, entry: HallOfFameEntry) -> HallOfFamePayload:
        return HallOfFamePayload(
            **self.attempt_payload(entry.attempt),
            rank=entry.rank,
            partyName=entry.party_name,
        )


def build_service(settings: Settings | None = None) -> AttemptService:
    """Construct a service from settings (environment when omitted).

    Raises:
        StorageUnavailable: If the store or photo backend cannot be set up.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    store = build_store(settings)
    try:
        blobs = build_blob_store(settings)
    except StorageUnavailable:
        if isinstance(store, SqliteStore):
            store.close()
        raise
    return AttemptService(store, store, blobs, settings)
