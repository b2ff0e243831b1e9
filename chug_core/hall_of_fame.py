"""Global all-time top list: rank every attempt, enrich the top with party names."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .errors import NotFoundError, StorageUnavailable
from .ranking import chronological, is_sub_three, rank
from .store import AttemptStore, PartyStore
from .types import UNKNOWN_PARTY, Attempt

logger = logging.getLogger(__name__)

HALL_OF_FAME_SIZE = 10


@dataclass(frozen=True)
class HallOfFameEntry:
    rank: int
    attempt: Attempt
    party_name: str
    sub_three: bool


async def _party_name(parties: PartyStore, party_id: str | None) -> str:
    # Best-effort: any lookup problem degrades to the sentinel label.
    if party_id is None:
        return UNKNOWN_PARTY
    try:
        party = await parties.get_party(party_id)
    except NotFoundError:
        logger.debug(f"Hall of Fame: party {party_id} no longer exists")
        return UNKNOWN_PARTY
    except StorageUnavailable as ex:
        logger.warning(f"Hall of Fame: party lookup {party_id} failed: {ex}")
        return UNKNOWN_PARTY
    return party.name


async def hall_of_fame(
    attempts: AttemptStore,
    parties: PartyStore,
    limit: int = HALL_OF_FAME_SIZE,
) -> list[HallOfFameEntry]:
    """Top `limit` attempts across all parties, fastest first.

    Party lookups run concurrently; output order is the ranked order.
    Failure to list attempts is not degraded and propagates.
    """
    ranked = rank(chronological(await attempts.list_attempts()))[: max(0, limit)]
    names = await asyncio.gather(*(_party_name(parties, a.party_id) for a in ranked))
    return [
        HallOfFameEntry(
            rank=pos,
            attempt=attempt,
            party_name=name,
            sub_three=is_sub_three(attempt.time),
        )
        for pos, (attempt, name) in enumerate(zip(ranked, names), start=1)
    ]
