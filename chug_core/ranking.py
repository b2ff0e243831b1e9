"""Attempt ranking engine (fastest time first, stable ties, podium, attempt numbers).

Single source of truth for ordering across party boards and the Hall of Fame:
- Comparator: lower time is better; equal times keep their input order.
- Ties never share a rank: two equal times occupy consecutive positions.
- Attempt numbers ("3rd attempt") follow created_at, independent of rank.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Sequence

from .types import DEFAULT_METHOD, UNKNOWN_BEER_TYPE, Attempt, Method


SUB_THREE_SECONDS = 3.0

Medal = Literal["gold", "silver", "bronze"]
_MEDALS: tuple[Medal, ...] = ("gold", "silver", "bronze")


@dataclass(frozen=True)
class Podium:
    first: Attempt | None
    second: Attempt | None
    third: Attempt | None

    def slots(self) -> tuple[Attempt | None, Attempt | None, Attempt | None]:
        """Left-to-right visual order: 2nd, 1st, 3rd."""
        return (self.second, self.first, self.third)


@dataclass(frozen=True)
class LeaderboardRow:
    rank: int
    attempt: Attempt
    attempt_number: int
    sub_three: bool
    medal: Medal | None


@dataclass(frozen=True)
class ParticipantDefaults:
    beer_type: str
    method: Method


def is_sub_three(time: float) -> bool:
    """Presentation tier: strictly below 3.00 s (exactly 3.00 is not sub-3)."""
    return time < SUB_THREE_SECONDS


def format_time(seconds: float) -> str:
    return f"{seconds:.2f}"


def chronological(attempts: Iterable[Attempt]) -> list[Attempt]:
    """Order by created_at, keeping input order for identical timestamps."""
    return sorted(attempts, key=lambda a: a.created_at)


def rank(attempts: Iterable[Attempt]) -> list[Attempt]:
    # sorted() is stable, so equal times keep their relative input order.
    return sorted(attempts, key=lambda a: a.time)


def podium(ranked: Sequence[Attempt]) -> Podium:
    def _place(idx: int) -> Attempt | None:
        return ranked[idx] if len(ranked) > idx else None

    return Podium(first=_place(0), second=_place(1), third=_place(2))


def _same_scope(a: Attempt, b: Attempt) -> bool:
    return a.name == b.name and a.party_id == b.party_id


def ordinal_for_participant(attempts: Iterable[Attempt], attempt: Attempt) -> int:
    """1-based position of `attempt` among its participant's attempts, oldest first.

    Raises:
        ValueError: If `attempt` is not part of `attempts`.
    """
    own = chronological(a for a in attempts if _same_scope(a, attempt))
    for idx, candidate in enumerate(own, start=1):
        if candidate.id == attempt.id:
            return idx
    raise ValueError(f"attempt {attempt.id} is not in the given collection")


def attempt_numbers(attempts: Iterable[Attempt]) -> dict[str, int]:
    """Attempt id -> ordinal for every attempt, in one pass."""
    counters: dict[tuple[str, str | None], int] = {}
    numbers: dict[str, int] = {}
    for attempt in chronological(attempts):
        key = (attempt.name, attempt.party_id)
        counters[key] = counters.get(key, 0) + 1
        numbers[attempt.id] = counters[key]
    return numbers


def leaderboard(attempts: Iterable[Attempt]) -> list[LeaderboardRow]:
    """Ranked rows for a board. Input is put in created_at order first so the
    tie order does not depend on how the store returned the records."""
    ordered = chronological(attempts)
    numbers = attempt_numbers(ordered)
    rows: list[LeaderboardRow] = []
    for pos, attempt in enumerate(rank(ordered), start=1):
        rows.append(
            LeaderboardRow(
                rank=pos,
                attempt=attempt,
                attempt_number=numbers[attempt.id],
                sub_three=is_sub_three(attempt.time),
                medal=_MEDALS[pos - 1] if pos <= len(_MEDALS) else None,
            )
        )
    return rows


def unique_participants(attempts: Iterable[Attempt]) -> list[str]:
    return sorted({a.name for a in attempts})


def participant_defaults(attempts: Iterable[Attempt], name: str) -> ParticipantDefaults | None:
    """Beer type and method from the participant's most recent attempt."""
    own = [a for a in chronological(attempts) if a.name == name]
    if not own:
        return None
    latest = own[-1]
    return ParticipantDefaults(
        beer_type=latest.beer_type or UNKNOWN_BEER_TYPE,
        method=latest.method or DEFAULT_METHOD,
    )
