"""
store.py — Attempt/Party repository contracts and two concrete stores.

The ranking code never sees which store is used. Contract:
- list_attempts(party_id=None) returns the full collection (None = every
  attempt), in insertion order; callers still apply their own ordering.
- delete_attempt of an unknown id is a no-op returning False.
- get_party raises NotFoundError.
- Backend failures surface as StorageUnavailable; nothing here retries.
"""
from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Protocol

from .clock import utc_now
from .errors import NotFoundError, StorageUnavailable
from .types import Attempt, Party, StoredPhoto
from .validation import AttemptDraft, PartyDraft

logger = logging.getLogger(__name__)


class AttemptStore(Protocol):
    async def list_attempts(self, party_id: str | None = None) -> list[Attempt]:
        ...

    async def create_attempt(
        self, draft: AttemptDraft, photo: StoredPhoto | None = None
    ) -> Attempt:
        ...

    async def delete_attempt(self, attempt_id: str) -> bool:
        ...


class PartyStore(Protocol):
    async def list_parties(self) -> list[Party]:
        ...

    async def create_party(self, draft: PartyDraft) -> Party:
        ...

    async def get_party(self, party_id: str) -> Party:
        ...


def _new_id() -> str:
    return uuid.uuid4().hex


class _CreatedAtSequence:
    """Hands out created_at values that never decrease, even if the wall clock does."""

    def __init__(self, now: Callable[[], datetime], last: datetime | None = None) -> None:
        self._now = now
        self._last = last

    def next(self) -> datetime:
        stamp = self._now()
        if self._last is not None and stamp < self._last:
            stamp = self._last
        self._last = stamp
        return stamp


class InMemoryStore:
    """Dict-backed store implementing both contracts. Used for tests and demos."""

    def __init__(self, now: Callable[[], datetime] = utc_now) -> None:
        self._attempts: dict[str, Attempt] = {}
        self._parties: dict[str, Party] = {}
        self._clock = _CreatedAtSequence(now)

    async def list_attempts(self, party_id: str | None = None) -> list[Attempt]:
        if party_id is None:
            return list(self._attempts.values())
        return [a for a in self._attempts.values() if a.party_id == party_id]

    async def create_attempt(
        self, draft: AttemptDraft, photo: StoredPhoto | None = None
    ) -> Attempt:
        attempt = Attempt(
            id=_new_id(),
            name=draft.name,
            time=draft.time,
            created_at=self._clock.next(),
            beer_type=draft.beer_type,
            method=draft.method,
            party_id=draft.party_id,
            photo=photo,
        )
        self._attempts[attempt.id] = attempt
        return attempt

    async def delete_attempt(self, attempt_id: str) -> bool:
        return self._attempts.pop(attempt_id, None) is not None

    async def list_parties(self) -> list[Party]:
        # created_at never decreases, so reverse insertion order is newest first
        return list(reversed(self._parties.values()))

    async def create_party(self, draft: PartyDraft) -> Party:
        party = Party(id=_new_id(), name=draft.name, created_at=self._clock.next())
        self._parties[party.id] = party
        return party

    async def get_party(self, party_id: str) -> Party:
        party = self._parties.get(party_id)
        if party is None:
            raise NotFoundError("party", party_id)
        return party


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS parties (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS attempts (
    id            TEXT PRIMARY KEY,
    name          TEXT NOT NULL,
    time          REAL NOT NULL CHECK (time > 0),
    beer_type     TEXT NOT NULL,
    method        TEXT NOT NULL,
    party_id      TEXT,
    image_base64  TEXT,
    image_url     TEXT,
    image_path    TEXT,
    created_at    TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_attempts_party ON attempts(party_id);
"""


def _row_to_attempt(row: sqlite3.Row) -> Attempt:
    photo = None
    if row["image_base64"] or row["image_url"] or row["image_path"]:
        photo = StoredPhoto(
            image_base64=row["image_base64"],
            image_url=row["image_url"],
            image_path=row["image_path"],
        )
    return Attempt(
        id=row["id"],
        name=row["name"],
        time=float(row["time"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        beer_type=row["beer_type"],
        method=row["method"],
        party_id=row["party_id"],
        photo=photo,
    )


def _row_to_party(row: sqlite3.Row) -> Party:
    return Party(
        id=row["id"],
        name=row["name"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class SqliteStore:
    """SQLite-backed store implementing both contracts.

    sqlite3 is blocking, so every call runs in a worker thread; a lock keeps
    the single shared connection to one statement batch at a time.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.db_path = str(db_path)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self.db_path, timeout=10, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(SCHEMA_SQL)
            self._conn.commit()
            last = self._conn.execute(
                "SELECT MAX(created_at) AS last FROM ("
                " SELECT created_at FROM attempts UNION ALL SELECT created_at FROM parties)"
            ).fetchone()["last"]
        except sqlite3.Error as ex:
            raise StorageUnavailable(f"cannot open database {self.db_path}: {ex}") from ex
        self._clock = _CreatedAtSequence(
            now, datetime.fromisoformat(last) if last else None
        )
        logger.info("Opened attempt database %s", self.db_path)

    async def _run(self, fn: Callable, *args):
        def _locked():
            with self._lock:
                return fn(*args)

        try:
            return await asyncio.to_thread(_locked)
        except sqlite3.Error as ex:
            raise StorageUnavailable(f"database error: {ex}") from ex

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ----- attempts -----

    async def list_attempts(self, party_id: str | None = None) -> list[Attempt]:
        return await self._run(self._list_attempts, party_id)

    def _list_attempts(self, party_id: Optional[str]) -> list[Attempt]:
        if party_id is None:
            rows = self._conn.execute(
                "SELECT * FROM attempts ORDER BY created_at, rowid"
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM attempts WHERE party_id=? ORDER BY created_at, rowid",
                (party_id,),
            ).fetchall()
        return [_row_to_attempt(r) for r in rows]

    async def create_attempt(
        self, draft: AttemptDraft, photo: StoredPhoto | None = None
    ) -> Attempt:
        return await self._run(self._create_attempt, draft, photo)

    def _create_attempt(self, draft: AttemptDraft, photo: Optional[StoredPhoto]) -> Attempt:
        attempt = Attempt(
            id=_new_id(),
            name=draft.name,
            time=draft.time,
            created_at=self._clock.next(),
            beer_type=draft.beer_type,
            method=draft.method,
            party_id=draft.party_id,
            photo=photo,
        )
        self._conn.execute(
            """INSERT INTO attempts (id, name, time, beer_type, method, party_id,
                                     image_base64, image_url, image_path, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                attempt.id,
                attempt.name,
                attempt.time,
                attempt.beer_type,
                attempt.method,
                attempt.party_id,
                photo.image_base64 if photo else None,
                photo.image_url if photo else None,
                photo.image_path if photo else None,
                attempt.created_at.isoformat(),
            ),
        )
        self._conn.commit()
        return attempt

    async def delete_attempt(self, attempt_id: str) -> bool:
        return await self._run(self._delete_attempt, attempt_id)

    def _delete_attempt(self, attempt_id: str) -> bool:
        cur = self._conn.execute("DELETE FROM attempts WHERE id=?", (attempt_id,))
        self._conn.commit()
        return cur.rowcount > 0

    # ----- parties -----

    async def list_parties(self) -> list[Party]:
        return await self._run(self._list_parties)

    def _list_parties(self) -> list[Party]:
        rows = self._conn.execute(
            "SELECT * FROM parties ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
        return [_row_to_party(r) for r in rows]

    async def create_party(self, draft: PartyDraft) -> Party:
        return await self._run(self._create_party, draft)

    def _create_party(self, draft: PartyDraft) -> Party:
        party = Party(id=_new_id(), name=draft.name, created_at=self._clock.next())
        self._conn.execute(
            "INSERT INTO parties (id, name, created_at) VALUES (?, ?, ?)",
            (party.id, party.name, party.created_at.isoformat()),
        )
        self._conn.commit()
        return party

    async def get_party(self, party_id: str) -> Party:
        row = await self._run(self._get_party_row, party_id)
        if row is None:
            raise NotFoundError("party", party_id)
        return _row_to_party(row)

    def _get_party_row(self, party_id: str) -> Optional[sqlite3.Row]:
        return self._conn.execute(
            "SELECT * FROM parties WHERE id=?", (party_id,)
        ).fetchone()
