from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from chug_core import InMemoryStore, NotFoundError, SqliteStore, StorageUnavailable, StoredPhoto
from chug_core.validation import AttemptDraft, PartyDraft

T0 = datetime(2026, 5, 1, 20, 0, tzinfo=timezone.utc)


class _SteppingClock:
    """Returns the queued timestamps in order, then keeps the last one."""

    def __init__(self, *offsets_sec: float):
        self._stamps = [T0 + timedelta(seconds=s) for s in offsets_sec]

    def __call__(self) -> datetime:
        if len(self._stamps) > 1:
            return self._stamps.pop(0)
        return self._stamps[0]


@pytest.fixture(params=["memory", "sqlite"])
def make_store(request, tmp_path):
    opened = []

    def _make(now=None):
        kwargs = {"now": now} if now is not None else {}
        if request.param == "memory":
            store = InMemoryStore(**kwargs)
        else:
            store = SqliteStore(tmp_path / f"chug-{len(opened)}.db", **kwargs)
        opened.append(store)
        return store

    yield _make
    for store in opened:
        if isinstance(store, SqliteStore):
            store.close()


@pytest.mark.asyncio
async def test_create_and_list_attempts_in_insertion_order(make_store):
    store = make_store()
    a = await store.create_attempt(AttemptDraft(name="Alice", time=2.5, method="Glass"))
    b = await store.create_attempt(AttemptDraft(name="Bob", time=2.5, method="Can"))
    listed = await store.list_attempts()
    assert [x.id for x in listed] == [a.id, b.id]
    assert a.id != b.id
    assert listed[0].name == "Alice"
    assert listed[1].method == "Can"
    assert listed[0].beer_type == "unknown"
    assert listed[0].photo is None


@pytest.mark.asyncio
async def test_list_attempts_filters_by_party(make_store):
    store = make_store()
    party = await store.create_party(PartyDraft(name="Julefrokost"))
    inside = await store.create_attempt(AttemptDraft(name="Ana", time=3.2, party_id=party.id))
    await store.create_attempt(AttemptDraft(name="Bo", time=2.1))
    assert [x.id for x in await store.list_attempts(party.id)] == [inside.id]
    assert len(await store.list_attempts()) == 2
    assert await store.list_attempts("nope") == []


@pytest.mark.asyncio
async def test_created_at_never_decreases(make_store):
    store = make_store(now=_SteppingClock(10, 5, 20))
    first = await store.create_attempt(AttemptDraft(name="A", time=1.0))
    second = await store.create_attempt(AttemptDraft(name="B", time=1.0))
    third = await store.create_attempt(AttemptDraft(name="C", time=1.0))
    assert first.created_at == T0 + timedelta(seconds=10)
    assert second.created_at == first.created_at
    assert third.created_at == T0 + timedelta(seconds=20)
    assert [x.id for x in await store.list_attempts()] == [first.id, second.id, third.id]


@pytest.mark.asyncio
async def test_photo_round_trips_through_store(make_store):
    store = make_store()
    photo = StoredPhoto(image_path="abc.jpg")
    created = await store.create_attempt(AttemptDraft(name="A", time=1.0), photo)
    listed = (await store.list_attempts())[0]
    assert created.photo == photo
    assert listed.photo == photo


@pytest.mark.asyncio
async def test_delete_is_idempotent(make_store):
    store = make_store()
    a = await store.create_attempt(AttemptDraft(name="A", time=1.0))
    assert await store.delete_attempt(a.id) is True
    assert await store.delete_attempt(a.id) is False
    assert await store.delete_attempt("never-existed") is False
    assert await store.list_attempts() == []


@pytest.mark.asyncio
async def test_parties_newest_first_and_lookup(make_store):
    store = make_store(now=_SteppingClock(1, 2, 3))
    old = await store.create_party(PartyDraft(name="Old"))
    new = await store.create_party(PartyDraft(name="New"))
    assert [p.id for p in await store.list_parties()] == [new.id, old.id]
    assert (await store.get_party(old.id)).name == "Old"
    with pytest.raises(NotFoundError) as exc:
        await store.get_party("missing")
    assert exc.value.kind == "party"


@pytest.mark.asyncio
async def test_sqlite_store_persists_across_reopen(tmp_path):
    path = tmp_path / "chug.db"
    store = SqliteStore(path)
    party = await store.create_party(PartyDraft(name="Fest"))
    created = await store.create_attempt(AttemptDraft(name="Ana", time=2.75, party_id=party.id))
    store.close()

    reopened = SqliteStore(path)
    listed = await reopened.list_attempts(party.id)
    assert [a.id for a in listed] == [created.id]
    assert listed[0].time == 2.75
    assert listed[0].created_at == created.created_at
    # the reopened sequence continues after the stored maximum
    later = await reopened.create_party(PartyDraft(name="Next"))
    assert later.created_at >= created.created_at
    reopened.close()


def test_sqlite_store_unreachable_path_raises_at_startup(tmp_path):
    with pytest.raises(StorageUnavailable):
        SqliteStore(tmp_path / "missing-dir" / "chug.db")
