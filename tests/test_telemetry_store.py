import datetime as dt

import pytest
from sqlalchemy.exc import SQLAlchemyError

from safetyband.core.exceptions import StoreWriteFailure
from safetyband.services.telemetry_store import TelemetryStore

NOW = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


async def _fill(store, user_id, sample_factory, count):
    for i in range(count):
        await store.put(sample_factory(user_id, NOW - dt.timedelta(seconds=count - i), heart_rate=60 + i))


@pytest.mark.asyncio
async def test_put_assigns_identity(session, user, sample_factory):
    store = TelemetryStore(session)
    sample = await store.put(sample_factory(user.id, NOW))
    assert sample.id
    latest = await store.latest(user.id)
    assert latest.id == sample.id


@pytest.mark.asyncio
async def test_range_pagination(session, user, sample_factory):
    store = TelemetryStore(session)
    await _fill(store, user.id, sample_factory, 25)

    last_page = await store.range(user.id, limit=10, offset=20)
    assert len(last_page.items) == 5
    assert last_page.total == 25
    assert last_page.has_more is False

    first_page = await store.range(user.id, limit=10, offset=0)
    assert len(first_page.items) == 10
    assert first_page.has_more is True


@pytest.mark.asyncio
async def test_range_is_newest_first(session, user, sample_factory):
    store = TelemetryStore(session)
    await _fill(store, user.id, sample_factory, 5)
    page = await store.range(user.id, limit=5)
    assert [s.heart_rate for s in page.items] == [64, 63, 62, 61, 60]


@pytest.mark.asyncio
async def test_range_time_window(session, user, sample_factory):
    store = TelemetryStore(session)
    await _fill(store, user.id, sample_factory, 10)
    page = await store.range(user.id, start=NOW - dt.timedelta(seconds=3), end=NOW)
    assert page.total == 3


@pytest.mark.asyncio
async def test_unknown_owner_is_empty(session, user, sample_factory):
    store = TelemetryStore(session)
    await _fill(store, user.id, sample_factory, 3)
    page = await store.range("no-such-user")
    assert page.items == []
    assert page.total == 0
    assert page.has_more is False
    assert await store.latest("no-such-user") is None


@pytest.mark.asyncio
async def test_latest_by_device(session, user, sample_factory):
    store = TelemetryStore(session)
    await store.put(sample_factory(user.id, NOW - dt.timedelta(minutes=1), device_id="band-a"))
    await store.put(sample_factory(user.id, NOW, device_id="band-b"))
    assert (await store.latest(user.id)).device_id == "band-b"
    assert (await store.latest(user.id, "band-a")).device_id == "band-a"


@pytest.mark.asyncio
async def test_delete_older_than(session, user, sample_factory):
    store = TelemetryStore(session)
    await _fill(store, user.id, sample_factory, 10)
    deleted = await store.delete_older_than(NOW - dt.timedelta(seconds=4))
    assert deleted == 6
    assert (await store.range(user.id)).total == 4


@pytest.mark.asyncio
async def test_put_failure_raises_store_write_failure(session, user, sample_factory, monkeypatch):
    store = TelemetryStore(session)

    async def broken_commit():
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(session, "commit", broken_commit)
    with pytest.raises(StoreWriteFailure):
        await store.put(sample_factory(user.id, NOW))
