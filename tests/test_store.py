import asyncio

import pytest

from tabdog.store import (
    SAVED_TABS_KEY,
    SESSION_METADATA_KEY,
    MemoryStore,
    SqliteStore,
    StorageError,
)


def test_memory_store_missing_keys_are_absent():
    store = MemoryStore({SAVED_TABS_KEY: []})
    assert asyncio.run(store.get([SAVED_TABS_KEY, "nope"])) == {SAVED_TABS_KEY: []}


def test_memory_store_load_defaults():
    assert asyncio.run(MemoryStore().load()) == ([], {})


def test_memory_store_copies_values():
    store = MemoryStore()
    tabs = [{"url": "http://a.com"}]
    asyncio.run(store.set({SAVED_TABS_KEY: tabs}))
    tabs.append({"url": "http://b.com"})

    got = asyncio.run(store.get([SAVED_TABS_KEY]))[SAVED_TABS_KEY]
    got.append({"url": "http://c.com"})

    assert store.snapshot() == {SAVED_TABS_KEY: [{"url": "http://a.com"}]}


def test_memory_store_rejects_unserializable_values():
    store = MemoryStore()
    with pytest.raises(StorageError):
        asyncio.run(store.set({SAVED_TABS_KEY: [object()]}))
    assert store.write_count == 0


def test_overlapping_writers_last_write_wins():
    store = MemoryStore({SAVED_TABS_KEY: []})

    async def race():
        first = (await store.get([SAVED_TABS_KEY]))[SAVED_TABS_KEY]
        second = (await store.get([SAVED_TABS_KEY]))[SAVED_TABS_KEY]
        await store.set({SAVED_TABS_KEY: first + [{"url": "http://a.com"}]})
        await store.set({SAVED_TABS_KEY: second + [{"url": "http://b.com"}]})

    asyncio.run(race())

    assert store.snapshot()[SAVED_TABS_KEY] == [{"url": "http://b.com"}]


def test_sqlite_store_round_trip(tmp_path):
    store = SqliteStore(tmp_path / "tabs.db")
    items = {
        SAVED_TABS_KEY: [{"url": "http://a.com", "sessionId": 1}],
        SESSION_METADATA_KEY: {"1": "Work"},
    }

    asyncio.run(store.set(items))

    assert asyncio.run(store.get([SAVED_TABS_KEY, SESSION_METADATA_KEY, "nope"])) == items


def test_sqlite_store_persists_and_overwrites(tmp_path):
    path = tmp_path / "nested" / "tabs.db"
    asyncio.run(SqliteStore(path).set({SESSION_METADATA_KEY: {"1": "Old"}}))
    asyncio.run(SqliteStore(path).set({SESSION_METADATA_KEY: {"1": "New"}}))

    tabs, metadata = asyncio.run(SqliteStore(path).load())

    assert tabs == []
    assert metadata == {"1": "New"}


def test_sqlite_store_rejects_unserializable_values(tmp_path):
    store = SqliteStore(tmp_path / "tabs.db")
    with pytest.raises(StorageError):
        asyncio.run(store.set({SAVED_TABS_KEY: {1, 2}}))
