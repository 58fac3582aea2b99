"""Tests for the SQLite driver."""

from pathlib import Path

import pytest
from sack.core.errors import StorageError
from sack.core.events import Event, EventType
from sack.core.types import ById
from sack.store.sqlite import SQLiteDriver


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.mark.asyncio
async def test_insert_and_fetch(db_path: Path):
    driver = SQLiteDriver(db_path)
    await driver.initialize()
    await driver.insert({"id": "a", "name": "foo", "tags": ["x", "y"]})

    assert await driver.fetch("a") == {"id": "a", "name": "foo", "tags": ["x", "y"]}
    assert await driver.fetch("missing") is None
    await driver.dispose()


@pytest.mark.asyncio
async def test_lazy_initialize(db_path: Path):
    driver = SQLiteDriver(db_path)
    await driver.insert({"id": "a"})

    assert await driver.fetch("a") == {"id": "a"}
    await driver.dispose()


@pytest.mark.asyncio
async def test_insert_replaces_update_merges(db_path: Path):
    driver = SQLiteDriver(db_path)
    await driver.insert({"id": "a", "name": "foo", "extra": 1})
    await driver.insert({"id": "a", "name": "bar"})
    assert await driver.fetch("a") == {"id": "a", "name": "bar"}

    await driver.update({"id": "a", "extra": 2})
    assert await driver.fetch("a") == {"id": "a", "name": "bar", "extra": 2}

    await driver.update({"id": "b", "name": "new"})
    assert await driver.fetch("b") == {"id": "b", "name": "new"}
    await driver.dispose()


@pytest.mark.asyncio
async def test_find_and_delete(db_path: Path):
    driver = SQLiteDriver(db_path)
    await driver.insert_collection([
        {"id": "1", "name": "a"},
        {"id": "2", "name": "b"},
        {"id": "3", "name": "a"},
    ])

    assert {r["id"] for r in await driver.find({"name": "a"})} == {"1", "3"}

    await driver.delete(ById("1"))
    await driver.delete_collection([ById("2"), ById("missing")])

    assert await driver.find() == [{"id": "3", "name": "a"}]
    await driver.dispose()


@pytest.mark.asyncio
async def test_events_after_commit(db_path: Path):
    driver = SQLiteDriver(db_path)
    received = []

    async def handler(event: Event):
        # The write is visible to listeners
        stored = await driver.fetch(event.entry_id)
        received.append((event.type, event.entry, stored))

    driver.on(EventType.CHANGES, handler)

    await driver.insert({"id": "a", "name": "foo"})
    await driver.update({"id": "a", "name": "bar"})
    await driver.delete(ById("a"))

    assert received == [
        (EventType.UPDATE, {"id": "a", "name": "foo"}, {"id": "a", "name": "foo"}),
        (EventType.UPDATE, {"id": "a", "name": "bar"}, {"id": "a", "name": "bar"}),
        (EventType.DELETE, {"id": "a", "name": "bar"}, None),
    ]
    await driver.dispose()


@pytest.mark.asyncio
async def test_persistence(db_path: Path):
    """Data persists across connections."""
    first = SQLiteDriver(db_path)
    await first.insert({"id": "a", "name": "persisted"})
    await first.dispose()

    second = SQLiteDriver(db_path)
    assert await second.fetch("a") == {"id": "a", "name": "persisted"}
    await second.dispose()


@pytest.mark.asyncio
async def test_custom_table(db_path: Path):
    users = SQLiteDriver(db_path, table="users")
    posts = SQLiteDriver(db_path, table="posts")
    await users.insert({"id": "1", "kind": "user"})
    await posts.insert({"id": "1", "kind": "post"})

    assert (await users.fetch("1"))["kind"] == "user"
    assert (await posts.fetch("1"))["kind"] == "post"
    await users.dispose()
    await posts.dispose()


def test_invalid_table_name(db_path: Path):
    with pytest.raises(StorageError):
        SQLiteDriver(db_path, table="entries; DROP TABLE x")


@pytest.mark.asyncio
async def test_creates_directory(tmp_path: Path):
    driver = SQLiteDriver(tmp_path / "deep" / "nested" / "test.db")
    await driver.insert({"id": "a"})

    assert await driver.fetch("a") == {"id": "a"}
    await driver.dispose()


@pytest.mark.asyncio
async def test_failed_batch_writes_nothing(db_path: Path):
    driver = SQLiteDriver(db_path)
    received = []

    async def handler(event: Event):
        received.append(event)

    driver.on(EventType.CHANGES, handler)

    with pytest.raises(StorageError):
        await driver.insert_collection([{"id": "ok"}, {"id": "bad", "value": object()}])

    assert await driver.fetch("ok") is None
    assert received == []
    await driver.dispose()


@pytest.mark.asyncio
async def test_delete_missing_still_announced(db_path: Path):
    driver = SQLiteDriver(db_path)
    received = []

    async def handler(event: Event):
        received.append(event)

    driver.on(EventType.DELETE, handler)

    await driver.delete(ById("ghost"))

    assert len(received) == 1
    assert received[0].entry is None
    assert received[0].entry_id == "ghost"
    await driver.dispose()
