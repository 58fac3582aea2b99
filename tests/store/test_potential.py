"""Tests for entry and collection potentials."""

import gc

import pytest
from sack.core.events import Event, EventType
from sack.core.types import ById
from sack.store.memory import MemoryDriver
from sack.store.potential import Potential


@pytest.mark.asyncio
async def test_fetch_without_subscribers(memory_driver: MemoryDriver):
    await memory_driver.insert({"id": "a", "name": "foo"})
    potential = memory_driver.get_entry_potential("a")

    assert await potential.fetch() == {"id": "a", "name": "foo"}
    assert await memory_driver.get_entry_potential("missing").fetch() is None


@pytest.mark.asyncio
async def test_entry_potential_update_and_delete(memory_driver: MemoryDriver):
    potential = memory_driver.get_entry_potential("a")

    await potential.update({"id": "a", "name": "foo"})
    assert await memory_driver.fetch("a") == {"id": "a", "name": "foo"}

    await potential.delete()
    assert await memory_driver.fetch("a") is None


@pytest.mark.asyncio
async def test_entry_potential_rejects_other_ids(memory_driver: MemoryDriver):
    potential = memory_driver.get_entry_potential("a")

    with pytest.raises(ValueError):
        await potential.update({"id": "b"})
    assert await memory_driver.fetch("b") is None


@pytest.mark.asyncio
async def test_custom_matcher(memory_driver: MemoryDriver):
    """A matcher can widen the potential beyond one id."""
    potential = memory_driver.get_entry_potential(
        "user-1", matcher=lambda entry: entry["id"].startswith("user-")
    )
    received = []

    async def handler(event: Event):
        received.append(event.entry_id)

    potential.on(EventType.UPDATE, handler)

    await memory_driver.insert({"id": "user-1"})
    await memory_driver.insert({"id": "user-2"})
    await memory_driver.insert({"id": "post-1"})

    assert received == ["user-1", "user-2"]


@pytest.mark.asyncio
async def test_collection_all_uses_filter(memory_driver: MemoryDriver):
    await memory_driver.insert_collection([
        {"id": "1", "role": "admin"},
        {"id": "2", "role": "member"},
    ])

    admins = memory_driver.get_collection_potential({"role": "admin"})
    everyone = memory_driver.get_collection_potential()

    assert [r["id"] for r in await admins.all()] == ["1"]
    assert len(await everyone.all()) == 2


@pytest.mark.asyncio
async def test_collection_delete_events_filtered(memory_driver: MemoryDriver):
    await memory_driver.insert_collection([
        {"id": "1", "role": "admin"},
        {"id": "2", "role": "member"},
    ])
    admins = memory_driver.get_collection_potential({"role": "admin"})
    received = []

    async def handler(event: Event):
        received.append(event.entry_id)

    admins.on(EventType.DELETE, handler)

    await memory_driver.delete_collection([])
    await memory_driver.delete_collection([ById("1"), ById("2")])

    assert received == ["1"]


# ━━━ Lifetime ━━━


def test_one_forwarding_subscription_each(memory_driver: MemoryDriver):
    first = memory_driver.get_entry_potential("a")
    second = memory_driver.get_collection_potential()

    async def handler(event: Event):
        pass

    # Local listeners do not add subscriptions on the driver
    first.on(EventType.UPDATE, handler)
    first.on(EventType.DELETE, handler)

    assert memory_driver.bus.subscriber_count == 2
    first.close()
    second.close()


def test_close_releases_subscription(memory_driver: MemoryDriver):
    potential = memory_driver.get_entry_potential("a")
    assert memory_driver.bus.subscriber_count == 1

    potential.close()
    potential.close()  # idempotent

    assert potential.closed is True
    assert memory_driver.bus.subscriber_count == 0


def test_context_manager_releases_subscription(memory_driver: MemoryDriver):
    with memory_driver.get_collection_potential({"name": "a"}) as potential:
        assert memory_driver.bus.subscriber_count == 1
        assert potential.closed is False

    assert memory_driver.bus.subscriber_count == 0


def test_garbage_collected_potential_releases_subscription(memory_driver: MemoryDriver):
    potential = memory_driver.get_entry_potential("a")
    assert memory_driver.bus.subscriber_count == 1

    del potential
    gc.collect()

    assert memory_driver.bus.subscriber_count == 0


@pytest.mark.asyncio
async def test_closed_potential_stops_forwarding(memory_driver: MemoryDriver):
    potential = memory_driver.get_entry_potential("a")
    received = []

    async def handler(event: Event):
        received.append(event)

    potential.on(EventType.UPDATE, handler)
    await memory_driver.insert({"id": "a"})
    potential.close()
    await memory_driver.insert({"id": "a"})

    assert len(received) == 1
    # Reads still work after close
    assert await potential.fetch() == {"id": "a"}


def test_base_potential_is_abstract(memory_driver: MemoryDriver):
    with pytest.raises(TypeError):
        Potential(memory_driver)

    assert memory_driver.bus.subscriber_count == 0
