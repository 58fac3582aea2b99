"""Tests for the entry cache."""

from dataclasses import dataclass

from sack.store.cache import EntryCache


@dataclass
class Item:
    id: str
    name: str = ""


def test_store_and_get_same_instance(cache: EntryCache):
    item = Item(id="a")
    cache.store(item)

    assert cache.get("a") is item
    assert "a" in cache
    assert len(cache) == 1


def test_get_missing(cache: EntryCache):
    assert cache.get("nope") is None


def test_store_overwrites(cache: EntryCache):
    old = Item(id="a", name="old")
    new = Item(id="a", name="new")
    cache.store(old)
    cache.store(new)

    assert cache.get("a") is new
    assert len(cache) == 1


def test_invalidate(cache: EntryCache):
    cache.store(Item(id="a"))
    cache.invalidate("a")
    cache.invalidate("a")  # no-op when absent

    assert cache.get("a") is None
    assert "a" not in cache


def test_clear(cache: EntryCache):
    cache.store(Item(id="a"))
    cache.store(Item(id="b"))
    cache.clear()

    assert len(cache) == 0


def test_records_are_keyed_by_id(cache: EntryCache):
    record = {"id": "r1", "name": "x"}
    cache.store(record)

    assert cache.get("r1") is record
