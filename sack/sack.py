"""
Sack — application-facing access to a group of entries.

Thin layer over any StorageDriver (raw or converting) that turns
absence into an error and picks insert vs. update for the caller.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Callable

from sack.core.errors import EntryNotFoundError
from sack.core.types import ByEntry, ById, Filter
from sack.store.base import StorageDriver
from sack.store.potential import CollectionPotential, EntryPotential


class StoreMode(str, Enum):
    """How store() writes an entry."""

    REPLACE = "replace"
    UPDATE = "update"


class Sack:
    """
    Usage:
        sack = Sack(MemoryDriver())

        entry = await sack.prepare()
        entry["name"] = "Alex"
        await sack.store(entry)

        fetched = await sack.fetch(entry["id"])   # raises if missing
        users = await sack.find({"name": "Alex"})
    """

    def __init__(
        self,
        driver: StorageDriver,
        factory: Callable[[str], Any] | None = None,
    ) -> None:
        self._driver = driver
        self._factory = factory or (lambda id: {"id": id})

    @property
    def driver(self) -> StorageDriver:
        return self._driver

    async def prepare(self) -> Any:
        """Build a new entry with a fresh id. Not stored."""
        return self._factory(uuid.uuid4().hex)

    async def fetch(self, id: str) -> Any:
        """
        Fetch an entry by id.

        Raises:
            EntryNotFoundError: If no entry has this id
        """
        entry = await self._driver.fetch(id)
        if entry is None:
            raise EntryNotFoundError(id)
        return entry

    async def store(self, entry: Any | list[Any], mode: StoreMode = StoreMode.REPLACE) -> None:
        """Store one entry or a list of entries."""
        mode = StoreMode(mode)
        if isinstance(entry, list):
            if mode is StoreMode.REPLACE:
                await self._driver.insert_collection(entry)
            else:
                await self._driver.update_collection(entry)
            return

        if mode is StoreMode.REPLACE:
            await self._driver.insert(entry)
        else:
            await self._driver.update(entry)

    async def find(self, filter: Filter | None = None) -> list[Any]:
        return await self._driver.find(filter)

    async def delete(self, id_or_entry: str | Any) -> None:
        target = ById(id_or_entry) if isinstance(id_or_entry, str) else ByEntry(id_or_entry)
        await self._driver.delete(target)

    def watch(self, id: str) -> EntryPotential:
        return self._driver.get_entry_potential(id)

    def watch_collection(self, filter: Filter | None = None) -> CollectionPotential:
        return self._driver.get_collection_potential(filter)

    async def close(self) -> None:
        await self._driver.dispose()
