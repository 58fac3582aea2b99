"""
In-memory storage driver — the reference backend.

Dict-based storage. Data lost when process exits.

Records are copied on the way in and on the way out, so callers never
share an instance with the store. Network or database backends give
that for free; a dict does not.
"""

from __future__ import annotations

import logging

from sack.core.types import Filter, Record, Target, matches, target_id
from sack.store.base import StorageDriver

logger = logging.getLogger(__name__)


class MemoryDriver(StorageDriver):
    """
    In-memory record store.

    Usage:
        driver = MemoryDriver()
        await driver.insert({"id": "user-1", "name": "Alex"})
        assert (await driver.fetch("user-1"))["name"] == "Alex"

    Semantics:
        insert  — replaces the stored record
        update  — merges over the stored record (inserts when absent)
        delete  — unknown ids are a silent no-op, but still announced
                  with entry=None and the id
    """

    def __init__(self) -> None:
        super().__init__()
        self._entries: dict[str, Record] = {}

    async def fetch(self, id: str) -> Record | None:
        entry = self._entries.get(id)
        return dict(entry) if entry is not None else None

    async def insert(self, entry: Record) -> None:
        await self._raw_insert(entry)

    async def find(self, filter: Filter | None = None) -> list[Record]:
        return [dict(e) for e in self._entries.values() if matches(e, filter)]

    async def update(self, entry: Record) -> None:
        await self._raw_update(entry)

    async def delete(self, target: Target) -> None:
        await self._raw_delete(target_id(target))

    async def insert_collection(self, entries: list[Record]) -> None:
        for entry in entries:
            await self._raw_insert(entry)

    async def update_collection(self, entries: list[Record]) -> None:
        for entry in entries:
            await self._raw_update(entry)

    async def delete_collection(self, targets: list[Target]) -> None:
        for target in targets:
            await self._raw_delete(target_id(target))

    async def dispose(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    # ━━━ Internals ━━━

    async def _raw_insert(self, entry: Record) -> None:
        record = dict(entry)
        self._entries[record["id"]] = record
        logger.debug(f"Inserted {record['id']}")
        await self._announce_update(dict(record), record["id"])

    async def _raw_update(self, entry: Record) -> None:
        stored = self._entries.get(entry["id"])
        record = {**stored, **entry} if stored is not None else dict(entry)
        self._entries[record["id"]] = record
        logger.debug(f"Updated {record['id']}")
        await self._announce_update(dict(record), record["id"])

    async def _raw_delete(self, id: str) -> None:
        removed = self._entries.pop(id, None)
        if removed is None:
            logger.debug(f"Delete of unknown id {id}")
        await self._announce_delete(removed, id)
