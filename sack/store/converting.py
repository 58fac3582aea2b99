"""
Converting Driver — domain objects over a raw-record driver.

Wraps a StorageDriver that speaks plain records and exposes the same
contract over domain objects:

    application ──entry──▶ process() ──record──▶ backend
    application ◀─entry─── wrap()    ◀─record─── backend

Three jobs besides conversion:
1. Identity: every read goes through _obtain(), which consults the
   EntryCache before calling wrap(). Repeated fetches of one id return
   the same object until the id is invalidated.
2. Echo suppression: each write is wrapped in originating(token) so the
   backend's own notification for it carries this driver's origin. The
   standing handlers skip those; the driver announces the write itself
   with the domain object it was given.
3. Re-publishing: changes made to the backend by anyone else are
   converted and re-emitted on this driver's channel.
"""

from __future__ import annotations

import inspect
import logging
import uuid
from abc import abstractmethod
from typing import Any, Awaitable, Callable

from sack.core.bus import originating
from sack.core.events import Event, EventType
from sack.core.types import ByEntry, Filter, Target, entry_id, target_id
from sack.store.base import StorageDriver
from sack.store.cache import EntryCache

logger = logging.getLogger(__name__)


class ConvertingDriver(StorageDriver):
    """
    Base class for drivers that convert between domain objects and records.

    Usage:
        class UserDriver(ConvertingDriver):
            async def wrap(self, data: dict) -> User:
                return User(**data)

            async def process(self, entry: User) -> dict:
                return entry.to_dict()

        users = UserDriver(MemoryDriver(), cache=EntryCache())
        await users.insert(User(id="u1", name="Alex"))
        assert await users.fetch("u1") is await users.fetch("u1")

    Without a cache every read builds a fresh domain object.
    Exceptions from wrap()/process() propagate unchanged; a failing
    process() leaves both the cache and the backend untouched.
    """

    def __init__(self, storage: StorageDriver, cache: EntryCache | None = None) -> None:
        super().__init__()
        self._storage = storage
        self._cache = cache
        self._origin = f"{type(self).__name__}:{uuid.uuid4().hex[:12]}"

        # Standing handlers, for the driver's lifetime
        self._subscriptions = [
            storage.subscribe(EventType.UPDATE, self._on_backend_update),
            storage.subscribe(EventType.DELETE, self._on_backend_delete),
        ]

    @abstractmethod
    async def wrap(self, data: Any) -> Any:
        """Build a domain object from a backend record."""
        ...

    @abstractmethod
    async def process(self, entry: Any) -> Any:
        """Turn a domain object into a backend record."""
        ...

    @property
    def storage(self) -> StorageDriver:
        return self._storage

    # ━━━ Reads ━━━

    async def fetch(self, id: str) -> Any | None:
        cached = self._recall(id)
        if cached is not None:
            return cached

        data = await self._storage.fetch(id)
        if data is None:
            return None
        return await self._obtain(data)

    async def find(self, filter: Filter | None = None) -> list[Any]:
        records = await self._storage.find(filter)
        return [await self._obtain(data) for data in records]

    # ━━━ Writes ━━━

    async def insert(self, entry: Any) -> None:
        await self._write([entry], lambda records: self._storage.insert(records[0]))

    async def update(self, entry: Any) -> None:
        await self._write([entry], lambda records: self._storage.update(records[0]))

    async def insert_collection(self, entries: list[Any]) -> None:
        await self._write(entries, self._storage.insert_collection)

    async def update_collection(self, entries: list[Any]) -> None:
        await self._write(entries, self._storage.update_collection)

    async def delete(self, target: Target) -> None:
        id = target_id(target)
        entry, data_target = await self._resolve(target)

        with originating(self._origin):
            await self._storage.delete(data_target)

        self._forget(id)
        logger.debug(f"Deleted {id}")
        await self._announce_delete(entry, id)

    async def delete_collection(self, targets: list[Target]) -> None:
        if not targets:
            return

        ids = [target_id(t) for t in targets]
        resolved = [await self._resolve(t) for t in targets]

        with originating(self._origin):
            await self._storage.delete_collection([data_target for _, data_target in resolved])

        for id in ids:
            self._forget(id)
        logger.debug(f"Deleted {len(ids)} entries")
        for id, (entry, _) in zip(ids, resolved):
            await self._announce_delete(entry, id)

    async def dispose(self) -> None:
        if self._cache is not None:
            self._cache.clear()
        for subscription in self._subscriptions:
            subscription.cancel()
        await self._storage.dispose()

    # ━━━ Standing handlers ━━━

    async def _on_backend_update(self, event: Event) -> None:
        if event.origin == self._origin:
            return

        id = event.entry_id
        # Drop the stale object first, or _obtain() would hand it back
        self._forget(id)
        entry = await self._obtain(event.entry)
        await self._bus.emit(event.child(EventType.UPDATE, {"entry": entry, "id": id}))

    async def _on_backend_delete(self, event: Event) -> None:
        if event.origin == self._origin:
            return

        id = event.entry_id
        # Build the payload while the cached object is still available
        entry = await self._obtain(event.entry) if event.entry is not None else None
        self._forget(id)
        await self._bus.emit(event.child(EventType.DELETE, {"entry": entry, "id": id}))

    # ━━━ Internals ━━━

    async def _write(
        self,
        entries: list[Any],
        write: Callable[[list[Any]], Awaitable[None]],
    ) -> None:
        """Convert, cache, write with echo suppression, then announce per entry."""
        if not entries:
            return

        # Convert everything before touching cache or backend
        records = [await self.process(entry) for entry in entries]

        for entry in entries:
            self._remember(entry)

        try:
            with originating(self._origin):
                await write(records)
        except Exception:
            for entry in entries:
                self._forget(entry_id(entry))
            raise

        for entry in entries:
            logger.debug(f"Wrote {entry_id(entry)}")
            await self._announce_update(entry, entry_id(entry))

    async def _resolve(self, target: Target) -> tuple[Any | None, Target]:
        """Domain representation for the delete notification, and the backend target."""
        if isinstance(target, ByEntry):
            return target.entry, ByEntry(await self.process(target.entry))

        cached = self._recall(target.id)
        if cached is not None:
            return cached, target

        data = await self._storage.fetch(target.id)
        # Bypasses the cache: the id is invalidated right after the delete
        return (await self.wrap(data) if data is not None else None), target

    async def _obtain(self, data: Any) -> Any:
        """Cache-aware wrap. Every read path goes through here."""
        cached = self._recall(entry_id(data))
        if cached is not None:
            return cached

        entry = await self.wrap(data)
        self._remember(entry)
        return entry

    def _recall(self, id: str) -> Any | None:
        return self._cache.get(id) if self._cache is not None else None

    def _remember(self, entry: Any) -> None:
        if self._cache is not None:
            self._cache.store(entry)

    def _forget(self, id: str) -> None:
        if self._cache is not None:
            self._cache.invalidate(id)


class FunctionConvertingDriver(ConvertingDriver):
    """
    A converting driver built from a pair of plain functions.

    Usage:
        users = FunctionConvertingDriver(
            MemoryDriver(),
            wrap=lambda data: User(**data),
            process=lambda user: user.to_dict(),
            cache=EntryCache(),
        )

    Both functions may be sync or async.
    """

    def __init__(
        self,
        storage: StorageDriver,
        wrap: Callable[[Any], Any],
        process: Callable[[Any], Any],
        cache: EntryCache | None = None,
    ) -> None:
        self._wrap_fn = wrap
        self._process_fn = process
        super().__init__(storage, cache)

    async def wrap(self, data: Any) -> Any:
        result = self._wrap_fn(data)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def process(self, entry: Any) -> Any:
        result = self._process_fn(entry)
        if inspect.isawaitable(result):
            result = await result
        return result
