"""
Storage Driver interface.

CRUD over entries (single and batch), a change-notification channel,
and factories for per-entry and per-collection potentials.

Every driver emits on its own bus:
    entry:update  {"entry": <post-write state>, "id": ...}
    entry:delete  {"entry": <pre-deletion state>, "id": ...}

Events are emitted inside the awaited write call, so a caller that
awaits a write has already seen every notification it caused.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

from sack.core.bus import EventBus, EventHandler, MiddlewareFunc, Subscription
from sack.core.events import Event
from sack.core.types import Filter, Target
from sack.store.potential import CollectionPotential, EntryPotential


class StorageDriver(ABC):
    """
    Abstract base class for storage drivers.

    Implementations:
        MemoryDriver — dict-based, reference backend
        SQLiteDriver — file-based, via aiosqlite
        ConvertingDriver — wraps another driver, converts raw <-> domain
    """

    def __init__(self) -> None:
        self._bus = EventBus()

    # ━━━ Single-entry operations ━━━

    @abstractmethod
    async def fetch(self, id: str) -> Any | None:
        """Fetch an entry by id. Returns None if not found."""
        ...

    @abstractmethod
    async def insert(self, entry: Any) -> None:
        """Insert an entry. Replaces any stored entry with the same id."""
        ...

    @abstractmethod
    async def find(self, filter: Filter | None = None) -> list[Any]:
        """Find all entries matching a structural filter."""
        ...

    @abstractmethod
    async def update(self, entry: Any) -> None:
        """Update an entry. Inserts it when the id is not stored yet."""
        ...

    @abstractmethod
    async def delete(self, target: Target) -> None:
        """Delete the entry a target points at."""
        ...

    # ━━━ Batch operations ━━━

    @abstractmethod
    async def insert_collection(self, entries: list[Any]) -> None:
        ...

    @abstractmethod
    async def update_collection(self, entries: list[Any]) -> None:
        ...

    @abstractmethod
    async def delete_collection(self, targets: list[Target]) -> None:
        ...

    @abstractmethod
    async def dispose(self) -> None:
        """Dispose of any data or connection."""
        ...

    # ━━━ Change channel ━━━

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe to change events ("entry:update", "entry:delete", "entry:*")."""
        self._bus.on(event_type, handler)

    def off(self, event_type: str, handler: EventHandler) -> None:
        self._bus.off(event_type, handler)

    def subscribe(self, event_type: str, handler: EventHandler) -> Subscription:
        return self._bus.subscribe(event_type, handler)

    def use(self, middleware: MiddlewareFunc) -> None:
        """Add middleware to this driver's change channel."""
        self._bus.use(middleware)

    @property
    def bus(self) -> EventBus:
        return self._bus

    # ━━━ Potentials ━━━

    def get_entry_potential(
        self,
        id: str,
        matcher: Callable[[Any], bool] | None = None,
    ) -> EntryPotential:
        """Get a potential for a single entry."""
        return EntryPotential(self, id, matcher)

    def get_collection_potential(self, filter: Filter | None = None) -> CollectionPotential:
        """Get a potential for every entry matching filter."""
        return CollectionPotential(self, filter)

    # ━━━ Helpers for implementations ━━━

    async def _announce_update(self, entry: Any, entry_id: str) -> None:
        await self._bus.emit(Event.update(entry, entry_id, source=self._source))

    async def _announce_delete(self, entry: Any, entry_id: str) -> None:
        await self._bus.emit(Event.delete(entry, entry_id, source=self._source))

    @property
    def _source(self) -> str:
        return type(self).__name__
