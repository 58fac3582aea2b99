"""
Potentials — handles to an entry or a collection that may not be loaded yet.

A potential does not own data. It owns:
    1. an accessor bound to the driver that created it
    2. a private event channel, fed by filtering the driver's channel

Each potential holds exactly one forwarding subscription on the driver
channel. It is released by close(), by leaving a `with` block, or when
the potential is garbage collected.
"""

from __future__ import annotations

import weakref
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable

from sack.core.bus import EventBus, EventHandler, Subscription
from sack.core.events import Event, EventType
from sack.core.types import ById, Filter, entry_id, matches

if TYPE_CHECKING:
    from sack.store.base import StorageDriver


class Potential(ABC):
    """Shared subscription plumbing for entry and collection potentials."""

    def __init__(self, driver: StorageDriver) -> None:
        self._driver = driver
        self._channel = EventBus()

        # The driver channel must not keep the potential alive
        ref = weakref.ref(self)

        async def forward(event: Event) -> None:
            potential = ref()
            if potential is not None and potential._accepts(event):
                await potential._channel.emit(event)

        self._subscription = driver.bus.subscribe(EventType.CHANGES, forward)
        self._finalizer = weakref.finalize(self, self._subscription.cancel)

    @abstractmethod
    def _accepts(self, event: Event) -> bool:
        """Whether an event on the driver channel belongs to this potential."""
        ...

    # ━━━ Subscription surface ━━━

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Listen for "entry:update" / "entry:delete" scoped to this potential."""
        self._channel.on(event_type, handler)

    def off(self, event_type: str, handler: EventHandler) -> None:
        self._channel.off(event_type, handler)

    def subscribe(self, event_type: str, handler: EventHandler) -> Subscription:
        return self._channel.subscribe(event_type, handler)

    # ━━━ Lifetime ━━━

    def close(self) -> None:
        """Detach from the driver channel. Idempotent."""
        self._finalizer()

    @property
    def closed(self) -> bool:
        return not self._subscription.active

    def __enter__(self) -> Potential:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class EntryPotential(Potential):
    """
    Potential for a single entry.

    Usage:
        potential = driver.get_entry_potential("user-1")
        potential.on("entry:update", on_user_changed)

        user = await potential.fetch()
        await potential.update(new_user)
        await potential.delete()

    matcher replaces the default id-equality check. It receives the
    event's entry, or the entry id when the event carries no entry.
    """

    def __init__(
        self,
        driver: StorageDriver,
        id: str,
        matcher: Callable[[Any], bool] | None = None,
    ) -> None:
        self.id = id
        self._matcher = matcher
        super().__init__(driver)

    def _accepts(self, event: Event) -> bool:
        if self._matcher is None:
            return event.entry_id == self.id
        candidate = event.entry if event.entry is not None else event.entry_id
        return self._matcher(candidate)

    async def fetch(self) -> Any | None:
        return await self._driver.fetch(self.id)

    async def update(self, entry: Any) -> None:
        if entry_id(entry) != self.id:
            raise ValueError(
                f"Entry id '{entry_id(entry)}' does not match potential id '{self.id}'"
            )
        await self._driver.update(entry)

    async def delete(self) -> None:
        await self._driver.delete(ById(self.id))


class CollectionPotential(Potential):
    """
    Potential for every entry matching a structural filter.

    Usage:
        admins = driver.get_collection_potential({"role": "admin"})
        admins.on("entry:update", on_admin_changed)
        current = await admins.all()
    """

    def __init__(self, driver: StorageDriver, filter: Filter | None = None) -> None:
        self.filter = dict(filter) if filter else {}
        super().__init__(driver)

    def _accepts(self, event: Event) -> bool:
        return matches(event.entry, self.filter)

    async def all(self) -> list[Any]:
        return await self._driver.find(self.filter or None)
