"""
Sack change events — types and constants.

Every write to a driver produces a change event.
Events flow through the middleware chain, then to subscribers
(driver-level listeners and the potentials spawned from the driver).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import time
import uuid


class EventType:
    """
    Event type constants.

    Hierarchical naming: "category:action"
    Supports wildcard matching: "entry:*" matches "entry:update"
    """

    # Insert or update (an insert is an update of a previously absent id)
    UPDATE = "entry:update"
    # Removal; payload carries the pre-deletion state
    DELETE = "entry:delete"

    # Wildcards
    CHANGES = "entry:*"
    ALL = "*"


@dataclass(slots=True)
class Event:
    """
    A single change event.

    Payload lives in data:
        {"entry": <record or domain object>, "id": <entry id>}

    origin identifies the writer that caused the change. The bus stamps
    it from the active originating() context when the emitter leaves it
    empty, so a writer can recognise the echo of its own write.
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    timestamp: float = field(default_factory=time.time)
    parent_id: str | None = None
    origin: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def update(entry: Any, entry_id: str, source: str = "") -> Event:
        return Event(
            type=EventType.UPDATE,
            data={"entry": entry, "id": entry_id},
            source=source,
        )

    @staticmethod
    def delete(entry: Any, entry_id: str, source: str = "") -> Event:
        return Event(
            type=EventType.DELETE,
            data={"entry": entry, "id": entry_id},
            source=source,
        )

    @property
    def entry(self) -> Any:
        """The affected record or domain object (None for unknown deletes)."""
        return self.data.get("entry")

    @property
    def entry_id(self) -> str | None:
        return self.data.get("id")

    def child(self, event_type: str, data: dict[str, Any] | None = None) -> Event:
        """Create a child event linked to this one."""
        return Event(
            type=event_type,
            data=data or {},
            source=self.source,
            parent_id=self.id,
            origin=self.origin,
        )
