"""
Sack shared types — entry shape helpers and delete targets.

Two kinds of entries flow through the system:
    raw records    — plain dicts, what backends store ({"id": ..., ...})
    domain objects — any object with an `id` attribute, what applications use

Both satisfy the Entry contract: a unique string id.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

# Raw record as stored by the bundled backends
Record = dict[str, Any]

# Structural filter: every key must exist on the entry with an equal value
Filter = dict[str, Any]


def entry_id(entry: Any) -> str:
    """Read the id of a raw record or a domain object."""
    if isinstance(entry, Mapping):
        return entry["id"]
    return entry.id


def matches(entry: Any, filter: Filter | None) -> bool:
    """
    Check an entry against a structural filter.

    An unspecified or empty filter matches every entry (including None).
    """
    if not filter:
        return True
    if entry is None:
        return False

    for key, value in filter.items():
        if isinstance(entry, Mapping):
            if key not in entry or entry[key] != value:
                return False
        else:
            if not hasattr(entry, key) or getattr(entry, key) != value:
                return False
    return True


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Delete targets
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True, slots=True)
class ById:
    """Address an entry by its id."""

    id: str


@dataclass(frozen=True, slots=True)
class ByEntry:
    """Address an entry by a full record or domain object."""

    entry: Any

    @property
    def id(self) -> str:
        return entry_id(self.entry)


Target = ById | ByEntry


def target_id(target: Target) -> str:
    """Resolve the id a delete target points at."""
    if isinstance(target, (ById, ByEntry)):
        return target.id
    raise TypeError(
        f"Delete target must be ById or ByEntry, got {type(target).__name__}"
    )
