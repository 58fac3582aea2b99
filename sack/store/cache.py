"""
Entry cache — id → domain object.

Used by ConvertingDriver so domain objects are not rebuilt on every
fetch, and so repeated fetches of one id return the same instance.

This is an identity cache, not a bounded LRU: entries leave only
through invalidate() or clear(). One cache belongs to one driver.
"""

from __future__ import annotations

from typing import Any

from sack.core.types import entry_id


class EntryCache:
    """
    Usage:
        cache = EntryCache()
        cache.store(user)
        assert cache.get(user.id) is user
        cache.invalidate(user.id)
    """

    def __init__(self) -> None:
        self._cache: dict[str, Any] = {}

    def get(self, id: str) -> Any | None:
        return self._cache.get(id)

    def store(self, entry: Any) -> None:
        """Store under entry.id, replacing any previous object for that id."""
        self._cache[entry_id(entry)] = entry

    def invalidate(self, id: str) -> None:
        self._cache.pop(id, None)

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, id: object) -> bool:
        return id in self._cache

    def __len__(self) -> int:
        return len(self._cache)
