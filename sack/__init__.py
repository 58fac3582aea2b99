"""
Sack — storage that converts, caches, and lets you watch.

Public API:
    from sack import Sack, MemoryDriver, ConvertingDriver, EntryCache
"""

__version__ = "0.1.0"

# Core
from sack.core.bus import EventBus, Subscription, originating
from sack.core.config import SackConfig
from sack.core.errors import ConfigError, EntryNotFoundError, SackError, StorageError
from sack.core.events import Event, EventType
from sack.core.types import ByEntry, ById, entry_id, matches

# Store
from sack.store.base import StorageDriver
from sack.store.cache import EntryCache
from sack.store.converting import ConvertingDriver, FunctionConvertingDriver
from sack.store.factory import create_driver
from sack.store.memory import MemoryDriver
from sack.store.potential import CollectionPotential, EntryPotential
from sack.store.sqlite import SQLiteDriver

# Facade
from sack.sack import Sack, StoreMode

__all__ = [
    # Core
    "EventBus",
    "Subscription",
    "originating",
    "SackConfig",
    "SackError",
    "ConfigError",
    "StorageError",
    "EntryNotFoundError",
    "Event",
    "EventType",
    "ById",
    "ByEntry",
    "entry_id",
    "matches",
    # Store
    "StorageDriver",
    "EntryCache",
    "ConvertingDriver",
    "FunctionConvertingDriver",
    "create_driver",
    "MemoryDriver",
    "SQLiteDriver",
    "EntryPotential",
    "CollectionPotential",
    # Facade
    "Sack",
    "StoreMode",
]
