"""Shared test fixtures for Sack."""

import pytest
from sack.core.bus import EventBus
from sack.core.config import SackConfig
from sack.store.cache import EntryCache
from sack.store.memory import MemoryDriver


@pytest.fixture
def config():
    """Create a default config without loading from disk."""
    return SackConfig()


@pytest.fixture
def bus():
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def memory_driver():
    """Create an empty in-memory driver."""
    return MemoryDriver()


@pytest.fixture
def cache():
    """Create an empty entry cache."""
    return EntryCache()
