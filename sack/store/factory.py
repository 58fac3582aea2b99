"""
Driver factory — builds the backend named in the configuration.
"""

from __future__ import annotations

import logging

from sack.core.config import SackConfig
from sack.core.errors import ConfigError
from sack.store.base import StorageDriver
from sack.store.memory import MemoryDriver
from sack.store.sqlite import SQLiteDriver

logger = logging.getLogger(__name__)

BACKENDS = ("sqlite", "memory")


def create_driver(config: SackConfig | None = None) -> StorageDriver:
    """
    Create the storage driver selected by config.storage.backend.

    Raises:
        ConfigError: If the backend name is unknown
    """
    config = config or SackConfig.load()
    backend = config.storage.backend

    if backend == "memory":
        driver: StorageDriver = MemoryDriver()
    elif backend == "sqlite":
        driver = SQLiteDriver(config.get_db_path(), table=config.storage.table)
    else:
        raise ConfigError(
            f"Unknown storage backend '{backend}'. Available: {', '.join(BACKENDS)}"
        )

    logger.debug(f"Created {backend} driver")
    return driver
