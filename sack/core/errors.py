"""
Sack exception hierarchy.

Every error raised by the storage layer inherits from SackError.
Errors raised by integrator conversion code (wrap/process) are NOT
wrapped — they propagate exactly as raised.

Usage:
    try:
        entry = await sack.fetch("user-1")
    except EntryNotFoundError as e:
        # Handle the missing entry
    except SackError as e:
        # Handle any Sack error
"""


class SackError(Exception):
    """Base exception for all Sack errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ━━━ Configuration ━━━


class ConfigError(SackError):
    """Configuration is invalid, missing, or malformed."""

    pass


# ━━━ Storage ━━━


class StorageError(SackError):
    """Storage backend failure — database errors, corruption, etc."""

    pass


class EntryNotFoundError(StorageError):
    """Requested entry does not exist in the backing store."""

    def __init__(self, entry_id: str, details: dict | None = None):
        self.entry_id = entry_id
        super().__init__(f"Entry with id: {entry_id} not found", details)
