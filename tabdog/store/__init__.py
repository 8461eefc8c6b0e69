"""
Persistent storage for saved tabs and session names.
"""

from .base import (
    KeyValueStore,
    StorageError,
    SAVED_TABS_KEY,
    SESSION_METADATA_KEY,
)
from .memory import MemoryStore
from .sqlite import SqliteStore, DEFAULT_DB_PATH

__all__ = [
    "KeyValueStore",
    "StorageError",
    "SAVED_TABS_KEY",
    "SESSION_METADATA_KEY",
    "MemoryStore",
    "SqliteStore",
    "DEFAULT_DB_PATH",
]
