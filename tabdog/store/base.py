"""
Persistent Store - async key/value storage seam.

Everything TabDog keeps lives under two top-level keys:

    savedTabs        ordered list of tab record dicts (newest first)
    sessionMetadata  mapping of str(sessionId) -> custom session name

A store guarantees atomicity of a single get() or a single set() call,
nothing more. Callers do whole-record read-modify-write and accept that
two overlapping writers can lose an update.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable

from .. import TabDogError

logger = logging.getLogger(__name__)

SAVED_TABS_KEY = "savedTabs"
SESSION_METADATA_KEY = "sessionMetadata"


class StorageError(TabDogError):
    """The store rejected a read or write."""
    pass


class KeyValueStore(ABC):
    """
    Abstract async key/value store.

    Subclass this to plug in a backend:
    - MemoryStore: process-local dict, used by tests and previews
    - SqliteStore: durable storage under ~/.tabdog
    """

    @abstractmethod
    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """
        Read several keys in one call.

        Missing keys are simply absent from the returned mapping.
        """
        ...

    @abstractmethod
    async def set(self, items: dict[str, Any]) -> None:
        """Write several keys in one call. Raises StorageError on failure."""
        ...

    async def load(self) -> tuple[list[dict], dict[str, str]]:
        """Convenience read of both records with empty defaults."""
        result = await self.get({SAVED_TABS_KEY, SESSION_METADATA_KEY})
        tabs = result.get(SAVED_TABS_KEY) or []
        metadata = result.get(SESSION_METADATA_KEY) or {}
        return list(tabs), dict(metadata)
