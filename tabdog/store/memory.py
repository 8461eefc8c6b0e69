"""
In-memory store.
"""

from __future__ import annotations
import copy
import json
import logging
from typing import Any, Iterable

from .base import KeyValueStore, StorageError

logger = logging.getLogger(__name__)


class MemoryStore(KeyValueStore):
    """
    Dict-backed store with the same semantics as the durable one.

    Values are deep-copied on the way in and out, so callers never share
    mutable state with the store and a get-then-set pair races exactly the
    way it does against a real backend.
    """

    def __init__(self, initial: dict[str, Any] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.write_count = 0

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    async def set(self, items: dict[str, Any]) -> None:
        try:
            # Reject anything the durable backend couldn't encode either
            json.dumps(items)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value not storable: {e}") from e

        self._data.update(copy.deepcopy(items))
        self.write_count += 1
        logger.debug(f"MemoryStore set: {sorted(items)}")

    def snapshot(self) -> dict[str, Any]:
        """Raw copy of everything stored."""
        return copy.deepcopy(self._data)
