"""
SQLite-backed key/value store.
"""

from __future__ import annotations
import asyncio
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterable

from .base import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

# Default database location
DEFAULT_DB_PATH = Path.home() / ".tabdog" / "tabdog.db"


class SqliteStore(KeyValueStore):
    """
    Durable store keeping each key as one JSON document row.

    Every get() and set() runs in its own connection and transaction on a
    worker thread, so a single call is atomic and the event loop is never
    blocked on disk I/O.
    """

    def __init__(self, db_path: Path = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._ensure_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _ensure_db(self) -> None:
        """Create database and table if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = self._connect()
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
            """)
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open store at {self.db_path}: {e}") from e
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Blocking primitives (run on a worker thread)
    # -------------------------------------------------------------------------

    def _get_sync(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}

        placeholders = ",".join("?" for _ in keys)
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"SELECT key, value FROM kv WHERE key IN ({placeholders})",
                keys
            )
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Read failed: {e}") from e
        finally:
            conn.close()

        result = {}
        for key, value in rows:
            try:
                result[key] = json.loads(value)
            except json.JSONDecodeError as e:
                raise StorageError(f"Corrupt value for '{key}': {e}") from e
        return result

    def _set_sync(self, items: dict[str, Any]) -> None:
        try:
            encoded = [(k, json.dumps(v)) for k, v in items.items()]
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value not storable: {e}") from e

        conn = self._connect()
        try:
            with conn:
                conn.executemany(
                    """INSERT INTO kv (key, value, updated_at)
                       VALUES (?, ?, CURRENT_TIMESTAMP)
                       ON CONFLICT(key) DO UPDATE
                       SET value = excluded.value, updated_at = CURRENT_TIMESTAMP""",
                    encoded
                )
        except sqlite3.Error as e:
            raise StorageError(f"Write failed: {e}") from e
        finally:
            conn.close()

        logger.debug(f"SqliteStore set: {sorted(items)}")

    # -------------------------------------------------------------------------
    # KeyValueStore
    # -------------------------------------------------------------------------

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return await asyncio.to_thread(self._get_sync, list(keys))

    async def set(self, items: dict[str, Any]) -> None:
        await asyncio.to_thread(self._set_sync, dict(items))
