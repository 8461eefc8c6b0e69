"""
Session manager - the operations behind every save/import/rename/delete.

Each operation is one whole-record read-modify-write against the store:
a single get(), in-memory changes, a single set(). The store offers no
isolation across calls, so two overlapping writers can lose an update;
nothing slow (prompts, tab closing) happens between the read and the write.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..config import AppSettings
from ..store.base import KeyValueStore, SAVED_TABS_KEY, SESSION_METADATA_KEY
from ..tabs.source import TabSource
from .capture import TabPredicate, capture
from .io import (
    ImportResult,
    export_json,
    export_text,
    import_json,
    import_text,
    read_backup,
)
from .models import (
    Session,
    SessionError,
    SessionKey,
    TabRecord,
    find_session,
    group_sessions,
    records_from_store,
    records_to_store,
)

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]


@dataclass
class Outcome:
    """
    Result of a user-facing operation.

    noop outcomes (nothing to save, nothing new to import, cancelled) are
    informational notices, not errors.
    """
    message: str
    count: int = 0
    noop: bool = False
    content: Optional[str] = None


class SessionManager:
    """
    Saved tab operations over an injected store.
    """

    def __init__(self, store: KeyValueStore, settings: AppSettings = None):
        self.store = store
        self.settings = settings or AppSettings()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def load(self) -> tuple[list[TabRecord], dict[str, str]]:
        """Saved tabs and session names."""
        raw_tabs, metadata = await self.store.load()
        return records_from_store(raw_tabs), metadata

    async def list_sessions(self) -> list[Session]:
        tabs, _ = await self.load()
        return group_sessions(tabs)

    async def _write(self, tabs: list[TabRecord] = None, metadata: dict[str, str] = None) -> None:
        items = {}
        if tabs is not None:
            items[SAVED_TABS_KEY] = records_to_store(tabs)
        if metadata is not None:
            items[SESSION_METADATA_KEY] = metadata
        await self.store.set(items)

    # -------------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------------

    async def save_tabs(
        self,
        source: TabSource,
        predicate: TabPredicate,
        timestamp_ms: int = None,
    ) -> Outcome:
        """
        Save matching open tabs as a new session, then close them.

        Tabs are closed only after the store write has completed, in
        reverse order so "reopen closed tab" restores the original order.
        """
        open_tabs = await source.list_tabs()
        result = capture(open_tabs, predicate, timestamp_ms)
        if result.noop:
            return Outcome("No tabs to save!", noop=True)

        raw_tabs = (await self.store.get([SAVED_TABS_KEY])).get(SAVED_TABS_KEY) or []
        saved = records_to_store(result.records) + list(raw_tabs)
        await self.store.set({SAVED_TABS_KEY: saved})

        logger.info(f"Saved {len(result.records)} tabs as session {result.session_id}")

        await source.close(result.tab_ids_to_close)
        return Outcome(f"Saved {len(result.records)} tabs successfully!", count=len(result.records))

    # -------------------------------------------------------------------------
    # Import / export
    # -------------------------------------------------------------------------

    async def _apply_import(self, merge: Callable[[list[TabRecord], dict[str, str]], ImportResult]) -> Outcome:
        tabs, metadata = await self.load()
        result = merge(tabs, metadata)

        if result.imported_count == 0:
            return Outcome("No new tabs found to import.", noop=True)

        updated_metadata = {**metadata, **result.metadata_updates}
        await self._write(result.new_tabs + tabs, updated_metadata)

        logger.info(
            f"Imported {result.imported_count} tabs "
            f"({len(result.metadata_updates)} named sessions added)"
        )
        return Outcome(
            f"Imported {result.imported_count} tabs successfully!",
            count=result.imported_count,
        )

    async def import_text(self, raw: str, timestamp_ms: int = None) -> Outcome:
        """Merge backup text into the saved tabs (additive, URL-deduplicated)."""
        return await self._apply_import(
            lambda tabs, metadata: import_text(raw, tabs, metadata, timestamp_ms)
        )

    async def import_json(self, raw: str) -> Outcome:
        """Merge a JSON snapshot into the saved tabs."""
        return await self._apply_import(
            lambda tabs, metadata: import_json(raw, tabs, metadata)
        )

    async def import_file(self, path: Path) -> Outcome:
        """
        Import a backup file; .json files are snapshots, anything else text.

        Raises:
            ImportParseError: file content unreadable
        """
        path = Path(path)
        raw = read_backup(path)
        if path.suffix.lower() == ".json":
            return await self.import_json(raw)
        return await self.import_text(raw)

    async def export(self, as_json: bool = False) -> Outcome:
        """Serialize everything saved; content is None when nothing is."""
        tabs, metadata = await self.load()
        if not tabs:
            return Outcome("No tabs to download!", noop=True)

        content = export_json(tabs, metadata) if as_json else export_text(tabs, metadata)
        return Outcome(f"Exported {len(tabs)} tabs.", count=len(tabs), content=content)

    # -------------------------------------------------------------------------
    # Session edits
    # -------------------------------------------------------------------------

    async def rename_session(self, key: SessionKey, name: Optional[str]) -> Outcome:
        """
        Set a session's custom name; empty or None removes it.

        Raises:
            SessionError: legacy session, or no such session
        """
        if key.is_legacy:
            raise SessionError("Tabs saved without a session can't be renamed")

        tabs, metadata = await self.load()
        if find_session(tabs, key) is None:
            raise SessionError(f"No session {key}")

        name = (name or "").strip()[:self.settings.max_session_name_length]
        if name:
            metadata[key.metadata_key] = name
            message = f"Renamed session to '{name}'"
        else:
            metadata.pop(key.metadata_key, None)
            message = "Removed session name"

        await self._write(metadata=metadata)
        logger.info(f"Session {key}: {message}")
        return Outcome(message, count=1)

    async def delete_session(self, key: SessionKey, confirm: ConfirmCallback = None) -> Outcome:
        """
        Delete every record of a session and its name.

        The legacy key removes exactly the records without a sessionId.
        """
        if confirm is not None:
            session = find_session((await self.load())[0], key)
            if session is None:
                return Outcome(f"No session {key}", noop=True)
            if not confirm(f"Delete session with {len(session)} tabs?"):
                return Outcome("Cancelled.", noop=True)

        tabs, metadata = await self.load()
        remaining = [t for t in tabs if t.key != key]
        deleted = len(tabs) - len(remaining)
        if deleted == 0:
            return Outcome(f"No session {key}", noop=True)

        if key.metadata_key is not None:
            metadata.pop(key.metadata_key, None)

        await self._write(remaining, metadata)
        logger.info(f"Deleted session {key} ({deleted} tabs)")
        return Outcome(f"Deleted session with {deleted} tabs!", count=deleted)

    async def clear_all(self, confirm: ConfirmCallback) -> Outcome:
        """Remove every saved tab and session name, after confirmation."""
        tabs, _ = await self.load()
        if not tabs:
            return Outcome("No saved tabs to clear!", noop=True)

        prompt = (
            f"Are you sure you want to clear all {len(tabs)} saved tabs? "
            "This action cannot be undone."
        )
        if not confirm(prompt):
            return Outcome("Cancelled.", noop=True)

        count = len(tabs)
        await self._write([], {})
        logger.info(f"Cleared {count} saved tabs")
        return Outcome(f"Cleared {count} saved tabs!", count=count)

    # -------------------------------------------------------------------------
    # Restore
    # -------------------------------------------------------------------------

    async def restore_session(self, key: SessionKey, source: TabSource) -> Outcome:
        """Open every tab of a session, in saved order. Nothing is deleted."""
        session = find_session((await self.load())[0], key)
        if session is None:
            raise SessionError(f"No session {key}")

        for record in session.tabs:
            await source.create(record.url)

        logger.info(f"Restored session {key} ({len(session)} tabs)")
        return Outcome(f"Restored {len(session)} tabs!", count=len(session))

    async def restore_tab(self, record: TabRecord, source: TabSource) -> Outcome:
        await source.create(record.url)
        return Outcome(f"Opened {record.url}", count=1)
