"""
Saved tab import/export.

Text format (the browser extension's backup format):

    1/1/2024, 12:00:00 PM - Work
    http://a.com
    http://b.com

    12/31/2023, 9:15:02 AM
    http://c.com

Blocks are separated by blank lines. A block's first line is the header,
"<date>" or "<date> - <name>", split on the first " - " only; a session name
that itself contains " - " does not survive a round trip. Remaining lines
are URLs.

Also supports a versioned JSON snapshot of the raw records for lossless
backups (titles and favicons kept).
"""

from __future__ import annotations
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

from .. import TabDogError
from .dates import format_timestamp, now_ms, parse_date_string
from .models import (
    ExplicitKey,
    SessionKey,
    TabRecord,
    group_sessions,
    records_from_store,
    records_to_store,
    session_name,
)

logger = logging.getLogger(__name__)

# Export format version for future compatibility
EXPORT_VERSION = 1

HEADER_SEPARATOR = " - "
_BLOCK_SPLIT = re.compile(r"\n\s*\n")


class ImportParseError(TabDogError):
    """Import file content could not be read."""
    pass


@dataclass
class ImportResult:
    """What an import would add. Nothing is written by the parser itself."""
    new_tabs: list[TabRecord] = field(default_factory=list)
    metadata_updates: dict[str, str] = field(default_factory=dict)

    @property
    def imported_count(self) -> int:
        return len(self.new_tabs)


# =============================================================================
# Text export
# =============================================================================

def format_header(timestamp_ms: int, name: Optional[str] = None) -> str:
    """Session header line: date string plus ' - name' when named."""
    header = format_timestamp(timestamp_ms)
    if name:
        header += f"{HEADER_SEPARATOR}{name}"
    return header


def export_text(tabs: list[TabRecord], metadata: dict[str, str]) -> str:
    """
    Render all sessions in the line-oriented backup format.

    Sessions appear in storage order (newest first); each is followed by a
    blank line.
    """
    lines: list[str] = []
    for session in group_sessions(tabs):
        lines.append(format_header(session.timestamp, session.name(metadata)))
        lines.extend(session.urls)
        lines.append("")

    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def backup_filename(product: str = "tabdog", day: date = None, suffix: str = ".txt") -> str:
    """<product>_backup_<YYYY-MM-DD>.txt, dated in UTC."""
    day = day or datetime.now(timezone.utc).date()
    return f"{product}_backup_{day.isoformat()}{suffix}"


def write_backup(path: Path, content: str) -> None:
    Path(path).write_text(content, encoding="utf-8")
    logger.info(f"Wrote backup: {path}")


def read_backup(path: Path) -> str:
    """
    Read an import file as text.

    Raises:
        ImportParseError: unreadable, not UTF-8, or binary content
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImportParseError(f"Cannot read {path.name}: {e.strerror or e}") from e

    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ImportParseError(f"{path.name} is not UTF-8 text") from e

    if "\x00" in text:
        raise ImportParseError(f"{path.name} looks like a binary file")
    return text


# =============================================================================
# Text import
# =============================================================================

def parse_header(header: str) -> tuple[str, Optional[str]]:
    """
    Split a header into (date string, name or None).

    An empty name counts as no name.
    """
    date_str, sep, name = header.partition(HEADER_SEPARATOR)
    if not sep:
        return header, None
    return date_str, (name or None)


def split_blocks(raw: str) -> list[list[str]]:
    """Blank-line separated blocks as lists of trimmed, non-empty lines."""
    blocks = []
    for chunk in _BLOCK_SPLIT.split(raw.strip()):
        lines = [line.strip() for line in chunk.split("\n")]
        lines = [line for line in lines if line]
        if lines:
            blocks.append(lines)
    return blocks


@dataclass
class _IndexedSession:
    key: SessionKey
    date_string: str
    name: Optional[str]
    timestamp: int
    urls: set[str] = field(default_factory=set)

    def matches(self, date_string: str, name: Optional[str]) -> bool:
        return self.date_string == date_string and (self.name or None) == (name or None)


def _index_sessions(
    tabs: list[TabRecord],
    metadata: dict[str, str]
) -> dict[SessionKey, _IndexedSession]:
    index: dict[SessionKey, _IndexedSession] = {}
    for session in group_sessions(tabs):
        index[session.key] = _IndexedSession(
            key=session.key,
            date_string=format_timestamp(session.timestamp),
            name=session_name(metadata, session.key),
            timestamp=session.timestamp,
            urls=set(session.urls),
        )
    return index


def _find_match(
    index: dict[SessionKey, _IndexedSession],
    date_string: str,
    name: Optional[str]
) -> Optional[_IndexedSession]:
    return next((entry for entry in index.values() if entry.matches(date_string, name)), None)


def _resolve_unmatched(
    date_string: str,
    name: Optional[str],
    index: dict[SessionKey, _IndexedSession],
    fallback_ms: int
) -> tuple[_IndexedSession, bool]:
    """
    Target for a header that matched no session verbatim.

    The id comes from the parsed date, else now. A session that already
    renders to the same date and name is reused, so equivalent headers
    ("2024-01-01 12:00:00" and "1/1/2024, 12:00:00 PM", or two undated
    headers) land in one session. An id held by a differently named
    session is bumped by 1 ms.

    Returns:
        (entry, created)
    """
    session_id = parse_date_string(date_string)
    if session_id is None:
        session_id = fallback_ms

    while True:
        rendered = format_timestamp(session_id)
        existing = _find_match(index, rendered, name)
        if existing is not None:
            return existing, False
        if ExplicitKey(session_id) not in index:
            break
        session_id += 1

    key = ExplicitKey(session_id)
    entry = _IndexedSession(key=key, date_string=rendered, name=name, timestamp=session_id)
    index[key] = entry
    return entry, True


def import_text(
    raw: str,
    existing_tabs: list[TabRecord],
    existing_metadata: dict[str, str],
    timestamp_ms: int = None,
) -> ImportResult:
    """
    Merge backup text against the saved tabs.

    Each block goes into the first existing session whose rendered date and
    name both equal the header's, or into a new session dated from the
    header. URLs already present in the target session are skipped, so
    re-importing an unchanged export adds nothing.

    Args:
        raw: Backup file content
        existing_tabs: Current saved tabs
        existing_metadata: Current session names
        timestamp_ms: Fallback id for headers whose date doesn't parse

    Returns:
        ImportResult with records to prepend and names to merge
    """
    if not isinstance(raw, str):
        raise ImportParseError(f"Expected text, got {type(raw).__name__}")

    fallback_ms = timestamp_ms if timestamp_ms is not None else now_ms()
    index = _index_sessions(existing_tabs, existing_metadata)
    result = ImportResult()

    for lines in split_blocks(raw):
        if len(lines) < 2:
            logger.debug(f"Skipping block without URLs: {lines[0]!r}")
            continue

        date_string, name = parse_header(lines[0])

        target = _find_match(index, date_string, name)

        if target is None:
            target, created = _resolve_unmatched(date_string, name, index, fallback_ms)
            if created and name:
                result.metadata_updates[target.key.metadata_key] = name

        if target.key.is_legacy:
            record_session_id = None
        else:
            record_session_id = target.key.session_id

        for url in lines[1:]:
            if not url.startswith("http"):
                logger.debug(f"Dropping non-http line: {url!r}")
                continue
            if url in target.urls:
                continue
            result.new_tabs.append(TabRecord(
                url=url,
                title=url,
                timestamp=target.timestamp,
                session_id=record_session_id,
            ))
            target.urls.add(url)

    logger.debug(
        f"Text import: {result.imported_count} new tabs, "
        f"{len(result.metadata_updates)} new session names"
    )
    return result


# =============================================================================
# JSON snapshot
# =============================================================================

def export_json(tabs: list[TabRecord], metadata: dict[str, str]) -> str:
    """Versioned JSON snapshot of the raw records and session names."""
    export_data = {
        "version": EXPORT_VERSION,
        "exported_at": datetime.now().isoformat(),
        "savedTabs": records_to_store(tabs),
        "sessionMetadata": dict(metadata),
    }
    return json.dumps(export_data, indent=2)


def import_json(
    raw: str,
    existing_tabs: list[TabRecord],
    existing_metadata: dict[str, str],
) -> ImportResult:
    """
    Merge a JSON snapshot against the saved tabs.

    Sessions are matched by id; URLs already present in the session are
    skipped. Names are only taken for sessions that don't exist yet.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ImportParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("savedTabs", []), list):
        raise ImportParseError("Invalid snapshot: expected object with 'savedTabs' list")

    version = data.get("version", 1)
    if not isinstance(version, int) or isinstance(version, bool):
        raise ImportParseError(f"Invalid snapshot version: {version!r}")
    if version > EXPORT_VERSION:
        logger.warning(f"Snapshot version {version} is newer than supported {EXPORT_VERSION}")

    incoming = records_from_store(data.get("savedTabs", []))
    names = data.get("sessionMetadata") or {}
    if not isinstance(names, dict):
        logger.warning("Snapshot sessionMetadata is not a mapping, ignoring names")
        names = {}

    index = _index_sessions(existing_tabs, existing_metadata)
    result = ImportResult()

    for record in incoming:
        key = record.key
        target = index.get(key)
        if target is None:
            target = _IndexedSession(
                key=key,
                date_string=format_timestamp(record.timestamp),
                name=None,
                timestamp=record.timestamp,
            )
            index[key] = target
            name = session_name(names, key)
            if name:
                result.metadata_updates[key.metadata_key] = name

        if record.url in target.urls:
            continue
        result.new_tabs.append(record)
        target.urls.add(record.url)

    logger.debug(f"JSON import: {result.imported_count} new tabs")
    return result
