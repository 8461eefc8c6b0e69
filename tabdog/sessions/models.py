"""
Saved tab data models and session grouping.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Union
import logging

from .. import TabDogError

logger = logging.getLogger(__name__)

# Display label and CLI token for the implicit session of legacy records
LEGACY_LABEL = "individual"


class SessionError(TabDogError):
    """Invalid operation on a session (unknown key, legacy rename, ...)."""
    pass


# -------------------------------------------------------------------------
# Session keys
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class ExplicitKey:
    """
    Key of a session created by a capture or an import.

    Compared by the string form of the id: the store may hold 1700000000000
    in a record while session metadata is keyed by "1700000000000".
    """
    session_id: Union[int, str] = field(compare=False)
    token: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "token", str(self.session_id))

    is_legacy = False

    @property
    def metadata_key(self) -> str:
        return self.token

    def __str__(self) -> str:
        return self.token


class LegacyKey:
    """Key of the implicit session holding records saved without a sessionId."""

    _instance: Optional[LegacyKey] = None

    is_legacy = True
    metadata_key = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "LEGACY"

    def __str__(self) -> str:
        return LEGACY_LABEL


LEGACY = LegacyKey()

SessionKey = Union[ExplicitKey, LegacyKey]


def key_for(session_id: Union[int, str, None]) -> SessionKey:
    """Session key for a raw sessionId value (None or "" means legacy)."""
    if session_id is None or session_id == "":
        return LEGACY
    return ExplicitKey(session_id)


def parse_session_key(text: str) -> SessionKey:
    """
    Session key from user input.

    Numeric strings become integer ids since captures use epoch millis.
    """
    text = text.strip()
    if text == LEGACY_LABEL:
        return LEGACY
    if text.isdigit():
        return ExplicitKey(int(text))
    return ExplicitKey(text)


# -------------------------------------------------------------------------
# Records
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class TabRecord:
    """One saved tab. Never mutated after creation."""
    url: str
    title: str = ""
    favicon: Optional[str] = None
    timestamp: int = 0  # epoch millis
    session_id: Union[int, str, None] = None

    def __post_init__(self):
        if not self.url:
            raise ValueError("TabRecord requires a non-empty url")

    @property
    def key(self) -> SessionKey:
        return key_for(self.session_id)

    def to_dict(self) -> dict:
        """Serialize to the stored (camelCase) shape."""
        d = {
            "title": self.title,
            "url": self.url,
            "timestamp": self.timestamp,
        }
        if self.favicon is not None:
            d["favicon"] = self.favicon
        if self.session_id is not None:
            d["sessionId"] = self.session_id
        return d

    @classmethod
    def from_dict(cls, data: dict) -> TabRecord:
        """Deserialize a stored record."""
        raw_ts = data.get("timestamp", 0)
        try:
            timestamp = int(raw_ts or 0)
        except (TypeError, ValueError):
            logger.warning(f"Record {data.get('url')!r} has invalid timestamp {raw_ts!r}")
            timestamp = 0

        return cls(
            url=data.get("url", ""),
            title=data.get("title") or "",
            favicon=data.get("favicon"),
            timestamp=timestamp,
            session_id=data.get("sessionId"),
        )


def records_from_store(raw: list[dict]) -> list[TabRecord]:
    """Parse stored dicts, dropping (and logging) entries without a url."""
    records = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("url"):
            logger.warning(f"Skipping unreadable saved tab: {item!r}")
            continue
        records.append(TabRecord.from_dict(item))
    return records


def records_to_store(records: list[TabRecord]) -> list[dict]:
    return [r.to_dict() for r in records]


# -------------------------------------------------------------------------
# Sessions
# -------------------------------------------------------------------------

@dataclass
class Session:
    """All records sharing one session key, in storage order."""
    key: SessionKey
    tabs: list[TabRecord] = field(default_factory=list)

    @property
    def timestamp(self) -> int:
        return self.tabs[0].timestamp if self.tabs else 0

    @property
    def grouped(self) -> bool:
        """Rendered as a collapsible group rather than a bare item."""
        return len(self.tabs) > 1 or (
            bool(self.tabs) and self.tabs[0].session_id is not None
        )

    @property
    def urls(self) -> list[str]:
        return [t.url for t in self.tabs]

    def name(self, metadata: dict[str, str]) -> Optional[str]:
        """Custom name from session metadata, or None."""
        return session_name(metadata, self.key)

    def __len__(self) -> int:
        return len(self.tabs)


def session_name(metadata: dict[str, str], key: SessionKey) -> Optional[str]:
    if key.metadata_key is None:
        return None
    return metadata.get(key.metadata_key) or None


def group_sessions(records: list[TabRecord]) -> list[Session]:
    """
    Group records into sessions.

    Sessions come out in order of first appearance, which is
    reverse-chronological since new records are always prepended.
    """
    sessions: dict[SessionKey, Session] = {}
    for record in records:
        key = record.key
        if key not in sessions:
            sessions[key] = Session(key=key)
        sessions[key].tabs.append(record)
    return list(sessions.values())


def find_session(records: list[TabRecord], key: SessionKey) -> Optional[Session]:
    for session in group_sessions(records):
        if session.key == key:
            return session
    return None
