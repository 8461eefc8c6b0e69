"""
Capture engine - turn open tabs into a new saved session.

A capture always produces exactly one session, even for a single tab, so
grouping stays uniform. Tabs to close are returned in reverse capture order
so the browser's "reopen closed tab" brings them back in their original
order.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Optional
import logging

from ..tabs.source import LiveTab, TabId
from .dates import now_ms
from .models import TabRecord

logger = logging.getLogger(__name__)

TabPredicate = Callable[[LiveTab], bool]

# URL prefix of the browser's own extension pages; never saved
DEFAULT_EXCLUDE_PREFIX = "chrome-extension://"


@dataclass
class CaptureResult:
    """Records to prepend and tab ids to close (already reversed)."""
    records: list[TabRecord] = field(default_factory=list)
    tab_ids_to_close: list[TabId] = field(default_factory=list)

    @property
    def noop(self) -> bool:
        return not self.records

    @property
    def session_id(self) -> Optional[int]:
        return self.records[0].session_id if self.records else None


# ── Predicates ───────────────────────────────────────────────────────

def _is_extension_tab(tab: LiveTab, exclude_prefix: str) -> bool:
    return bool(exclude_prefix) and exclude_prefix in tab.url


def all_tabs(exclude_prefix: str = DEFAULT_EXCLUDE_PREFIX) -> TabPredicate:
    """Every tab except the browser's extension pages."""
    return lambda tab: not _is_extension_tab(tab, exclude_prefix)


def all_except_active(exclude_prefix: str = DEFAULT_EXCLUDE_PREFIX) -> TabPredicate:
    """Every tab except extension pages and the one in front."""
    return lambda tab: not tab.active and not _is_extension_tab(tab, exclude_prefix)


def only_active(exclude_prefix: str = DEFAULT_EXCLUDE_PREFIX) -> TabPredicate:
    """Just the tab in front, unless it is an extension page."""
    return lambda tab: tab.active and not _is_extension_tab(tab, exclude_prefix)


PREDICATES: dict[str, Callable[[str], TabPredicate]] = {
    "all": all_tabs,
    "others": all_except_active,
    "current": only_active,
}


def get_predicate(mode: str, exclude_prefix: str = DEFAULT_EXCLUDE_PREFIX) -> TabPredicate:
    """Predicate for a save mode name ('all', 'others', 'current')."""
    try:
        factory = PREDICATES[mode]
    except KeyError:
        raise ValueError(
            f"Unknown save mode '{mode}' (expected one of: {', '.join(PREDICATES)})"
        ) from None
    return factory(exclude_prefix)


# ── Capture ──────────────────────────────────────────────────────────

def capture(
    open_tabs: list[LiveTab],
    predicate: TabPredicate,
    timestamp_ms: int = None,
) -> CaptureResult:
    """
    Build one session from the open tabs matching predicate.

    Args:
        open_tabs: Tabs in tab-strip order
        predicate: Which tabs to save
        timestamp_ms: Session id / timestamp (default: now)

    Returns:
        CaptureResult; empty (noop) when nothing matched
    """
    selected = [tab for tab in open_tabs if predicate(tab)]
    if not selected:
        logger.info("Capture matched no tabs")
        return CaptureResult()

    session_id = timestamp_ms if timestamp_ms is not None else now_ms()

    records = [
        TabRecord(
            url=tab.url,
            title=tab.title,
            favicon=tab.fav_icon_url,
            timestamp=session_id,
            session_id=session_id,
        )
        for tab in selected
    ]
    tab_ids = [tab.id for tab in selected]
    tab_ids.reverse()

    logger.debug(f"Captured {len(records)} tabs into session {session_id}")
    return CaptureResult(records=records, tab_ids_to_close=tab_ids)
