"""Test doubles for the tab source and the store."""

from tabdog.sessions.models import TabRecord
from tabdog.store import MemoryStore, StorageError
from tabdog.tabs import LiveTab, TabSource

# 2024-01-01 12:00:00 UTC, rendered "1/1/2024, 12:00:00 PM"
NOON_2024 = 1704110400000
NOON_2024_STR = "1/1/2024, 12:00:00 PM"


class FakeTabSource(TabSource):
    """Fixed tab list that records what was closed and opened."""

    def __init__(self, tabs=None, events=None):
        self.tabs = list(tabs or [])
        self.closed = []
        self.created = []
        self.events = events if events is not None else []

    async def list_tabs(self):
        return list(self.tabs)

    async def close(self, tab_ids):
        self.closed.extend(tab_ids)
        self.events.append(("close", list(tab_ids)))

    async def create(self, url, active=True):
        self.created.append(url)
        return LiveTab(id=1000 + len(self.created), url=url, active=active)


class RecordingStore(MemoryStore):
    """MemoryStore that logs writes into a shared event list."""

    def __init__(self, initial=None, events=None):
        super().__init__(initial)
        self.events = events if events is not None else []

    async def set(self, items):
        await super().set(items)
        self.events.append(("set", sorted(items)))


class FailingStore(MemoryStore):
    """Reads work, every write is rejected."""

    async def set(self, items):
        raise StorageError("disk full")


def make_tabs(*urls, active_index=None, start_id=1):
    return [
        LiveTab(id=start_id + i, url=url, title=f"Tab {i}", active=(i == active_index))
        for i, url in enumerate(urls)
    ]


def record(url, session_id=None, timestamp=NOON_2024, title=None):
    return TabRecord(url=url, title=title or url, timestamp=timestamp, session_id=session_id)
