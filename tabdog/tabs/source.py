"""
Tab Source - abstraction over the browser's open tabs.

This is the integration seam between TabDog and a browser. The capture
engine and the session manager only see TabSource; they don't know or
care how tabs are listed or closed.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

import logging

from .. import TabDogError

logger = logging.getLogger(__name__)

TabId = Union[int, str]


class TabSourceError(TabDogError):
    """The browser could not be reached or returned something unusable."""
    pass


@dataclass
class LiveTab:
    """An open browser tab."""
    id: TabId
    url: str
    title: str = ""
    fav_icon_url: Optional[str] = None
    active: bool = False
    window_id: Optional[TabId] = None

    def __post_init__(self):
        if not self.title:
            self.title = self.url


class TabSource(ABC):
    """
    Abstract tab provider.

    Subclass this to plug in different browsers:
    - DevToolsTabSource: Chromium remote debugging HTTP endpoints
    - test fakes: fixed tab lists that record close/create calls
    """

    @abstractmethod
    async def list_tabs(self) -> list[LiveTab]:
        """Open tabs of the current window, in tab-strip order."""
        ...

    @abstractmethod
    async def close(self, tab_ids: list[TabId]) -> None:
        """Close tabs, in the order given."""
        ...

    @abstractmethod
    async def create(self, url: str, active: bool = True) -> LiveTab:
        """Open a new tab."""
        ...

    async def activate(self, tab_id: TabId) -> None:
        """Bring a tab to the front. Optional."""
        logger.debug(f"{type(self).__name__} cannot activate tabs")

    async def reload(self, tab_id: TabId) -> None:
        """Reload a tab. Optional."""
        logger.debug(f"{type(self).__name__} cannot reload tabs")
