"""
Chromium DevTools tab source.

Talks to a browser started with --remote-debugging-port over the plain
HTTP endpoints:

    GET  /json/list            open targets
    PUT  /json/new?<url>       open a tab
    GET  /json/close/<id>      close a tab
    GET  /json/activate/<id>   focus a tab

Targets are listed most-recently-activated first, so the first page target
is treated as the active tab. Window ids are not exposed over HTTP.
"""

from __future__ import annotations
import asyncio
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from .source import LiveTab, TabId, TabSource, TabSourceError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9222


class DevToolsTabSource(TabSource):
    """Tab source backed by the DevTools HTTP interface."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, timeout: float = 5.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    # ── HTTP ─────────────────────────────────────────────────────────

    def _request_sync(self, path: str, method: str = "GET") -> bytes:
        url = f"{self.base_url}{path}"
        req = urllib.request.Request(url, method=method)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            raise TabSourceError(f"{method} {path} failed: HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise TabSourceError(f"Cannot reach browser at {self.base_url}: {e}") from e

    async def _request(self, path: str, method: str = "GET") -> bytes:
        return await asyncio.to_thread(self._request_sync, path, method)

    async def _request_json(self, path: str, method: str = "GET") -> Any:
        body = await self._request(path, method)
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise TabSourceError(f"Invalid JSON from {path}: {e}") from e

    # ── TabSource ────────────────────────────────────────────────────

    async def list_tabs(self) -> list[LiveTab]:
        targets = await self._request_json("/json/list")
        if not isinstance(targets, list):
            raise TabSourceError("Unexpected /json/list response")

        pages = [t for t in targets if t.get("type") == "page" and t.get("url")]
        tabs = [
            LiveTab(
                id=t["id"],
                url=t["url"],
                title=t.get("title", ""),
                fav_icon_url=t.get("faviconUrl"),
                active=(i == 0),
            )
            for i, t in enumerate(pages)
        ]
        logger.debug(f"DevTools listed {len(tabs)} page targets")
        return tabs

    async def close(self, tab_ids: list[TabId]) -> None:
        for tab_id in tab_ids:
            await self._request(f"/json/close/{tab_id}")
        logger.info(f"Closed {len(tab_ids)} tabs")

    async def create(self, url: str, active: bool = True) -> LiveTab:
        target = await self._request_json(
            f"/json/new?{urllib.parse.quote(url, safe=':/?&=#%')}", method="PUT"
        )
        tab = LiveTab(
            id=target.get("id", ""),
            url=target.get("url", url),
            title=target.get("title", ""),
            active=active,
        )
        if not active:
            logger.debug("DevTools always focuses new tabs; 'active=False' ignored")
        return tab

    async def activate(self, tab_id: TabId) -> None:
        await self._request(f"/json/activate/{tab_id}")
