import asyncio
import json
import urllib.error
import urllib.request

import pytest

from tabdog.tabs import DevToolsTabSource, TabSourceError


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def read(self):
        if isinstance(self.payload, bytes):
            return self.payload
        return json.dumps(self.payload).encode()


class FakeBrowser:
    """Captures (method, url) pairs; responses keyed by path prefix."""

    def __init__(self):
        self.calls = []
        self.responses = {}

    def urlopen(self, req, timeout=None):
        self.calls.append((req.get_method(), req.full_url))
        path = req.full_url.split("9222", 1)[1]
        for prefix, payload in self.responses.items():
            if path.startswith(prefix):
                if isinstance(payload, Exception):
                    raise payload
                return FakeResponse(payload)
        return FakeResponse(b"Target is closing")


@pytest.fixture
def browser(monkeypatch):
    fake = FakeBrowser()
    monkeypatch.setattr(urllib.request, "urlopen", fake.urlopen)
    return fake


def test_list_tabs_keeps_page_targets(browser):
    browser.responses["/json/list"] = [
        {"id": "A", "type": "page", "url": "http://a.com", "title": "A", "faviconUrl": "http://a.com/f.ico"},
        {"id": "W", "type": "service_worker", "url": "http://a.com/sw.js"},
        {"id": "B", "type": "page", "url": "http://b.com"},
    ]

    tabs = asyncio.run(DevToolsTabSource().list_tabs())

    assert [t.id for t in tabs] == ["A", "B"]
    assert tabs[0].active and not tabs[1].active
    assert tabs[0].fav_icon_url == "http://a.com/f.ico"
    assert tabs[1].title == "http://b.com"


def test_close_in_given_order(browser):
    asyncio.run(DevToolsTabSource().close(["C", "B", "A"]))
    assert [url.rsplit("/", 1)[1] for _, url in browser.calls] == ["C", "B", "A"]


def test_create_uses_put(browser):
    browser.responses["/json/new"] = {"id": "N", "url": "http://a.com/?q=1", "type": "page"}

    tab = asyncio.run(DevToolsTabSource().create("http://a.com/?q=1"))

    assert tab.id == "N"
    assert browser.calls == [("PUT", "http://127.0.0.1:9222/json/new?http://a.com/?q=1")]


def test_unreachable_browser(browser):
    browser.responses["/json/list"] = urllib.error.URLError("connection refused")
    with pytest.raises(TabSourceError, match="Cannot reach browser"):
        asyncio.run(DevToolsTabSource().list_tabs())


def test_bad_payload(browser):
    browser.responses["/json/list"] = b"<html>"
    with pytest.raises(TabSourceError):
        asyncio.run(DevToolsTabSource().list_tabs())
