import pytest

from tabdog.sessions.capture import (
    all_except_active,
    all_tabs,
    capture,
    get_predicate,
    only_active,
)
from tabdog.tabs import LiveTab
from tests.fakes import make_tabs


def test_capture_three_tabs_shares_one_session_and_reverses_close_order():
    tabs = make_tabs("http://a.com", "http://b.com", "http://c.com")

    result = capture(tabs, all_tabs(), timestamp_ms=5000)

    assert [r.url for r in result.records] == ["http://a.com", "http://b.com", "http://c.com"]
    assert {r.session_id for r in result.records} == {5000}
    assert {r.timestamp for r in result.records} == {5000}
    assert result.tab_ids_to_close == [3, 2, 1]
    assert result.session_id == 5000
    assert not result.noop


@pytest.mark.parametrize("count", [1, 2, 7])
def test_close_order_is_reverse_of_filtered_order(count):
    tabs = make_tabs(*[f"http://site{i}.com" for i in range(count)], start_id=10)

    result = capture(tabs, all_tabs(), timestamp_ms=1)

    assert result.tab_ids_to_close == [t.id for t in reversed(tabs)]


def test_single_tab_capture_still_gets_session_id():
    result = capture(make_tabs("http://a.com"), all_tabs(), timestamp_ms=42)
    assert result.records[0].session_id == 42


def test_capture_copies_title_and_favicon():
    tab = LiveTab(id=1, url="http://a.com", title="A", fav_icon_url="http://a.com/f.ico")
    rec = capture([tab], all_tabs(), timestamp_ms=1).records[0]
    assert rec.title == "A"
    assert rec.favicon == "http://a.com/f.ico"


def test_all_tabs_skips_extension_pages():
    tabs = make_tabs("http://a.com", "chrome-extension://abc/pages/tab.html", "http://b.com")

    result = capture(tabs, all_tabs(), timestamp_ms=1)

    assert [r.url for r in result.records] == ["http://a.com", "http://b.com"]
    assert result.tab_ids_to_close == [3, 1]


def test_all_except_active():
    tabs = make_tabs("http://a.com", "http://b.com", "http://c.com", active_index=1)

    result = capture(tabs, all_except_active(), timestamp_ms=1)

    assert [r.url for r in result.records] == ["http://a.com", "http://c.com"]
    assert result.tab_ids_to_close == [3, 1]


def test_only_active():
    tabs = make_tabs("http://a.com", "http://b.com", active_index=1)
    result = capture(tabs, only_active(), timestamp_ms=1)
    assert [r.url for r in result.records] == ["http://b.com"]


def test_only_active_extension_tab_is_noop():
    tabs = make_tabs("chrome-extension://abc/pages/tab.html", active_index=0)
    assert capture(tabs, only_active(), timestamp_ms=1).noop


def test_nothing_matched_is_noop():
    result = capture([], all_tabs(), timestamp_ms=1)
    assert result.noop
    assert result.records == []
    assert result.tab_ids_to_close == []
    assert result.session_id is None


def test_custom_exclude_prefix():
    tabs = make_tabs("moz-extension://x/manager.html", "http://a.com")
    result = capture(tabs, get_predicate("all", "moz-extension://"), timestamp_ms=1)
    assert [r.url for r in result.records] == ["http://a.com"]


def test_get_predicate_rejects_unknown_mode():
    with pytest.raises(ValueError, match="Unknown save mode"):
        get_predicate("everything")
