import pytest

from tabdog.sessions.models import (
    LEGACY,
    ExplicitKey,
    TabRecord,
    find_session,
    group_sessions,
    key_for,
    parse_session_key,
    records_from_store,
    session_name,
)
from tests.fakes import NOON_2024, record


def test_key_for_missing_session_id_is_legacy():
    assert key_for(None) is LEGACY
    assert key_for("") is LEGACY


def test_explicit_keys_compare_by_string_form():
    assert ExplicitKey(1704110400000) == ExplicitKey("1704110400000")
    assert hash(ExplicitKey(5)) == hash(ExplicitKey("5"))
    assert ExplicitKey(5).metadata_key == "5"


def test_real_session_named_individual_is_not_legacy():
    assert ExplicitKey("individual") != LEGACY
    assert not ExplicitKey("individual").is_legacy
    assert LEGACY.metadata_key is None


def test_parse_session_key():
    assert parse_session_key("individual") is LEGACY
    key = parse_session_key(" 1704110400000 ")
    assert key == ExplicitKey(1704110400000)
    assert key.session_id == 1704110400000
    assert parse_session_key("abc").session_id == "abc"


def test_tab_record_requires_url():
    with pytest.raises(ValueError):
        TabRecord(url="")


def test_tab_record_dict_shape():
    rec = TabRecord(url="http://a.com", title="A", favicon="http://a.com/f.ico",
                    timestamp=NOON_2024, session_id=NOON_2024)
    assert rec.to_dict() == {
        "title": "A",
        "url": "http://a.com",
        "favicon": "http://a.com/f.ico",
        "timestamp": NOON_2024,
        "sessionId": NOON_2024,
    }
    assert TabRecord.from_dict(rec.to_dict()) == rec


def test_legacy_record_dict_omits_session_id():
    rec = record("http://a.com")
    assert "sessionId" not in rec.to_dict()
    assert "favicon" not in rec.to_dict()
    assert rec.key is LEGACY


def test_records_from_store_skips_entries_without_url():
    raw = [{"url": "http://a.com", "timestamp": 1}, {"title": "no url"}, "junk"]
    records = records_from_store(raw)
    assert [r.url for r in records] == ["http://a.com"]


def test_records_from_store_tolerates_bad_timestamp():
    records = records_from_store([{"url": "http://a.com", "timestamp": "individual"}])
    assert records[0].timestamp == 0


def test_group_sessions_keeps_first_appearance_order():
    tabs = [
        record("http://new1.com", session_id=300, timestamp=300),
        record("http://old.com", timestamp=100),
        record("http://new2.com", session_id=300, timestamp=300),
        record("http://mid.com", session_id=200, timestamp=200),
    ]
    sessions = group_sessions(tabs)

    assert [s.key for s in sessions] == [ExplicitKey(300), LEGACY, ExplicitKey(200)]
    assert sessions[0].urls == ["http://new1.com", "http://new2.com"]
    assert sessions[0].timestamp == 300


def test_grouped_rule():
    explicit_single = group_sessions([record("http://a.com", session_id=1)])[0]
    legacy_single = group_sessions([record("http://a.com")])[0]
    legacy_pair = group_sessions([record("http://a.com"), record("http://b.com")])[0]

    assert explicit_single.grouped
    assert not legacy_single.grouped
    assert legacy_pair.grouped


def test_session_timestamp_is_first_member():
    tabs = [
        record("http://a.com", session_id=7, timestamp=50),
        record("http://b.com", session_id=7, timestamp=10),
    ]
    assert group_sessions(tabs)[0].timestamp == 50


def test_session_name_lookup():
    metadata = {"7": "Work", "8": ""}
    assert session_name(metadata, ExplicitKey(7)) == "Work"
    assert session_name(metadata, ExplicitKey(8)) is None
    assert session_name(metadata, LEGACY) is None


def test_find_session():
    tabs = [record("http://a.com", session_id=7), record("http://b.com")]
    assert find_session(tabs, ExplicitKey("7")).urls == ["http://a.com"]
    assert find_session(tabs, LEGACY).urls == ["http://b.com"]
    assert find_session(tabs, ExplicitKey(8)) is None
