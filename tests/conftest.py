"""Shared fixtures: fixed timezone, isolated settings, recording store."""

import time

import pytest

import tabdog.config
from tests.fakes import RecordingStore


@pytest.fixture(autouse=True)
def utc_timezone(monkeypatch):
    """Date strings are local time; pin local time to UTC."""
    monkeypatch.setenv("TZ", "UTC")
    if hasattr(time, "tzset"):
        time.tzset()
    yield
    monkeypatch.undo()
    if hasattr(time, "tzset"):
        time.tzset()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("TABDOG_CONFIG", str(tmp_path / "config.yaml"))
    monkeypatch.setattr(tabdog.config, "_settings", None)


@pytest.fixture
def events():
    return []


@pytest.fixture
def store(events):
    return RecordingStore(events=events)
