"""Shared pytest fixtures for the Announcer test suite."""

from __future__ import annotations

import os
import tempfile

# Keep test runs out of the user's log directory and away from real storage
os.environ.setdefault("ANNOUNCER_LOG_DIR", tempfile.mkdtemp(prefix="announcer-test-logs-"))
os.environ.pop("BLOB_READ_WRITE_TOKEN", None)

import pytest

from announcer.app import create_app
from announcer.config import init_config
from announcer.config_schema import AnnouncerConfig
from announcer.core.catalog import Track, TrackCatalog
from announcer.core.controller import PlaybackController
from announcer.core.prayer import PrayerSchedule
from announcer.runtime import AnnouncerRuntime
from announcer.utils.rate_limiting import get_rate_limiter
from announcer.utils.state_store import StateStore

from .fakes import FakeBlobStore, FakePlayer, ManualClock, ManualEventLoop, blob_entry


class NotificationRecorder:
    """Collects controller notifications as ``(key, level, params)``."""

    def __init__(self):
        self.entries = []

    def __call__(self, key, level="info", **params):
        self.entries.append((key, level, params))

    @property
    def keys(self):
        return [key for key, _, _ in self.entries]


def make_tracks(count: int):
    return [Track.from_dict(blob_entry(number)) for number in range(1, count + 1)]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the global config manager at an empty per-test directory."""
    monkeypatch.delenv("BLOB_READ_WRITE_TOKEN", raising=False)
    monkeypatch.delenv("ANNOUNCER_TIMEZONE", raising=False)
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return init_config(config_dir, "testing")


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Ensure each test starts with a clean rate limiter state."""
    limiter = get_rate_limiter()
    limiter.reset()
    limiter.enable()
    yield
    limiter.reset()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def loop(clock):
    return ManualEventLoop(clock)


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path / "state.json")


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def notifications():
    return NotificationRecorder()


@pytest.fixture
def controller(loop, clock, store, player, notifications):
    return PlaybackController(
        loop=loop,
        clock=clock,
        catalog=TrackCatalog(make_tracks(3)),
        player=player,
        schedule=PrayerSchedule.default(),
        store=store,
        notify=notifications,
        interval_minutes=15,
    )


@pytest.fixture
def base_config(tmp_path):
    config = AnnouncerConfig().to_dict()
    config["language"] = "en"
    config["state_path"] = str(tmp_path / "state.json")
    return config


@pytest.fixture
def blob_store():
    return FakeBlobStore([blob_entry(3, "2025-01-03T00:00:00.000Z"),
                          blob_entry(2, "2025-01-02T00:00:00.000Z"),
                          blob_entry(1, "2025-01-01T00:00:00.000Z")])


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def runtime(base_config, clock, loop, store, player, blob_store, sleeps):
    return AnnouncerRuntime(
        base_config,
        clock=clock,
        loop=loop,
        store=store,
        player=player,
        blob_store=blob_store,
        sleep=sleeps.append,
    )


@pytest.fixture
def app(base_config, runtime):
    flask_app = create_app(base_config, runtime=runtime)
    flask_app.config.update({"TESTING": True})
    return flask_app


@pytest.fixture
def client(app):
    """Provide a fresh Flask test client for each test."""
    with app.test_client() as test_client:
        yield test_client
