"""
Unit tests for the shared HTTP session (retry with backoff, default timeouts)
and the prayer-time lookup built on it.

Tests cover:
- Transport-level retries only for idempotent methods
- Environment overrides for retry counts and timeouts
- Application-level backoff schedule
- AlAdhan response parsing
"""
import pytest
import requests
from urllib3.util import Retry

from announcer.api import http
from announcer.api.http import (_build_retry_configuration, build_session,
                                compute_backoff, get_http_session,
                                set_http_session)
from announcer.api.prayer_times import (ALADHAN_TIMINGS_URL, PrayerTimesError,
                                        fetch_prayer_times)

from .fakes import FakeResponse, FakeSession


class TestRetryConfiguration:
    """Tests for HTTP retry configuration"""

    def test_retry_config_includes_transient_errors(self):
        retry = _build_retry_configuration()
        assert retry.status_forcelist == [429, 500, 502, 503, 504]

    def test_retry_config_respects_retry_after_header(self):
        assert _build_retry_configuration().respect_retry_after_header is True

    def test_uploads_are_never_retried_by_transport(self):
        retry = _build_retry_configuration()
        assert set(retry.allowed_methods) == {"GET", "HEAD", "DELETE"}
        assert "PUT" not in retry.allowed_methods
        assert "POST" not in retry.allowed_methods

    def test_retry_counts_configurable(self, monkeypatch):
        monkeypatch.setenv("ANNOUNCER_HTTP_RETRY_TOTAL", "5")
        monkeypatch.setenv("ANNOUNCER_HTTP_RETRY_CONNECT", "1")
        monkeypatch.setenv("ANNOUNCER_HTTP_BACKOFF_FACTOR", "1.0")
        retry = _build_retry_configuration()
        assert retry.total == 5
        assert retry.connect == 1
        assert retry.backoff_factor == 1.0

    def test_garbage_env_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("ANNOUNCER_HTTP_RETRY_TOTAL", "many")
        assert _build_retry_configuration().total == 3


class TestSession:
    """Tests for the configured requests.Session"""

    def test_adapters_carry_retry(self):
        session = build_session()
        for prefix in ("https://", "http://"):
            assert isinstance(session.get_adapter(prefix).max_retries, Retry)
        assert session.headers["User-Agent"].startswith("Announcer/")

    def test_default_timeout_is_injected(self, monkeypatch):
        seen = {}

        def fake_request(self, method, url, **kwargs):
            seen.update(kwargs)
            return "ok"

        monkeypatch.setattr(requests.Session, "request", fake_request)
        session = build_session()

        assert session.request("GET", "https://example.test") == "ok"
        assert seen["timeout"] == http.DEFAULT_TIMEOUT

        session.request("GET", "https://example.test", timeout=0.1)
        assert seen["timeout"] == (0.5, 0.5)

        session.request("GET", "https://example.test", timeout=(2, 20))
        assert seen["timeout"] == (2.0, 20.0)

    def test_shared_session_can_be_overridden(self):
        marker = FakeSession()
        set_http_session(marker)
        try:
            assert get_http_session() is marker
        finally:
            set_http_session(None)
        assert get_http_session() is not marker


class TestBackoffCalculation:
    """Tests for exponential backoff calculation"""

    def test_backoff_doubles_per_attempt(self):
        assert [compute_backoff(1.0, attempt) for attempt in (1, 2, 3)] == [1.0, 2.0, 4.0]
        assert compute_backoff(1.5, 1) == 1.5
        assert compute_backoff(1.5, 2) == 3.0

    def test_backoff_cap_and_jitter(self):
        assert compute_backoff(1.0, 10, cap=30.0) == 30.0
        delay = compute_backoff(1.0, 1, jitter=0.5)
        assert 1.0 <= delay <= 1.5


class TestPrayerTimesLookup:
    """Tests for the AlAdhan timings client"""

    @staticmethod
    def _timings(**overrides):
        timings = {"Fajr": "04:21 (WIB)", "Sunrise": "05:40", "Dhuhr": "11:55",
                   "Asr": "15:20", "Maghrib": "18:10", "Isha": "19:25"}
        timings.update(overrides)
        return {"code": 200, "data": {"timings": timings}}

    def test_parses_five_prayers(self):
        session = FakeSession([FakeResponse(200, self._timings())])

        times = fetch_prayer_times(-6.2, 106.8, session=session)

        assert times == {"fajr": "04:21", "dhuhr": "11:55", "asr": "15:20",
                         "maghrib": "18:10", "isha": "19:25"}
        call = session.calls[0]
        assert call["url"] == ALADHAN_TIMINGS_URL
        assert call["params"] == {"latitude": -6.2, "longitude": 106.8, "method": 2}

    def test_malformed_time_is_rejected(self):
        session = FakeSession([FakeResponse(200, self._timings(Asr="later"))])
        with pytest.raises(PrayerTimesError):
            fetch_prayer_times(0, 0, session=session)

    def test_missing_timings_is_rejected(self):
        session = FakeSession([FakeResponse(200, {"code": 200, "data": {}})])
        with pytest.raises(PrayerTimesError):
            fetch_prayer_times(0, 0, session=session)

    def test_http_error_is_wrapped(self):
        session = FakeSession([FakeResponse(502)])
        with pytest.raises(PrayerTimesError):
            fetch_prayer_times(0, 0, session=session)

    def test_transport_error_is_wrapped(self):
        session = FakeSession([requests.ConnectionError("offline")])
        with pytest.raises(PrayerTimesError):
            fetch_prayer_times(0, 0, session=session)
