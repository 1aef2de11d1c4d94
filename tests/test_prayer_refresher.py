#!/usr/bin/env python3
"""
🕌 Prayer Times Refresher Test Suite
===================================

The hourly background re-check that keeps a long-running process on the
current day's prayer times.
"""

import threading

from announcer.services import ServiceResult
from announcer.services.prayer_refresher import PrayerTimesRefresher
from announcer.services.prayer_service import PrayerService
from announcer.services.service_manager import ServiceManager

HOUR = 60 * 60
DAY_ONE = {"fajr": "04:21", "dhuhr": "11:55", "asr": "15:20", "maghrib": "18:10", "isha": "19:25"}
DAY_TWO = {"fajr": "04:22", "dhuhr": "11:56", "asr": "15:21", "maghrib": "18:11", "isha": "19:26"}


class SteppedWallTime:
    def __init__(self, start=1_735_700_000.0):
        self.now = start

    def __call__(self):
        return self.now


class QueuedFetcher:
    def __init__(self, *days):
        self.days = list(days)
        self.calls = 0

    def __call__(self, latitude, longitude, method=2):
        self.calls += 1
        return dict(self.days[min(self.calls, len(self.days)) - 1])


def test_stale_cache_is_refetched_on_a_later_pass(runtime):
    runtime.config.update({"latitude": -6.2, "longitude": 106.8})
    wall = SteppedWallTime()
    fetcher = QueuedFetcher(DAY_ONE, DAY_TWO)
    refresher = PrayerTimesRefresher(PrayerService(runtime, fetcher=fetcher, wall_time=wall).refresh)

    assert refresher.run_once().data["source"] == "remote"
    assert fetcher.calls == 1

    wall.now += HOUR
    assert refresher.run_once().data["source"] == "cache"
    assert fetcher.calls == 1

    wall.now += 24 * HOUR
    result = refresher.run_once()
    assert result.data["source"] == "remote"
    assert fetcher.calls == 2
    assert runtime.controller.schedule.to_dict() == DAY_TWO


def test_crashing_refresh_is_contained():
    def broken():
        raise RuntimeError("lookup exploded")

    assert PrayerTimesRefresher(broken).run_once() is None


def test_failed_refresh_result_is_returned():
    failure = ServiceResult(success=False, message="offline", error_code="OPERATION_FAILED")
    assert PrayerTimesRefresher(lambda: failure).run_once() is failure


def test_thread_runs_passes_until_stopped():
    passes = []
    ran = threading.Event()

    def refresh():
        passes.append(1)
        ran.set()
        return ServiceResult(success=True)

    refresher = PrayerTimesRefresher(refresh, interval_seconds=0.01)
    refresher.start()
    refresher.start()
    try:
        assert ran.wait(5)
        assert refresher.running
    finally:
        refresher.stop()

    assert not refresher.running
    count = len(passes)
    threading.Event().wait(0.1)
    assert len(passes) == count


def test_service_manager_starts_and_stops_refresher(runtime, player):
    manager = ServiceManager(runtime)
    assert not manager.prayer_refresher.running

    manager.bootstrap()
    assert manager.prayer_refresher.running

    manager.shutdown()
    assert not manager.prayer_refresher.running
    assert player.stops == 1
