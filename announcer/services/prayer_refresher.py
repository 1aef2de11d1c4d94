"""Background re-check of today's prayer times.

A daemon thread calls the prayer service's cache-gated refresh once per
interval, so a process that runs for weeks picks up each new day's times.
It never runs on the scheduler loop.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..constants import PRAYER_REFRESH_CHECK_SECONDS
from . import ServiceResult

_logger = logging.getLogger("prayer_refresher")


class PrayerTimesRefresher:
    def __init__(self, refresh: Callable[[], ServiceResult],
                 interval_seconds: float = PRAYER_REFRESH_CHECK_SECONDS):
        self._refresh = refresh
        self.interval_seconds = interval_seconds
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.RLock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run_loop, name="PrayerTimesRefresher", daemon=True)
            self._running = True
            self._thread.start()
            _logger.info("🕌 Prayer times refresher started (every %.0fs)", self.interval_seconds)

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
            self._running = False
        self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def run_once(self) -> Optional[ServiceResult]:
        """One refresh pass; failures are logged and the next pass tries again."""
        try:
            result = self._refresh()
        except Exception:
            _logger.exception("Prayer times refresh crashed")
            return None
        if not result.success:
            _logger.warning("Prayer times refresh failed: %s", result.message)
        return result

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()
