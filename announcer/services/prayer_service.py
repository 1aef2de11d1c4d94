"""
🕌 Prayer Service - Daily prayer schedule
=========================================

Resolves today's prayer times (manual override, fresh cache, AlAdhan
lookup, stale cache, defaults, in that order) and hands the resulting
schedule to the playback controller.
"""

import time
from typing import Any, Dict, Optional, Tuple

from . import BaseService, ServiceResult
from ..api.prayer_times import PrayerTimesError, fetch_prayer_times
from ..config import load_config, save_config
from ..constants import (KEY_PRAYER_TIMES, KEY_PRAYER_TIMES_LAST_FETCH,
                         PRAYER_TIMES_MAX_AGE_SECONDS)
from ..core.prayer import PrayerSchedule
from ..runtime import schedule_offsets
from ..utils.translations import t
from ..utils.validation import (ValidationError, validate_coordinates,
                                validate_prayer_times)


class PrayerService(BaseService):
    """Service for prayer times."""

    def __init__(self, runtime: Any, fetcher=fetch_prayer_times, wall_time=time.time):
        super().__init__("prayer", runtime)
        self._fetch = fetcher
        self._wall_time = wall_time
        self.source = "default"

    def _t(self, key: str, **params: Any) -> str:
        return t(key, self.runtime.language, **params)

    def _cached(self) -> Tuple[Optional[Dict[str, Any]], Optional[int]]:
        store = self.runtime.store
        times = store.get(KEY_PRAYER_TIMES)
        return (times if isinstance(times, dict) else None), store.get_int(KEY_PRAYER_TIMES_LAST_FETCH)

    def _apply(self, times: Optional[Dict[str, Any]], source: str) -> PrayerSchedule:
        config = self.runtime.config
        schedule = PrayerSchedule.from_mapping(times, **schedule_offsets(config))
        self.runtime.call(self.runtime.controller.set_schedule, schedule)
        self.source = source
        return schedule

    def refresh(self, force: bool = False) -> ServiceResult:
        """Resolve and apply today's schedule.

        A fresh cache (younger than 24 hours) is reused unless ``force``.
        """
        try:
            config = self.runtime.config
            override = config.get("prayer_times")
            if override:
                self._apply(override, "manual")
                return self._success_result(data=self._payload())

            cached, last_fetch = self._cached()
            now_ms = int(self._wall_time() * 1000)
            fresh = (
                cached is not None
                and last_fetch is not None
                and now_ms - last_fetch <= PRAYER_TIMES_MAX_AGE_SECONDS * 1000
            )
            if fresh and not force:
                self._apply(cached, "cache")
                return self._success_result(data=self._payload())

            latitude, longitude = config.get("latitude"), config.get("longitude")
            if latitude is None or longitude is None:
                return self._fallback(cached, self._t("prayer_times_no_location"))

            try:
                times = self._fetch(latitude, longitude, int(config.get("calculation_method", 2)))
            except PrayerTimesError as exc:
                self.logger.warning("Prayer time lookup failed: %s", exc)
                return self._fallback(cached, None)

            self.runtime.store.update({KEY_PRAYER_TIMES: times, KEY_PRAYER_TIMES_LAST_FETCH: now_ms})
            self._apply(times, "remote")
            self.runtime.feed.push("prayer_times_updated", "success")
            if self.runtime.call(lambda: self.runtime.controller.schedule.is_prayer_time(self.runtime.clock.now())):
                self.runtime.feed.push("prayer_in_progress", "error")
            return self._success_result(data=self._payload(), message=self._t("prayer_times_updated"))
        except Exception as e:
            return self._handle_error(e, "refresh")

    def _fallback(self, cached: Optional[Dict[str, Any]], reason: Optional[str]) -> ServiceResult:
        if cached:
            self._apply(cached, "cache")
            self.runtime.feed.push("prayer_times_cached", "info")
            message = self._t("prayer_times_cached")
        else:
            self._apply(None, "default")
            self.runtime.feed.push("prayer_times_default", "error")
            message = self._t("prayer_times_default")
        if reason:
            message = f"{reason} - {message}"
        return self._success_result(data=self._payload(), message=message)

    def _payload(self) -> Dict[str, Any]:
        controller = self.runtime.controller

        def _snapshot() -> Dict[str, Any]:
            schedule = controller.schedule
            now = self.runtime.clock.now()
            window = schedule.current_window(now)
            return {
                "times": schedule.to_dict(),
                "block_minutes": schedule.block_minutes,
                "is_prayer_time": window is not None,
                "current_prayer": window.prayer.value if window else None,
                "blocked_until": window.end.strftime("%H:%M") if window else None,
            }

        data = self.runtime.call(_snapshot)
        data["source"] = self.source
        return data

    def get_prayer_times(self) -> ServiceResult:
        try:
            return self._success_result(data=self._payload())
        except Exception as e:
            return self._handle_error(e, "get_prayer_times")

    def update(self, payload: Dict[str, Any]) -> ServiceResult:
        """Set a manual schedule (``times``) and/or a location (``latitude``/``longitude``).

        ``"times": null`` clears the manual override.
        """
        try:
            updates: Dict[str, Any] = {}
            if "times" in payload:
                raw_times = payload.get("times")
                updates["prayer_times"] = validate_prayer_times(raw_times) if raw_times else None
            if "latitude" in payload or "longitude" in payload:
                lat, lon = validate_coordinates(payload.get("latitude"), payload.get("longitude"))
                updates["latitude"], updates["longitude"] = lat, lon
            if not updates:
                return self._error_result("Nothing to update: send 'times' or 'latitude'/'longitude'",
                                          error_code="empty_update")
        except ValidationError as e:
            return self._error_result(f"Invalid {e.field_name}: {e.message}", error_code=e.field_name)

        try:
            config = load_config()
            config.update(updates)
            if not save_config(config):
                return self._error_result("Failed to save prayer settings", error_code="save_failed")
            self.runtime.config.update(updates)
            location_changed = "latitude" in updates
            return self.refresh(force=location_changed)
        except Exception as e:
            return self._handle_error(e, "update")

    def health_check(self) -> ServiceResult:
        base = super().health_check()
        if not base.success:
            return base
        return self._success_result(data={
            "status": "healthy" if self.source != "default" else "degraded",
            "service": self.name,
            "source": self.source,
        })
