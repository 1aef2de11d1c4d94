#!/usr/bin/env python3
"""
Daily prayer windows.

A schedule stores five wall-clock start times without a date; every check
rebuilds "today at HH:MM" in the timezone of the moment being checked.
A prayer blocks announcements for ``block_minutes`` from its start
(half-open interval). Shortly after a prayer ends the scheduler may
restart announcements automatically.
"""

from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from ..constants import (AUTO_PLAY_GRACE_MINUTES, AUTO_PLAY_PRAYER_MINUTES,
                         AUTO_PLAY_WINDOW_MINUTES, DEFAULT_PRAYER_BLOCK_MINUTES)
from ..utils.validation import InputValidator

_logger = logging.getLogger("prayer")


class PrayerName(str, Enum):
    FAJR = "Fajr"
    DHUHR = "Dhuhr"
    ASR = "Asr"
    MAGHRIB = "Maghrib"
    ISHA = "Isha"

    @property
    def key(self) -> str:
        """Lower-case key used for persistence and translations."""
        return self.value.lower()

    @classmethod
    def from_key(cls, raw: str) -> Optional["PrayerName"]:
        lowered = str(raw).strip().lower()
        for prayer in cls:
            if prayer.key == lowered:
                return prayer
        return None


DEFAULT_PRAYER_TIMES: Dict[PrayerName, _dt.time] = {
    PrayerName.FAJR: _dt.time(5, 30),
    PrayerName.DHUHR: _dt.time(12, 0),
    PrayerName.ASR: _dt.time(15, 30),
    PrayerName.MAGHRIB: _dt.time(18, 0),
    PrayerName.ISHA: _dt.time(19, 30),
}


@dataclass(frozen=True)
class PrayerWindow:
    """One concrete occurrence of a prayer block."""

    prayer: PrayerName
    start: _dt.datetime
    end: _dt.datetime

    def contains(self, moment: _dt.datetime) -> bool:
        return self.start <= moment < self.end


def parse_hhmm(value: Any) -> Optional[_dt.time]:
    result = InputValidator.validate_time(value if isinstance(value, str) else None)
    if not result.is_valid:
        return None
    hour, minute = map(int, result.value.split(":"))
    return _dt.time(hour, minute)


class PrayerSchedule:
    """Five daily prayer start times plus the blocking/auto-play offsets."""

    def __init__(
        self,
        times: Optional[Mapping[PrayerName, _dt.time]] = None,
        block_minutes: int = DEFAULT_PRAYER_BLOCK_MINUTES,
        auto_play_prayer_minutes: int = AUTO_PLAY_PRAYER_MINUTES,
        auto_play_grace_minutes: int = AUTO_PLAY_GRACE_MINUTES,
        auto_play_window_minutes: int = AUTO_PLAY_WINDOW_MINUTES,
    ):
        merged = dict(DEFAULT_PRAYER_TIMES)
        if times:
            merged.update({PrayerName(p): t for p, t in times.items()})
        self.times: Dict[PrayerName, _dt.time] = {p: merged[p] for p in PrayerName}
        self.block_minutes = block_minutes
        self.auto_play_prayer_minutes = auto_play_prayer_minutes
        self.auto_play_grace_minutes = auto_play_grace_minutes
        self.auto_play_window_minutes = auto_play_window_minutes

    @classmethod
    def default(cls, **offsets: int) -> "PrayerSchedule":
        return cls(None, **offsets)

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]], **offsets: int) -> "PrayerSchedule":
        """Build a schedule from ``{"fajr": "05:30", ...}``.

        Keys are case-insensitive. Missing or malformed entries fall back to
        the default for that prayer only.
        """
        times: Dict[PrayerName, _dt.time] = {}
        if isinstance(raw, Mapping):
            by_key = {str(k).strip().lower(): v for k, v in raw.items()}
            for prayer in PrayerName:
                if prayer.key not in by_key:
                    continue
                parsed = parse_hhmm(by_key[prayer.key])
                if parsed is None:
                    _logger.warning("Ignoring malformed %s time %r, using default", prayer.value, by_key[prayer.key])
                    continue
                times[prayer] = parsed
        elif raw is not None:
            _logger.warning("Ignoring malformed prayer schedule of type %s", type(raw).__name__)
        return cls(times, **offsets)

    def with_offsets(self, **offsets: int) -> "PrayerSchedule":
        params = {
            "block_minutes": self.block_minutes,
            "auto_play_prayer_minutes": self.auto_play_prayer_minutes,
            "auto_play_grace_minutes": self.auto_play_grace_minutes,
            "auto_play_window_minutes": self.auto_play_window_minutes,
        }
        params.update(offsets)
        return PrayerSchedule(self.times, **params)

    def to_dict(self) -> Dict[str, str]:
        return {prayer.key: self.times[prayer].strftime("%H:%M") for prayer in PrayerName}

    def _starts(self, prayer: PrayerName, now: _dt.datetime) -> Iterator[_dt.datetime]:
        # Yesterday's start keeps a block running across midnight
        for day_offset in (0, -1):
            day = now.date() + _dt.timedelta(days=day_offset)
            yield _dt.datetime.combine(day, self.times[prayer], tzinfo=now.tzinfo)

    def current_window(self, now: _dt.datetime) -> Optional[PrayerWindow]:
        block = _dt.timedelta(minutes=self.block_minutes)
        for prayer in PrayerName:
            for start in self._starts(prayer, now):
                window = PrayerWindow(prayer, start, start + block)
                if window.contains(now):
                    return window
        return None

    def is_prayer_time(self, now: _dt.datetime) -> bool:
        return self.current_window(now) is not None

    def current_prayer_name(self, now: _dt.datetime) -> Optional[PrayerName]:
        window = self.current_window(now)
        return window.prayer if window else None

    def can_auto_play_after_prayer(self, now: _dt.datetime) -> Tuple[bool, Optional[PrayerName]]:
        """Whether ``now`` lies in the post-prayer restart window of some prayer.

        The window is ``[start + prayer + grace, start + prayer + grace + window)``.
        """
        opens = _dt.timedelta(minutes=self.auto_play_prayer_minutes + self.auto_play_grace_minutes)
        closes = opens + _dt.timedelta(minutes=self.auto_play_window_minutes)
        for prayer in PrayerName:
            for start in self._starts(prayer, now):
                if start + opens <= now < start + closes:
                    return True, prayer
        return False, None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrayerSchedule):
            return NotImplemented
        return self.to_dict() == other.to_dict() and self.block_minutes == other.block_minutes

    def __repr__(self) -> str:
        return f"PrayerSchedule({self.to_dict()}, block_minutes={self.block_minutes})"
