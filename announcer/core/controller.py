"""Playback scheduling state machine.

Plays catalog tracks one at a time, waits ``interval_minutes`` between
clips, defers any clip that would start inside a prayer block and restarts
itself shortly after a prayer ends. All methods must run on the event loop
thread; audio completion arrives as events posted onto the loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from ..constants import DEFAULT_INTERVAL_MINUTES, KEY_LAST_AUTO_TRIGGER
from ..utils.logger import log_structured
from ..utils.validation import parse_interval_minutes
from .catalog import Track, TrackCatalog
from .countdown import CountdownTimer, format_remaining
from .event_loop import TimerQueue
from .player import AudioPlayer, PlaybackError
from .prayer import PrayerSchedule

_logger = logging.getLogger("controller")

Notifier = Callable[..., None]


class Phase(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    DEFERRED = "deferred"
    COUNTING_DOWN = "counting_down"
    STOPPED = "stopped"


class ControllerError(Exception):
    """Base class for rejected control commands."""

    message_key = "an_internal_error_occurred"


class EmptyCatalogError(ControllerError):
    message_key = "no_announcements"

    def __init__(self, message: str = "No announcements available"):
        super().__init__(message)


class AlreadyPlayingError(ControllerError):
    message_key = "already_playing"

    def __init__(self, message: str = "Playing already in progress"):
        super().__init__(message)


class CountdownActiveError(ControllerError):
    message_key = "countdown_active"

    def __init__(self, message: str = "Countdown already running"):
        super().__init__(message)


@dataclass(frozen=True)
class PlaybackStarted:
    generation: int


@dataclass(frozen=True)
class PlaybackEnded:
    generation: int


@dataclass(frozen=True)
class PlaybackFailed:
    generation: int
    reason: str


@dataclass(frozen=True)
class CountdownExpired:
    next_index: Optional[int]


def _load_trigger_key(raw: Any) -> Optional[Tuple[str, str]]:
    if isinstance(raw, (list, tuple)) and len(raw) == 2 and all(isinstance(part, str) for part in raw):
        return (raw[0], raw[1])
    return None


def _discard_notification(key: str, level: str = "info", **params: Any) -> None:
    pass


class PlaybackController:
    """Owns the countdown, the audio handle and the play position."""

    def __init__(
        self,
        loop: TimerQueue,
        clock: Any,
        catalog: TrackCatalog,
        player: AudioPlayer,
        schedule: PrayerSchedule,
        store: Any,
        notify: Optional[Notifier] = None,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
    ):
        self._loop = loop
        self._clock = clock
        self.catalog = catalog
        self._player = player
        self.schedule = schedule
        self._notify = notify or _discard_notification
        self.interval_minutes = parse_interval_minutes(interval_minutes)
        self._store = store
        self.countdown = CountdownTimer(loop, clock, store, self._on_countdown_expired)

        self.phase = Phase.IDLE
        self.current_index = 0
        self.pending_index: Optional[int] = None
        self.is_playing = False
        self._generation = 0
        # End (HH:MM) of the prayer block the pending slot waits for
        self.deferred_until: Optional[str] = None
        self._last_auto_trigger = _load_trigger_key(store.get(KEY_LAST_AUTO_TRIGGER))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Begin the announcement cycle at the current slot.

        Raises:
            EmptyCatalogError: nothing to play
            AlreadyPlayingError: a clip is playing
            CountdownActiveError: a countdown (or deferral) is already pending
        """
        if not len(self.catalog):
            raise EmptyCatalogError()
        if self.is_playing:
            raise AlreadyPlayingError()
        if self.countdown.active:
            raise CountdownActiveError()
        self._notify("playback_started", "info")
        self.play_index(self.current_index)

    def play_index(self, index: int) -> bool:
        """Play slot ``index`` unless a prayer block is running.

        Returns True when audio was started.
        """
        self.countdown.cancel()

        now = self._clock.now()
        window = self.schedule.current_window(now)
        if window is not None:
            self.phase = Phase.DEFERRED
            self.pending_index = index
            self.deferred_until = window.end.strftime("%H:%M")
            self._notify(
                "playback_skipped_prayer",
                "warning",
                prayer=window.prayer,
                until=self.deferred_until,
            )
            log_structured(
                _logger, logging.INFO, "🕌 Announcement deferred for prayer",
                prayer=window.prayer.value, index=index, retry_minutes=self.interval_minutes,
            )
            self.countdown.start(self.interval_minutes, index)
            self.phase = Phase.PLAYING if self.is_playing else Phase.COUNTING_DOWN
            return False

        self.deferred_until = None

        if not 0 <= index < len(self.catalog):
            _logger.warning("Ignoring play request for out-of-range index %s (catalog size %s)",
                            index, len(self.catalog))
            if not self.is_playing:
                self.phase = Phase.IDLE
            self.pending_index = None
            return False

        self.current_index = index
        self.pending_index = None
        return self._start_audio(self.catalog[index])

    def play_next(self) -> bool:
        if not len(self.catalog):
            raise EmptyCatalogError()
        return self.play_index((self.current_index + 1) % len(self.catalog))

    def stop(self) -> None:
        """Stop audio and any pending countdown."""
        self._halt_audio()
        self.countdown.cancel()
        self.pending_index = None
        self.deferred_until = None
        self.phase = Phase.STOPPED
        self._notify("playback_stopped", "info")
        _logger.info("⏹️ Playback stopped")

    def remove_track(self, index: int) -> Track:
        """Remove slot ``index``, silencing it first when it is the one playing."""
        if not 0 <= index < len(self.catalog):
            raise IndexError(f"track index {index} out of range")

        if index == self.current_index and self.is_playing:
            self._halt_audio()
            self.countdown.cancel()
            self.pending_index = None
            self.deferred_until = None
            self.phase = Phase.IDLE

        removed = self.catalog.remove_at(index)
        size = len(self.catalog)
        # Later slots move down by one; positions past the end wrap to 0
        if index < self.current_index:
            self.current_index -= 1
        elif self.current_index >= size:
            self.current_index = 0
        if self.pending_index is not None:
            if index < self.pending_index:
                self.pending_index -= 1
            elif self.pending_index >= size:
                self.pending_index = 0 if size else None
            self.countdown.retarget(self.pending_index)
        _logger.info("🗑️ Removed track %s (%s), %s remaining", index, removed.name, size)
        return removed

    def replace_catalog(self, tracks) -> int:
        count = self.catalog.replace(tracks)
        if self.current_index >= count:
            self.current_index = 0
        return count

    def set_interval(self, value: Any) -> int:
        self.interval_minutes = parse_interval_minutes(value)
        return self.interval_minutes

    def set_schedule(self, schedule: PrayerSchedule) -> None:
        self.schedule = schedule

    def check_auto_trigger(self) -> bool:
        """Restart announcements once, shortly after each prayer ends."""
        now = self._clock.now()
        allowed, prayer = self.schedule.can_auto_play_after_prayer(now)
        if not allowed or prayer is None:
            return False
        trigger_key = (now.date().isoformat(), prayer.value)
        if trigger_key == self._last_auto_trigger:
            return False
        if not len(self.catalog) or self.is_playing:
            return False

        self._last_auto_trigger = trigger_key
        self._store.set(KEY_LAST_AUTO_TRIGGER, list(trigger_key))
        self._notify("auto_play_after_prayer", "info", prayer=prayer)
        _logger.info("🕌 %s finished, restarting announcements", prayer.value)
        self.play_index(self.current_index)
        return True

    def resume_countdown(self) -> str:
        result = self.countdown.resume()
        if result == "resumed":
            self.phase = Phase.COUNTING_DOWN
            self.pending_index = self.countdown.next_index
            self._notify("countdown_resumed", "info",
                         remaining=format_remaining(self.countdown.remaining_seconds))
        elif result == "expired":
            self._notify("countdown_expired_offline", "info")
        return result

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def dispatch(self, event: Any) -> None:
        if isinstance(event, CountdownExpired):
            self._handle_countdown_expired(event)
            return

        if getattr(event, "generation", None) != self._generation:
            _logger.debug("Ignoring stale player event %r", event)
            return

        if isinstance(event, PlaybackStarted):
            self.is_playing = True
            self.phase = Phase.PLAYING
            track = self.catalog[self.current_index] if self.current_index < len(self.catalog) else None
            self._notify("now_playing", "success", name=track.name if track else "")
        elif isinstance(event, PlaybackEnded):
            self.is_playing = False
            if not len(self.catalog):
                self.phase = Phase.IDLE
                return
            if self._deferral_armed():
                self.phase = Phase.COUNTING_DOWN
                return
            self._schedule_countdown((self.current_index + 1) % len(self.catalog))
        elif isinstance(event, PlaybackFailed):
            self.is_playing = False
            self._notify("playback_failed", "error", reason=event.reason)
            log_structured(_logger, logging.WARNING, "Announcement failed to play",
                           index=self.current_index, reason=event.reason)
            if not len(self.catalog):
                self.phase = Phase.IDLE
                return
            if self._deferral_armed():
                self.phase = Phase.COUNTING_DOWN
                return
            self._schedule_countdown(self.current_index)
        else:
            _logger.warning("Unknown controller event %r", event)

    def _handle_countdown_expired(self, event: CountdownExpired) -> None:
        size = len(self.catalog)
        if not size:
            self.phase = Phase.IDLE
            self.pending_index = None
            self.deferred_until = None
            return
        target = event.next_index
        if target is None or not 0 <= target < size:
            target = self.current_index if self.current_index < size else 0
        self.play_index(target)

    def _on_countdown_expired(self, next_index: Optional[int]) -> None:
        self.dispatch(CountdownExpired(next_index))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _deferral_armed(self) -> bool:
        return self.deferred_until is not None and self.countdown.active

    def _schedule_countdown(self, target: int) -> None:
        self.phase = Phase.COUNTING_DOWN
        self.deferred_until = None
        self.pending_index = target
        self.countdown.start(self.interval_minutes, target)

    def _start_audio(self, track: Track) -> bool:
        self._generation += 1
        generation = self._generation

        def _finished(error: Optional[str]) -> None:
            event = PlaybackEnded(generation) if error is None else PlaybackFailed(generation, error)
            self._loop.call_soon(self.dispatch, event)

        try:
            self._player.play(track.url, _finished)
        except PlaybackError as exc:
            self.dispatch(PlaybackFailed(generation, str(exc)))
            return False

        self.dispatch(PlaybackStarted(generation))
        return True

    def _halt_audio(self) -> None:
        self._generation += 1
        self.is_playing = False
        self._player.stop()

    def snapshot(self) -> Dict[str, Any]:
        """Status view for the control panel."""
        size = len(self.catalog)
        track = self.catalog[self.current_index] if self.current_index < size else None
        end_time = self.countdown.end_time
        prayer = self.schedule.current_prayer_name(self._clock.now())
        return {
            "phase": self.phase.value,
            "is_playing": self.is_playing,
            "current_index": self.current_index,
            "pending_index": self.pending_index,
            "deferred_until": self.deferred_until,
            "current_track": track.to_dict() if track else None,
            "track_count": size,
            "interval_minutes": self.interval_minutes,
            "countdown_active": self.countdown.active,
            "countdown_end": end_time.isoformat() if end_time else None,
            "remaining_seconds": self.countdown.remaining_seconds,
            "remaining_display": format_remaining(self.countdown.remaining_seconds),
            "current_prayer": prayer.value if prayer else None,
        }
