"""Persistable countdown until the next announcement."""

from __future__ import annotations

import datetime as _dt
import logging
import math
from typing import Any, Callable, Optional

from ..constants import (COUNTDOWN_TICK_SECONDS, KEY_COUNTDOWN_END,
                         KEY_COUNTDOWN_INTERVAL, KEY_COUNTDOWN_NEXT_INDEX)
from ..utils.state_store import StateStore
from .event_loop import TimerHandle, TimerQueue

_logger = logging.getLogger("countdown")

PERSISTED_KEYS = (KEY_COUNTDOWN_END, KEY_COUNTDOWN_INTERVAL, KEY_COUNTDOWN_NEXT_INDEX)


def format_remaining(seconds: int) -> str:
    """Render remaining seconds as ``MM:SS`` (``H:MM:SS`` past an hour)."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class CountdownTimer:
    """Counts down to a wall-clock end time, ticking once per second.

    The end time is persisted so a restarted process can resume. Expiry
    clears the persisted state and calls ``on_expire(next_index)`` exactly
    once; the timer never restarts itself.
    """

    def __init__(
        self,
        loop: TimerQueue,
        clock: Any,
        store: StateStore,
        on_expire: Callable[[Optional[int]], None],
        on_tick: Optional[Callable[[int], None]] = None,
        tick_seconds: float = COUNTDOWN_TICK_SECONDS,
    ):
        self._loop = loop
        self._clock = clock
        self._store = store
        self._on_expire = on_expire
        self._on_tick = on_tick
        self._tick_seconds = tick_seconds
        self._handle: Optional[TimerHandle] = None
        self.end_time: Optional[_dt.datetime] = None
        self.interval_minutes: Optional[int] = None
        self.next_index: Optional[int] = None
        self.remaining_seconds = 0

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self, interval_minutes: int, next_index: Optional[int] = None) -> _dt.datetime:
        self._cancel_handle()
        end = self._clock.now() + _dt.timedelta(minutes=interval_minutes)
        self.end_time = end
        self.interval_minutes = interval_minutes
        self.next_index = next_index
        self._store.update({
            KEY_COUNTDOWN_END: int(end.timestamp() * 1000),
            KEY_COUNTDOWN_INTERVAL: interval_minutes,
            KEY_COUNTDOWN_NEXT_INDEX: next_index,
        })
        self._arm()
        _logger.info("⏳ Countdown started: %s min, next slot %s", interval_minutes, next_index)
        return end

    def resume(self) -> str:
        """Restore a persisted countdown.

        Returns ``"resumed"`` when ticking again, ``"expired"`` when the end
        time already passed (expiry is posted to the loop once) and
        ``"none"`` when nothing was persisted.
        """
        end_ms = self._store.get_int(KEY_COUNTDOWN_END)
        if end_ms is None:
            return "none"

        self._cancel_handle()
        now = self._clock.now()
        end = _dt.datetime.fromtimestamp(end_ms / 1000, tz=now.tzinfo)
        self.interval_minutes = self._store.get_int(KEY_COUNTDOWN_INTERVAL)
        self.next_index = self._store.get_int(KEY_COUNTDOWN_NEXT_INDEX)

        if now >= end:
            next_index = self.next_index
            self._reset_state()
            _logger.info("⏰ Persisted countdown expired while offline")
            self._loop.call_soon(self._on_expire, next_index)
            return "expired"

        self.end_time = end
        self._arm()
        _logger.info("⏳ Countdown resumed: %ss remaining", self.remaining_seconds)
        return "resumed"

    def retarget(self, next_index: Optional[int]) -> None:
        """Change the slot an armed countdown will play on expiry."""
        if not self.active:
            return
        self.next_index = next_index
        self._store.set(KEY_COUNTDOWN_NEXT_INDEX, next_index)

    def cancel(self) -> None:
        """Stop ticking and forget the persisted countdown."""
        self._cancel_handle()
        self._reset_state()

    def _arm(self) -> None:
        self._handle = self._loop.call_repeating(self._tick_seconds, self._tick)
        self._update_remaining(self._clock.now())

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _reset_state(self) -> None:
        self._store.delete_many(PERSISTED_KEYS)
        self.end_time = None
        self.next_index = None
        self.remaining_seconds = 0
        if self._on_tick:
            self._on_tick(0)

    def _update_remaining(self, now: _dt.datetime) -> None:
        if self.end_time is None:
            self.remaining_seconds = 0
        else:
            self.remaining_seconds = max(0, math.ceil((self.end_time - now).total_seconds()))
        if self._on_tick:
            self._on_tick(self.remaining_seconds)

    def _tick(self) -> None:
        if self.end_time is None:
            self._cancel_handle()
            return
        now = self._clock.now()
        self._update_remaining(now)
        if now >= self.end_time:
            next_index = self.next_index
            self._cancel_handle()
            self._reset_state()
            _logger.info("⏰ Countdown finished")
            self._on_expire(next_index)
