#!/usr/bin/env python3
"""
🕌 Scheduler runtime
Wires the event loop, persisted state, audio player, blob store and the
playback controller together. One instance per process.
"""

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .api.blob_store import BlobStoreClient
from .constants import AUTO_TRIGGER_CHECK_SECONDS, KEY_ANNOUNCEMENTS, KEY_PRAYER_TIMES
from .core.catalog import Track, TrackCatalog
from .core.controller import PlaybackController
from .core.event_loop import EventLoop, SystemClock, TimerHandle, TimerQueue
from .core.player import AudioPlayer, CommandPlayer
from .core.prayer import PrayerSchedule
from .utils.state_store import StateStore
from .utils.status_feed import StatusFeed
from .utils.timezone import get_local_timezone

_logger = logging.getLogger("runtime")


def resolve_state_path(config: Dict[str, Any]) -> Path:
    env_path = os.getenv("ANNOUNCER_STATE_PATH")
    if env_path:
        return Path(env_path)
    configured = config.get("state_path")
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".announcer" / "state.json"


def schedule_offsets(config: Dict[str, Any]) -> Dict[str, int]:
    """Prayer block and auto-play offsets from config."""
    offsets = {}
    for key in ("auto_play_prayer_minutes", "auto_play_grace_minutes", "auto_play_window_minutes"):
        if config.get(key) is not None:
            offsets[key] = int(config[key])
    if config.get("prayer_block_minutes") is not None:
        offsets["block_minutes"] = int(config["prayer_block_minutes"])
    return offsets


def load_cached_tracks(store: StateStore) -> list:
    cached = store.get(KEY_ANNOUNCEMENTS) or []
    if not isinstance(cached, list):
        return []
    tracks = (Track.from_dict(item) for item in cached if isinstance(item, dict))
    return [track for track in tracks if track is not None]


class AnnouncerRuntime:
    """Owns the collaborators of the playback controller."""

    def __init__(
        self,
        config: Dict[str, Any],
        clock: Optional[Any] = None,
        loop: Optional[TimerQueue] = None,
        store: Optional[StateStore] = None,
        player: Optional[AudioPlayer] = None,
        blob_store: Optional[BlobStoreClient] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.config = dict(config)
        self.clock = clock or SystemClock(get_local_timezone(config.get("timezone")))
        self.loop = loop or EventLoop(self.clock)
        self.store = store or StateStore(resolve_state_path(config))
        self.feed = StatusFeed(config.get("language", "id"))
        self.blob_store = blob_store or BlobStoreClient(
            base_url=config.get("blob_base_url"),
            prefix=config.get("blob_prefix") or "announcements/",
            max_upload_bytes=int(config.get("max_upload_mb", 50)) * 1024 * 1024,
        )
        self.player = player or CommandPlayer(config.get("player_command") or None)
        self.sleep = sleep

        # Manual override wins over the cached lookup until the services refresh
        raw_times = config.get("prayer_times") or self.store.get(KEY_PRAYER_TIMES)
        schedule = PrayerSchedule.from_mapping(raw_times, **schedule_offsets(config))
        self.controller = PlaybackController(
            loop=self.loop,
            clock=self.clock,
            catalog=TrackCatalog(load_cached_tracks(self.store)),
            player=self.player,
            schedule=schedule,
            store=self.store,
            notify=self.feed.push,
            interval_minutes=config.get("interval_minutes", 15),
        )
        self._auto_trigger: Optional[TimerHandle] = None
        self._started = False

    @property
    def language(self) -> str:
        return self.feed.language

    @property
    def started(self) -> bool:
        return self._started

    def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run ``fn`` on the scheduler loop and return its result."""
        run_sync = getattr(self.loop, "run_sync", None)
        if run_sync is None:
            return fn(*args)
        return run_sync(fn, *args)

    def start(self) -> str:
        """Start the loop, resume a persisted countdown and arm the auto-trigger watcher."""
        if self._started:
            return "already_started"
        if isinstance(self.loop, EventLoop):
            self.loop.start()
        resumed = self.call(self.controller.resume_countdown)
        interval = float(self.config.get("auto_trigger_check_seconds") or AUTO_TRIGGER_CHECK_SECONDS)
        self._auto_trigger = self.loop.call_repeating(interval, self.controller.check_auto_trigger)
        self._started = True
        _logger.info("🕌 Scheduler runtime started (countdown: %s)", resumed)
        return resumed

    def shutdown(self) -> None:
        """Stop the loop without clearing the persisted countdown."""
        if self._auto_trigger is not None:
            self._auto_trigger.cancel()
            self._auto_trigger = None
        self.player.stop()
        if isinstance(self.loop, EventLoop):
            self.loop.stop()
        self._started = False
        _logger.info("🛑 Scheduler runtime stopped")
