"""Central constants for Announcer.

Only put small, stable primitives here – avoid runtime/config dependent values.
"""

# Countdown between two announcement attempts when no interval is configured
DEFAULT_INTERVAL_MINUTES: int = 15

# Prayer block during which playback is suppressed
DEFAULT_PRAYER_BLOCK_MINUTES: int = 30

# Post-prayer auto-trigger: assumed prayer duration + grace, then a short window
AUTO_PLAY_PRAYER_MINUTES: int = 5
AUTO_PLAY_GRACE_MINUTES: int = 3
AUTO_PLAY_WINDOW_MINUTES: int = 2

COUNTDOWN_TICK_SECONDS: float = 1.0
AUTO_TRIGGER_CHECK_SECONDS: float = 60.0

# Prayer times cache is refetched once it is older than this
PRAYER_TIMES_MAX_AGE_SECONDS: int = 24 * 60 * 60
# How often the background refresher re-checks that cache
PRAYER_REFRESH_CHECK_SECONDS: float = 60 * 60

MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024
BLOB_PREFIX: str = "announcements/"

# Retry policy for blob store calls: (attempts, base delay seconds)
LIST_RETRY_POLICY: tuple[int, float] = (3, 1.0)
DELETE_RETRY_POLICY: tuple[int, float] = (2, 1.5)

# Persisted key-value state
KEY_PRAYER_TIMES = "prayerTimes"
KEY_PRAYER_TIMES_LAST_FETCH = "prayerTimesLastFetch"
KEY_ANNOUNCEMENTS = "announcements"
KEY_ANNOUNCEMENTS_LAST_FETCH = "announcementsLastFetch"
KEY_COUNTDOWN_END = "countdownEndTime"
KEY_COUNTDOWN_INTERVAL = "countdownInterval"
KEY_COUNTDOWN_NEXT_INDEX = "countdownNextIndex"
KEY_LAST_AUTO_TRIGGER = "lastAutoTrigger"
