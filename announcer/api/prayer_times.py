"""Daily prayer times from the AlAdhan timings API."""

import logging
from typing import Dict, Optional

import requests

from ..utils.validation import PRAYER_KEYS, InputValidator
from .http import get_http_session

_logger = logging.getLogger("prayer_times")

ALADHAN_TIMINGS_URL = "https://api.aladhan.com/v1/timings"
DEFAULT_CALCULATION_METHOD = 2
FETCH_TIMEOUT = (5.0, 30.0)


class PrayerTimesError(Exception):
    """Lookup failed or returned an unusable payload."""


def fetch_prayer_times(
    latitude: float,
    longitude: float,
    method: int = DEFAULT_CALCULATION_METHOD,
    session: Optional[requests.Session] = None,
) -> Dict[str, str]:
    """Return today's times as ``{"fajr": "HH:MM", ...}`` for a location.

    Raises:
        PrayerTimesError: transport failure or malformed response
    """
    http = session or get_http_session()
    params = {"latitude": latitude, "longitude": longitude, "method": method}
    try:
        response = http.get(ALADHAN_TIMINGS_URL, params=params, timeout=FETCH_TIMEOUT)
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as exc:
        raise PrayerTimesError(f"Prayer time lookup failed: {exc}") from exc
    except ValueError as exc:
        raise PrayerTimesError("Prayer time lookup returned invalid JSON") from exc

    timings = (payload.get("data") or {}).get("timings") if isinstance(payload, dict) else None
    if not isinstance(timings, dict):
        raise PrayerTimesError("Invalid API response format")

    times: Dict[str, str] = {}
    for key in PRAYER_KEYS:
        # Timings look like "04:38 (WIB)"
        raw = str(timings.get(key.capitalize(), ""))[:5]
        result = InputValidator.validate_time(raw, key)
        if not result.is_valid:
            raise PrayerTimesError(f"Invalid {key} time in response: {raw!r}")
        times[key] = result.value

    _logger.info("🕌 Prayer times fetched for %.4f,%.4f: %s", latitude, longitude, times)
    return times
