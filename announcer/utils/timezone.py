#!/usr/bin/env python3
"""Centralised timezone utilities."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_LOGGER = logging.getLogger("timezone")
FALLBACK_TZ = "Asia/Jakarta"


@lru_cache(maxsize=8)
def _zoneinfo_cached(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def resolve_timezone_name(configured: Optional[str] = None) -> str:
    """Environment wins over configuration, configuration over the fallback."""
    env_tz = os.getenv("ANNOUNCER_TIMEZONE")
    if env_tz and env_tz.strip():
        return env_tz.strip()
    if isinstance(configured, str) and configured.strip():
        return configured.strip()
    return FALLBACK_TZ


def get_local_timezone(configured: Optional[str] = None) -> ZoneInfo:
    """Return a ZoneInfo instance based on configuration/env settings."""
    tz_name = resolve_timezone_name(configured)
    try:
        return _zoneinfo_cached(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        _LOGGER.warning("Unknown timezone '%s' - falling back to '%s'", tz_name, FALLBACK_TZ)
        try:
            return _zoneinfo_cached(FALLBACK_TZ)
        except ZoneInfoNotFoundError as exc:  # pragma: no cover
            raise RuntimeError("Fallback timezone is unavailable on this system") from exc
