#!/usr/bin/env python3
"""Centralised HTTP session configuration for blob storage and prayer-time lookups."""

import logging
import os
import platform
import random
from threading import RLock
from typing import Any, Callable, Optional, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from ..version import APP_NAME, VERSION

TimeoutValue = Union[float, Tuple[float, float]]

_LOGGER = logging.getLogger("announcer.http")
_SESSION_LOCK = RLock()
_SESSION: Optional[requests.Session] = None
_CONFIG_LOGGED = False


def _float_env(name: str, default: float, minimum: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return max(minimum, float(value))
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_timeout_tuple() -> Tuple[float, float]:
    """Parse (connect, read) timeout defaults from environment variables."""
    connect = _float_env("ANNOUNCER_HTTP_CONNECT_TIMEOUT", 5.0, 0.5)
    read = _float_env("ANNOUNCER_HTTP_READ_TIMEOUT", 30.0, 1.0)
    return connect, read


DEFAULT_TIMEOUT: Tuple[float, float] = _parse_timeout_tuple()


def _coerce_timeout(value: TimeoutValue) -> TimeoutValue:
    """Normalise timeout values to a tuple of (connect, read)."""
    if isinstance(value, tuple):
        if len(value) == 2:
            return max(0.5, float(value[0])), max(1.0, float(value[1]))
        raise ValueError("Timeout tuples must be length 2 (connect, read)")
    numeric = max(0.5, float(value))
    return numeric, numeric


def _with_default_timeout(
    request_func: Callable[..., requests.Response],
    timeout: Tuple[float, float],
) -> Callable[..., requests.Response]:
    """Wrap session.request to inject default timeouts."""

    def wrapper(method: str, url: str, **kwargs: Any) -> requests.Response:
        provided = kwargs.get("timeout")
        if provided is None:
            kwargs["timeout"] = timeout
        else:
            try:
                kwargs["timeout"] = _coerce_timeout(provided)
            except (TypeError, ValueError):
                kwargs["timeout"] = timeout
        return request_func(method, url, **kwargs)

    return wrapper


def _build_retry_configuration() -> Retry:
    # Only idempotent methods; every upload PUT creates a new key.
    return Retry(
        total=_int_env("ANNOUNCER_HTTP_RETRY_TOTAL", 3),
        connect=_int_env("ANNOUNCER_HTTP_RETRY_CONNECT", 2),
        read=_int_env("ANNOUNCER_HTTP_RETRY_READ", 2),
        backoff_factor=_float_env("ANNOUNCER_HTTP_BACKOFF_FACTOR", 0.5, 0.0),
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET", "HEAD", "DELETE"],
        respect_retry_after_header=True,
        raise_on_status=False,
    )


def compute_backoff(base: float, attempt: int, jitter: float = 0.0, cap: Optional[float] = None) -> float:
    """Exponential delay for application-level attempt loops.

    ``attempt`` is 1-based: attempt 1 waits ``base``, attempt 2 waits
    ``2 * base`` and so on.
    """
    delay = base * (2 ** max(0, attempt - 1))
    if jitter:
        delay += random.uniform(0, jitter)
    if cap is not None:
        delay = min(delay, cap)
    return delay


def _log_configuration(session: requests.Session) -> None:
    global _CONFIG_LOGGED
    if _CONFIG_LOGGED:
        return
    _CONFIG_LOGGED = True

    adapter = session.get_adapter("https://")
    _LOGGER.info(
        "HTTP session configured",
        extra={
            "http.timeout_connect": DEFAULT_TIMEOUT[0],
            "http.timeout_read": DEFAULT_TIMEOUT[1],
            "http.retry_total": adapter.max_retries.total if hasattr(adapter, "max_retries") else None,
        },
    )


def build_session() -> requests.Session:
    """Create a configured requests.Session with retries and timeouts."""
    session = requests.Session()

    adapter = HTTPAdapter(
        max_retries=_build_retry_configuration(),
        pool_connections=_int_env("ANNOUNCER_HTTP_POOL_CONNECTIONS", 4),
        pool_maxsize=_int_env("ANNOUNCER_HTTP_POOL_MAXSIZE", 8),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept": "application/json",
            "User-Agent": (
                f"{APP_NAME}/{VERSION} (Python {platform.python_version()}; "
                f"Requests {requests.__version__})"
            ),
        }
    )
    session.request = _with_default_timeout(session.request, DEFAULT_TIMEOUT)

    _log_configuration(session)
    return session


def get_http_session() -> requests.Session:
    """Return the shared HTTP session, creating it if necessary."""
    global _SESSION
    if _SESSION is None:
        with _SESSION_LOCK:
            if _SESSION is None:
                _SESSION = build_session()
    return _SESSION


def set_http_session(session: Optional[requests.Session]) -> None:
    """
    Override the shared HTTP session (primarily for testing).

    Args:
        session: Preconfigured session instance, or None to rebuild lazily
    """
    global _SESSION, _CONFIG_LOGGED
    with _SESSION_LOCK:
        _SESSION = session
        _CONFIG_LOGGED = False


__all__ = [
    "DEFAULT_TIMEOUT",
    "build_session",
    "compute_backoff",
    "get_http_session",
    "set_http_session",
]
