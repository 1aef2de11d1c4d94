"""Recent status notifications shown on the control panel."""

from __future__ import annotations

import threading
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from .translations import normalize_language, t


class StatusFeed:
    """Bounded, thread-safe list of rendered status messages.

    Producers push message keys with parameters; prayer names and other
    enum values are translated before the message is formatted.
    """

    def __init__(self, language: str = "id", maxlen: int = 20):
        self.language = normalize_language(language)
        self._lock = threading.Lock()
        self._entries: Deque[Dict[str, Any]] = deque(maxlen=maxlen)

    def _render_param(self, value: Any) -> Any:
        if isinstance(value, Enum):
            return t(f"prayer_{str(value.value).lower()}", self.language)
        return value

    def push(self, key: str, level: str = "info", **params: Any) -> Dict[str, Any]:
        rendered = {name: self._render_param(value) for name, value in params.items()}
        entry = {
            "key": key,
            "level": level,
            "message": t(key, self.language, **rendered),
            "timestamp": datetime.now().isoformat(timespec="seconds"),
        }
        with self._lock:
            self._entries.append(entry)
        return entry

    def latest(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return dict(self._entries[-1]) if self._entries else None

    def recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        with self._lock:
            items = list(self._entries)[-limit:]
        return [dict(item) for item in reversed(items)]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
