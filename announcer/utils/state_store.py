#!/usr/bin/env python3
"""
🗃️ Persistent key-value state
Small JSON document holding resume hints and caches (prayer times, catalog
snapshot, countdown end). Values are advisory – never the source of truth
for the remote catalog.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

_logger = logging.getLogger("state_store")


class StateStore:
    """Thread-safe JSON key-value store with atomic writes."""

    def __init__(self, path: os.PathLike | str):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
                if isinstance(data, dict):
                    return data
                _logger.warning("Ignoring non-object state file at %s", self.path)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            _logger.warning("Ignoring corrupted state file at %s", self.path)
        except OSError as exc:
            _logger.warning("Could not read state file %s: %s", self.path, exc)
        return {}

    def _persist(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            _logger.warning("Failed to persist state: %s", exc)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def get_int(self, key: str) -> Optional[int]:
        """Return ``key`` coerced to int, or None when missing/unparsable."""
        value = self.get(key)
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Dict[str, Any]) -> None:
        with self._lock:
            for key, value in values.items():
                self._data[key] = copy.deepcopy(value)
            self._persist()

    def delete(self, *keys: str) -> None:
        self.delete_many(keys)

    def delete_many(self, keys: Iterable[str]) -> None:
        with self._lock:
            removed = False
            for key in keys:
                if key in self._data:
                    del self._data[key]
                    removed = True
            if removed:
                self._persist()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._data)
