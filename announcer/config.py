"""
Centralized configuration management for Announcer
Handles environment-specific configs and validation with thread safety
"""

import copy
import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from dotenv import load_dotenv

from .config_schema import AnnouncerConfig, validate_config_dict

_logger = logging.getLogger("config")


class ConfigManager:
    """Manages configuration loading and validation"""

    def __init__(self, config_dir: Optional[os.PathLike] = None, environment: Optional[str] = None):
        env_dir = os.getenv("ANNOUNCER_CONFIG_DIR")
        if config_dir is None and env_dir:
            config_dir = env_dir
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).resolve().parent.parent / "config"
        self.environment = environment or os.getenv("ANNOUNCER_ENV") or "development"

    def _read_json(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (json.JSONDecodeError, OSError) as exc:
            _logger.warning("Could not load %s: %s", path.name, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def load_config(self, config_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration based on environment

        ``default_config.json`` is loaded first and ``<environment>.json``
        overrides it key by key.
        """
        config_name = config_name or self.environment
        config_file = self.config_dir / f"{config_name}.json"
        config = {
            **self._read_json(self.config_dir / "default_config.json"),
            **self._read_json(config_file),
        }
        config.setdefault("environment", self.environment)
        config["_runtime"] = {
            "environment": self.environment,
            "config_file": str(config_file),
        }
        return self.validate_config(config)

    def validate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Validate against the schema; invalid files fall back to defaults field by field."""
        try:
            validated_model, warnings = validate_config_dict(config)
            for warning in warnings:
                _logger.warning(f"Config validation warning: {warning}")
            validated = validated_model.to_dict()
        except ValueError as exc:
            _logger.error(f"❌ {exc}")
            validated = self._legacy_validate_config(config)
        if "_runtime" in config:
            validated["_runtime"] = config["_runtime"]
        return validated

    def _legacy_validate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Keep each field that validates on its own, default the rest."""
        result = AnnouncerConfig().to_dict()
        for key in list(result):
            if key not in config:
                continue
            try:
                candidate = AnnouncerConfig(**{**result, key: config[key]})
            except ValueError:
                _logger.warning("Invalid config value for '%s' - using default", key)
                continue
            result = candidate.to_dict()
        return result

    def save_config(self, config: Dict[str, Any], config_name: Optional[str] = None) -> bool:
        config_name = config_name or self.environment
        config_file = self.config_dir / f"{config_name}.json"
        try:
            validated_model, _ = validate_config_dict(config)
            save_data = validated_model.to_json_safe()
        except ValueError as exc:
            _logger.error("Refusing to save invalid configuration: %s", exc)
            return False
        try:
            config_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = config_file.with_suffix(".json.tmp")
            with tmp_file.open("w", encoding="utf-8") as fh:
                json.dump(save_data, fh, indent=2)
            os.replace(tmp_file, config_file)
            return True
        except OSError as exc:
            _logger.error("Could not save config: %s", exc)
            return False

    def get_environment(self) -> str:
        return self.environment


class ThreadSafeConfigManager:
    """Serialises config reads/writes and notifies listeners of changes."""

    def __init__(self, base_config_manager: ConfigManager):
        self._base_manager = base_config_manager
        self._lock = threading.RLock()
        self._cache: Optional[Dict[str, Any]] = None
        self._change_listeners: List[Callable[[Dict[str, Any]], None]] = []

    @property
    def base(self) -> ConfigManager:
        return self._base_manager

    def add_change_listener(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        with self._lock:
            self._change_listeners.append(callback)

    def remove_change_listener(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        with self._lock:
            if callback in self._change_listeners:
                self._change_listeners.remove(callback)

    def _notify_listeners(self, new_config: Dict[str, Any]) -> None:
        for listener in list(self._change_listeners):
            try:
                listener(copy.deepcopy(new_config))
            except Exception as e:
                _logger.error(f"❌ Error in config change listener {getattr(listener, '__name__', listener)}: {e}")

    def load_config(self, use_cache: bool = True) -> Dict[str, Any]:
        with self._lock:
            if not use_cache or self._cache is None:
                self._cache = self._base_manager.load_config()
            return copy.deepcopy(self._cache)

    def save_config(self, config: Dict[str, Any], notify_listeners: bool = True) -> bool:
        with self._lock:
            if not self._base_manager.save_config(config):
                return False
            self._cache = self._base_manager.load_config()
            snapshot = copy.deepcopy(self._cache)
        if notify_listeners:
            self._notify_listeners(snapshot)
        return True

    @contextmanager
    def config_transaction(self) -> Iterator[Dict[str, Any]]:
        """Load, let the caller mutate, save on clean exit."""
        with self._lock:
            config = self.load_config(use_cache=False)
            yield config
            self.save_config(config)

    def get_config_value(self, key: str, default: Any = None) -> Any:
        return self.load_config().get(key, default)

    def set_config_value(self, key: str, value: Any) -> bool:
        with self._lock:
            config = self.load_config(use_cache=False)
            config[key] = value
            return self.save_config(config)

    def invalidate_cache(self) -> None:
        with self._lock:
            self._cache = None


load_dotenv()

_manager_lock = threading.Lock()
_thread_safe_manager: Optional[ThreadSafeConfigManager] = None


def init_config(config_dir: Optional[os.PathLike] = None, environment: Optional[str] = None) -> ThreadSafeConfigManager:
    """(Re)initialise the global config manager, e.g. for a different directory."""
    global _thread_safe_manager
    with _manager_lock:
        _thread_safe_manager = ThreadSafeConfigManager(ConfigManager(config_dir, environment))
        return _thread_safe_manager


def get_config_manager() -> ThreadSafeConfigManager:
    if _thread_safe_manager is None:
        return init_config()
    return _thread_safe_manager


def load_config() -> Dict[str, Any]:
    """Load current environment configuration (THREAD-SAFE)"""
    return get_config_manager().load_config()


def save_config(config: Dict[str, Any]) -> bool:
    """Save configuration (THREAD-SAFE)"""
    return get_config_manager().save_config(config)


def get_config_value(key: str, default: Any = None) -> Any:
    return get_config_manager().get_config_value(key, default)


def set_config_value(key: str, value: Any) -> bool:
    return get_config_manager().set_config_value(key, value)
