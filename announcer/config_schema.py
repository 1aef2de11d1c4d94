"""
Pydantic models for Announcer configuration validation

Provides type-safe configuration schemas with automatic validation,
preventing runtime errors from malformed config files.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .constants import (AUTO_PLAY_GRACE_MINUTES, AUTO_PLAY_PRAYER_MINUTES,
                        AUTO_PLAY_WINDOW_MINUTES, AUTO_TRIGGER_CHECK_SECONDS,
                        BLOB_PREFIX, DEFAULT_INTERVAL_MINUTES,
                        DEFAULT_PRAYER_BLOCK_MINUTES)
from .utils.validation import validate_prayer_times


class AnnouncerConfig(BaseModel):
    """Complete Announcer configuration schema."""

    # Scheduling
    interval_minutes: int = Field(default=DEFAULT_INTERVAL_MINUTES, ge=1, le=1440,
                                  description="Minutes between announcements")
    prayer_block_minutes: int = Field(default=DEFAULT_PRAYER_BLOCK_MINUTES, ge=1, le=180,
                                      description="Minutes after a prayer start during which clips are deferred")
    auto_play_prayer_minutes: int = Field(default=AUTO_PLAY_PRAYER_MINUTES, ge=0, le=180)
    auto_play_grace_minutes: int = Field(default=AUTO_PLAY_GRACE_MINUTES, ge=0, le=180)
    auto_play_window_minutes: int = Field(default=AUTO_PLAY_WINDOW_MINUTES, ge=1, le=60)
    auto_trigger_check_seconds: float = Field(default=AUTO_TRIGGER_CHECK_SECONDS, gt=0, le=3600)

    # Prayer times
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    calculation_method: int = Field(default=2, ge=0, le=99, description="AlAdhan calculation method")
    prayer_times: Optional[Dict[str, str]] = Field(default=None, description="Manual override {fajr: HH:MM, ...}")
    timezone: str = Field(default="Asia/Jakarta", description="Timezone of the facility")
    language: str = Field(default="id", pattern=r"^(id|en)$", description="Language of status messages")

    # Audio and storage
    player_command: str = Field(default="ffplay -nodisp -autoexit -loglevel error",
                                description="Command used to play a clip; the URL is appended")
    blob_base_url: str = Field(default="https://blob.vercel-storage.com")
    blob_prefix: str = Field(default=BLOB_PREFIX)
    max_upload_mb: int = Field(default=50, ge=1, le=500)
    state_path: str = Field(default="", description="JSON state file; empty = ~/.announcer/state.json")

    # Runtime settings
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    host: str = Field(default="0.0.0.0")

    model_config = {
        "extra": "allow",
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
            return v
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Invalid timezone: {v}. Must be a valid IANA timezone (e.g., 'Asia/Jakarta')")

    @field_validator('prayer_times')
    @classmethod
    def validate_prayer_times_field(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if v is None or v == {}:
            return None
        try:
            return validate_prayer_times(v)
        except Exception as exc:
            raise ValueError(str(exc))

    @field_validator('blob_prefix')
    @classmethod
    def validate_blob_prefix(cls, v: str) -> str:
        v = v.lstrip("/")
        if v and not v.endswith("/"):
            v += "/"
        return v

    @model_validator(mode='after')
    def validate_location(self) -> 'AnnouncerConfig':
        """Latitude and longitude are set together or not at all."""
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be configured together")
        return self

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=False, mode='json')

    def to_json_safe(self) -> Dict[str, Any]:
        """Convert to JSON-safe dictionary (for saving to file)."""
        data = self.to_dict()
        data.pop('_runtime', None)
        return data


def validate_config_dict(config_dict: Dict[str, Any]) -> tuple[AnnouncerConfig, list[str]]:
    """Validate a config dictionary against the schema.

    Returns:
        Tuple of (validated_config, warnings_list)

    Raises:
        ValueError: If config is invalid with detailed error messages
    """
    warnings = []
    known = set(AnnouncerConfig.model_fields)
    for key in config_dict:
        if key not in known and not key.startswith("_"):
            warnings.append(f"Unknown config field '{key}' is ignored")

    try:
        validated = AnnouncerConfig(**{k: v for k, v in config_dict.items() if not k.startswith("_")})
        return validated, warnings
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {str(e)}")
