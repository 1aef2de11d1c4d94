#!/usr/bin/env python3
"""
🛡️ Input Validation Module for Announcer
Provides validation for all user inputs including:
- Prayer times (HH:MM)
- Countdown intervals (minutes)
- Audio uploads (mime type and size)
- Coordinates for the prayer-times lookup
"""

import datetime
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from ..constants import DEFAULT_INTERVAL_MINUTES, MAX_UPLOAD_BYTES

PRAYER_KEYS = ("fajr", "dhuhr", "asr", "maghrib", "isha")


@dataclass
class ValidationResult:
    """Result of input validation with value and error details."""
    is_valid: bool
    value: Any = None
    error: str = ""
    field_name: str = ""


class ValidationError(Exception):
    """Raised when user input is rejected before any side effect happens."""

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        self.message = message
        super().__init__(f"{field_name}: {message}")


class SizeError(ValidationError):
    """Upload exceeds the configured size cap."""


class InputValidator:
    """Centralized input validation for all Announcer user inputs."""

    MIN_INTERVAL = 1
    MAX_INTERVAL = 24 * 60
    MAX_FILENAME_LENGTH = 255

    TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$')

    @classmethod
    def validate_time(cls, value: Union[str, None], field_name: str = "time") -> ValidationResult:
        """Validate time format (HH:MM, 24-hour)."""
        if not value:
            return ValidationResult(False, None, f"{field_name} is required", field_name)

        if not isinstance(value, str):
            return ValidationResult(False, None, f"{field_name} must be a string", field_name)

        value = value.strip()
        if not cls.TIME_PATTERN.match(value):
            return ValidationResult(
                False, None,
                f"{field_name} must be in HH:MM format (24-hour)",
                field_name
            )

        hour, minute = map(int, value.split(':'))
        datetime.time(hour, minute)
        return ValidationResult(True, f"{hour:02d}:{minute:02d}", "", field_name)

    @classmethod
    def validate_interval(cls, value: Union[str, int, None], field_name: str = "interval_minutes") -> ValidationResult:
        """Validate a countdown interval in whole minutes."""
        if value is None or value == "":
            return ValidationResult(False, None, f"{field_name} is required", field_name)

        try:
            minutes = int(value)
        except (ValueError, TypeError):
            return ValidationResult(
                False, None,
                f"{field_name} must be a whole number of minutes",
                field_name
            )
        if minutes < cls.MIN_INTERVAL or minutes > cls.MAX_INTERVAL:
            return ValidationResult(
                False, None,
                f"{field_name} must be between {cls.MIN_INTERVAL} and {cls.MAX_INTERVAL} minutes",
                field_name
            )
        return ValidationResult(True, minutes, "", field_name)

    @classmethod
    def validate_coordinate(cls, value: Any, field_name: str, limit: float) -> ValidationResult:
        try:
            number = float(value)
        except (ValueError, TypeError):
            return ValidationResult(False, None, f"{field_name} must be a number", field_name)
        if not -limit <= number <= limit:
            return ValidationResult(False, None, f"{field_name} must be between -{limit} and {limit}", field_name)
        return ValidationResult(True, number, "", field_name)


def parse_interval_minutes(value: Any, default: int = DEFAULT_INTERVAL_MINUTES) -> int:
    """Lenient interval parsing: unset or unparsable values yield ``default``."""
    result = InputValidator.validate_interval(value)
    return result.value if result.is_valid else default


def validate_audio_upload(
    filename: Optional[str],
    mime_type: Optional[str],
    size: int,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> None:
    """Reject non-audio or oversized uploads.

    Raises:
        ValidationError: missing file or non ``audio/*`` mime type
        SizeError: ``size`` exceeds ``max_bytes``
    """
    if not filename:
        raise ValidationError("audio", "No audio file uploaded")
    if len(filename) > InputValidator.MAX_FILENAME_LENGTH:
        raise ValidationError("audio", "File name is too long")
    if not mime_type or not mime_type.lower().startswith("audio/"):
        raise ValidationError("audio", f"Invalid file type '{mime_type}'. Please upload an audio file.")
    if size > max_bytes:
        raise SizeError("audio", f"File is too large. Maximum is {max_bytes // (1024 * 1024)}MB")


def validate_prayer_times(payload: Mapping[str, Any]) -> Dict[str, str]:
    """Validate a full manual prayer schedule.

    Accepts keys in any case (``Fajr`` or ``fajr``) and returns the
    lower-case mapping used for persistence.

    Raises:
        ValidationError: If a prayer is missing or malformed
    """
    normalized = {str(key).lower(): value for key, value in payload.items()}
    validated: Dict[str, str] = {}
    for key in PRAYER_KEYS:
        result = InputValidator.validate_time(normalized.get(key), key)
        if not result.is_valid:
            raise ValidationError(result.field_name, result.error)
        validated[key] = result.value
    return validated


def validate_coordinates(latitude: Any, longitude: Any) -> tuple[float, float]:
    """Validate a latitude/longitude pair.

    Raises:
        ValidationError: If either value is out of range
    """
    lat_result = InputValidator.validate_coordinate(latitude, "latitude", 90.0)
    if not lat_result.is_valid:
        raise ValidationError(lat_result.field_name, lat_result.error)
    lon_result = InputValidator.validate_coordinate(longitude, "longitude", 180.0)
    if not lon_result.is_valid:
        raise ValidationError(lon_result.field_name, lon_result.error)
    return lat_result.value, lon_result.value
