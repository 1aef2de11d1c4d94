"""
Unit tests for input validation

Tests cover:
- HH:MM prayer times and full manual schedules
- Countdown interval bounds and lenient parsing
- Coordinate ranges
- Audio upload type and size checks
"""
import pytest

from announcer.utils.validation import (InputValidator, SizeError,
                                        ValidationError,
                                        parse_interval_minutes,
                                        validate_audio_upload,
                                        validate_prayer_times)


class TestTimeValidation:
    """HH:MM parsing"""

    @pytest.mark.parametrize("raw, expected", [("4:05", "04:05"), ("23:59", "23:59"), (" 12:00 ", "12:00")])
    def test_valid_times_are_normalized(self, raw, expected):
        result = InputValidator.validate_time(raw, "fajr")
        assert result.is_valid
        assert result.value == expected

    @pytest.mark.parametrize("raw", ["24:00", "12:60", "noon", "1200", None, "", 1200])
    def test_invalid_times(self, raw):
        result = InputValidator.validate_time(raw, "fajr")
        assert not result.is_valid
        assert result.field_name == "fajr"


class TestIntervalValidation:
    """Countdown interval in whole minutes"""

    def test_bounds(self):
        assert InputValidator.validate_interval(1).value == 1
        assert InputValidator.validate_interval("1440").value == 1440
        assert not InputValidator.validate_interval(0).is_valid
        assert not InputValidator.validate_interval(1441).is_valid
        assert not InputValidator.validate_interval("soon").is_valid
        assert not InputValidator.validate_interval(None).is_valid

    def test_lenient_parse_falls_back_to_default(self):
        assert parse_interval_minutes("20") == 20
        assert parse_interval_minutes("") == 15
        assert parse_interval_minutes("abc") == 15
        assert parse_interval_minutes(-3, default=7) == 7


def test_coordinate_ranges():
    assert InputValidator.validate_coordinate("-6.2", "latitude", 90).value == -6.2
    assert not InputValidator.validate_coordinate(91, "latitude", 90).is_valid
    assert InputValidator.validate_coordinate(-180, "longitude", 180).is_valid
    assert not InputValidator.validate_coordinate("east", "longitude", 180).is_valid


class TestAudioUpload:
    """Upload checks that must run before any network call"""

    def test_audio_is_accepted(self):
        validate_audio_upload("pagi.mp3", "audio/mpeg", 1024)
        validate_audio_upload("pagi.wav", "AUDIO/WAV", 1024)

    def test_missing_file(self):
        with pytest.raises(ValidationError) as excinfo:
            validate_audio_upload(None, "audio/mpeg", 0)
        assert excinfo.value.field_name == "audio"

    @pytest.mark.parametrize("mime_type", ["application/pdf", "video/mp4", "", None])
    def test_non_audio_is_rejected(self, mime_type):
        with pytest.raises(ValidationError):
            validate_audio_upload("clip.bin", mime_type, 10)

    def test_size_cap(self):
        with pytest.raises(SizeError) as excinfo:
            validate_audio_upload("big.mp3", "audio/mpeg", 3 * 1024 * 1024, max_bytes=2 * 1024 * 1024)
        assert "2MB" in excinfo.value.message

    def test_size_error_is_a_validation_error(self):
        assert issubclass(SizeError, ValidationError)


class TestManualSchedule:
    """Full five-prayer schedules"""

    def test_keys_are_case_insensitive(self):
        times = validate_prayer_times({"Fajr": "4:35", "DHUHR": "11:58", "asr": "15:19",
                                       "Maghrib": "18:02", "isha": "19:13"})
        assert times == {"fajr": "04:35", "dhuhr": "11:58", "asr": "15:19",
                         "maghrib": "18:02", "isha": "19:13"}

    def test_missing_prayer_names_the_field(self):
        with pytest.raises(ValidationError) as excinfo:
            validate_prayer_times({"fajr": "04:35", "dhuhr": "11:58", "asr": "15:19", "maghrib": "18:02"})
        assert excinfo.value.field_name == "isha"
