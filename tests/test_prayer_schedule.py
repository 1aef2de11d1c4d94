#!/usr/bin/env python3
"""
🕌 Prayer Schedule Test Suite
============================

Window membership, midnight crossing and the post-prayer auto-play window.
"""

import datetime

from announcer.core.prayer import (DEFAULT_PRAYER_TIMES, PrayerName,
                                   PrayerSchedule, parse_hhmm)

from .fakes import TZ, local


def test_default_schedule_has_all_five_prayers():
    schedule = PrayerSchedule.default()
    assert schedule.to_dict() == {
        "fajr": "05:30",
        "dhuhr": "12:00",
        "asr": "15:30",
        "maghrib": "18:00",
        "isha": "19:30",
    }
    assert set(schedule.times) == set(DEFAULT_PRAYER_TIMES)


def test_window_is_half_open():
    schedule = PrayerSchedule.default()
    assert not schedule.is_prayer_time(local(11, 59, 59))
    assert schedule.is_prayer_time(local(12, 0))
    assert schedule.is_prayer_time(local(12, 29, 59))
    assert not schedule.is_prayer_time(local(12, 30))


def test_current_window_reports_prayer_and_end():
    window = PrayerSchedule.default().current_window(local(15, 45))
    assert window is not None
    assert window.prayer is PrayerName.ASR
    assert window.start == local(15, 30)
    assert window.end == local(16, 0)
    assert window.contains(local(15, 30))
    assert not window.contains(local(16, 0))


def test_current_prayer_name_outside_windows_is_none():
    schedule = PrayerSchedule.default()
    assert schedule.current_prayer_name(local(10, 0)) is None
    assert schedule.current_prayer_name(local(18, 10)) is PrayerName.MAGHRIB


def test_block_crosses_midnight():
    schedule = PrayerSchedule.from_mapping({"isha": "23:50"})
    after_midnight = local(0, 10, day=2)
    window = schedule.current_window(after_midnight)
    assert window is not None
    assert window.prayer is PrayerName.ISHA
    assert window.end == local(0, 20, day=2)
    assert not schedule.is_prayer_time(local(0, 20, day=2))


def test_block_minutes_is_configurable():
    schedule = PrayerSchedule.default(block_minutes=10)
    assert schedule.is_prayer_time(local(12, 9))
    assert not schedule.is_prayer_time(local(12, 10))


def test_auto_play_window_after_prayer():
    schedule = PrayerSchedule.default()
    assert schedule.can_auto_play_after_prayer(local(12, 7, 59)) == (False, None)
    assert schedule.can_auto_play_after_prayer(local(12, 8)) == (True, PrayerName.DHUHR)
    assert schedule.can_auto_play_after_prayer(local(12, 9, 59)) == (True, PrayerName.DHUHR)
    assert schedule.can_auto_play_after_prayer(local(12, 10)) == (False, None)


def test_auto_play_window_uses_offsets():
    schedule = PrayerSchedule.default(auto_play_prayer_minutes=10, auto_play_grace_minutes=0,
                                      auto_play_window_minutes=5)
    assert schedule.can_auto_play_after_prayer(local(5, 39)) == (False, None)
    assert schedule.can_auto_play_after_prayer(local(5, 44)) == (True, PrayerName.FAJR)


def test_from_mapping_accepts_any_key_case():
    schedule = PrayerSchedule.from_mapping({"Fajr": "4:35", "MAGHRIB": "17:58"})
    assert schedule.times[PrayerName.FAJR] == datetime.time(4, 35)
    assert schedule.times[PrayerName.MAGHRIB] == datetime.time(17, 58)
    assert schedule.times[PrayerName.DHUHR] == DEFAULT_PRAYER_TIMES[PrayerName.DHUHR]


def test_from_mapping_falls_back_per_entry(caplog):
    schedule = PrayerSchedule.from_mapping({"fajr": "25:00", "asr": "15:12", "isha": None})
    assert schedule.times[PrayerName.FAJR] == DEFAULT_PRAYER_TIMES[PrayerName.FAJR]
    assert schedule.times[PrayerName.ASR] == datetime.time(15, 12)
    assert schedule.times[PrayerName.ISHA] == DEFAULT_PRAYER_TIMES[PrayerName.ISHA]
    assert "fajr" in caplog.text.lower()


def test_from_mapping_ignores_non_mapping():
    assert PrayerSchedule.from_mapping(["05:00"]) == PrayerSchedule.default()
    assert PrayerSchedule.from_mapping(None) == PrayerSchedule.default()


def test_with_offsets_keeps_times():
    schedule = PrayerSchedule.from_mapping({"dhuhr": "11:45"}).with_offsets(block_minutes=5)
    assert schedule.block_minutes == 5
    assert schedule.to_dict()["dhuhr"] == "11:45"
    assert not schedule.is_prayer_time(local(11, 50))


def test_prayer_name_lookup():
    assert PrayerName.from_key(" MAGHRIB ") is PrayerName.MAGHRIB
    assert PrayerName.from_key("tahajjud") is None
    assert PrayerName.ISHA.key == "isha"


def test_parse_hhmm():
    assert parse_hhmm("07:05") == datetime.time(7, 5)
    assert parse_hhmm("7:5") is None
    assert parse_hhmm(705) is None


def test_windows_follow_timezone_of_moment():
    schedule = PrayerSchedule.default()
    # 05:00 UTC is 12:00 in Jakarta
    utc_moment = datetime.datetime(2025, 1, 1, 5, 0, tzinfo=datetime.timezone.utc)
    assert not schedule.is_prayer_time(utc_moment)
    assert schedule.is_prayer_time(utc_moment.astimezone(TZ))
