#!/usr/bin/env python3
"""
📢 Announcement Service Test Suite
=================================

Catalog refresh with retry/backoff and cache fallback, uploads and deletes
against an in-memory blob store.
"""

import pytest

from announcer.api.blob_store import (AuthError, ConfigError, NetworkError,
                                      StoreTimeoutError)
from announcer.constants import KEY_ANNOUNCEMENTS
from announcer.services.announcement_service import AnnouncementService

from .fakes import blob_entry


@pytest.fixture
def service(runtime):
    return AnnouncementService(runtime)


def test_load_replaces_catalog_and_caches(service, runtime, store):
    result = service.load_announcements()

    assert result.success
    assert result.data["source"] == "remote"
    assert result.data["count"] == 3
    assert result.message == "Loaded 3 announcements from storage"
    assert [track.name for track in runtime.controller.catalog] == [
        "announcement_3", "announcement_2", "announcement_1",
    ]
    assert len(store.get(KEY_ANNOUNCEMENTS)) == 3
    assert runtime.feed.latest()["key"] == "catalog_loaded"


def test_empty_store_reports_empty_catalog(service, blob_store):
    blob_store.entries = []
    result = service.load_announcements()
    assert result.success
    assert result.data["count"] == 0
    assert result.message.startswith("No announcements in storage")


def test_list_retries_with_exponential_backoff(service, blob_store, sleeps):
    blob_store.list_errors = [NetworkError("reset"), NetworkError("reset")]

    result = service.load_announcements()

    assert result.success
    assert blob_store.list_calls == 3
    assert sleeps == [1.0, 2.0]


def test_exhausted_retries_fall_back_to_cache(service, blob_store, store, runtime, sleeps):
    store.set(KEY_ANNOUNCEMENTS, [blob_entry(8), blob_entry(9)])
    blob_store.list_errors = [NetworkError("down")] * 3

    result = service.load_announcements()

    assert result.success
    assert result.data["source"] == "cache"
    assert result.data["count"] == 2
    assert "Network problem" in result.message
    assert blob_store.list_calls == 3
    assert sleeps == [1.0, 2.0]
    assert runtime.feed.latest()["key"] == "catalog_cache_fallback"


def test_timeout_reason_is_reported(service, blob_store, store):
    store.set(KEY_ANNOUNCEMENTS, [blob_entry(8)])
    blob_store.list_errors = [StoreTimeoutError("slow")] * 3

    result = service.load_announcements()
    assert result.success
    assert result.message.startswith("Timed out loading announcements")


def test_exhausted_retries_without_cache_fail(service, blob_store, runtime):
    blob_store.list_errors = [NetworkError("down")] * 3

    result = service.load_announcements()

    assert not result.success
    assert result.error_code == "network_error"
    assert result.data["count"] == 0
    assert runtime.feed.latest()["key"] == "catalog_load_failed"


def test_config_error_is_not_retried(service, blob_store, sleeps):
    blob_store.list_errors = [ConfigError("no token")]

    result = service.load_announcements()

    assert not result.success
    assert result.error_code == "config_error"
    assert blob_store.list_calls == 1
    assert sleeps == []


def test_auth_error_is_not_retried(service, blob_store, store, sleeps):
    store.set(KEY_ANNOUNCEMENTS, [blob_entry(8)])
    blob_store.list_errors = [AuthError("denied")]

    result = service.load_announcements()

    assert result.success
    assert result.data["source"] == "cache"
    assert blob_store.list_calls == 1
    assert sleeps == []


def test_cache_does_not_override_loaded_catalog(service, blob_store, store, runtime):
    service.load_announcements()
    store.set(KEY_ANNOUNCEMENTS, [blob_entry(8)])
    blob_store.list_errors = [NetworkError("down")] * 3

    service.load_announcements()
    assert len(runtime.controller.catalog) == 3


def test_get_catalog_reads_memory_only(service, blob_store):
    result = service.get_catalog()
    assert result.success
    assert result.data["source"] == "memory"
    assert blob_store.list_calls == 0


# ----------------------------------------------------------------------
# Upload
# ----------------------------------------------------------------------
def test_upload_refreshes_catalog(service, blob_store, runtime):
    result = service.upload(b"abc", "audio/mpeg", "pagi.mp3")

    assert result.success
    assert result.data["size"] == 3
    assert result.data["catalog"]["count"] == 4
    assert len(runtime.controller.catalog) == 4
    assert runtime.feed.latest()["key"] == "upload_success"


def test_upload_rejects_non_audio(service, blob_store):
    result = service.upload(b"abc", "application/pdf", "doc.pdf")
    assert not result.success
    assert result.error_code == "invalid_file"
    assert blob_store.uploaded == []


def test_upload_rejects_oversized_file(service, blob_store):
    blob_store.max_upload_bytes = 2
    result = service.upload(b"abc", "audio/mpeg", "pagi.mp3")
    assert result.error_code == "file_too_large"


def test_upload_network_error_is_not_retried(service, blob_store, sleeps):
    blob_store.upload_errors = [NetworkError("down")]
    result = service.upload(b"abc", "audio/mpeg", "pagi.mp3")

    assert result.error_code == "network_error"
    assert blob_store.uploaded == []
    assert sleeps == []


def test_upload_without_credentials(service, blob_store):
    blob_store.upload_errors = [ConfigError("no token")]
    result = service.upload(b"abc", "audio/mpeg", "pagi.mp3")
    assert result.error_code == "config_error"


# ----------------------------------------------------------------------
# Delete
# ----------------------------------------------------------------------
def test_delete_at_removes_remote_and_local(service, blob_store, runtime, store):
    service.load_announcements()

    result = service.delete_at(0)

    assert result.success
    assert result.data["deleted"] == "announcements/announcement_3.mp3"
    assert result.data["already_removed"] is False
    assert blob_store.deleted == ["announcements/announcement_3.mp3"]
    assert len(runtime.controller.catalog) == 2
    assert len(store.get(KEY_ANNOUNCEMENTS)) == 2


def test_delete_missing_remote_still_removes_locally(service, blob_store, runtime):
    service.load_announcements()
    blob_store.entries.pop(0)

    result = service.delete_at(0)

    assert result.success
    assert result.data["already_removed"] is True
    assert len(runtime.controller.catalog) == 2
    assert runtime.feed.latest()["key"] == "delete_not_found"


def test_delete_by_url(service, runtime):
    service.load_announcements()
    url = runtime.controller.catalog[1].url

    result = service.delete(url)

    assert result.success
    assert [track.name for track in runtime.controller.catalog] == ["announcement_3", "announcement_1"]


def test_delete_retries_once_more(service, blob_store, sleeps, runtime):
    service.load_announcements()
    blob_store.delete_errors = [NetworkError("reset")]

    assert service.delete_at(0).success
    assert sleeps == [1.5]


def test_delete_exhausted_keeps_track(service, blob_store, sleeps, runtime):
    service.load_announcements()
    blob_store.delete_errors = [NetworkError("down"), NetworkError("down")]

    result = service.delete_at(0)

    assert result.error_code == "network_error"
    assert sleeps == [1.5]
    assert len(runtime.controller.catalog) == 3


def test_delete_invalid_index(service):
    result = service.delete_at(5)
    assert result.error_code == "invalid_index"


def test_deleting_playing_track_stops_audio(service, runtime, player):
    service.load_announcements()
    runtime.controller.start()

    service.delete_at(0)

    assert player.stops == 1
    assert not runtime.controller.is_playing


def test_health_reports_storage_configuration(service, blob_store):
    service.initialize()
    assert service.health_check().data["status"] == "healthy"
    blob_store.configured = False
    assert service.health_check().data["status"] == "degraded"
