#!/usr/bin/env python3
"""
🔌 API Contract Test Suite (App-TestClient)
==========================================

Exercises the JSON control API through Flask's test client with a fake
runtime, so no audio device, storage account or network is needed.
"""

import io

import pytest

from announcer.api.blob_store import NetworkError
from announcer.constants import KEY_ANNOUNCEMENTS

MANUAL_TIMES = {"fajr": "04:35", "dhuhr": "11:58", "asr": "15:19", "maghrib": "18:02", "isha": "19:13"}


@pytest.fixture
def loaded(client):
    response = client.post('/api/announcements/refresh')
    assert response.status_code == 200
    return client


def _json(response):
    data = response.get_json()
    assert data is not None, response.data
    return data


def test_healthz(client):
    response = client.get('/healthz')
    assert response.status_code == 200
    data = _json(response)["data"]
    assert data["status"] == "ok"
    assert data["scheduler_running"] is False
    assert data["version"]


def test_envelope_and_headers(client):
    response = client.get('/api/playback/status', headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    payload = _json(response)
    assert payload["success"] is True
    assert payload["request_id"] == "req-123"
    assert "timestamp" in payload
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_status_before_catalog_load(client):
    data = _json(client.get('/api/playback/status'))["data"]
    assert data["phase"] == "idle"
    assert data["track_count"] == 0
    assert data["remaining_display"] == "00:00"
    assert isinstance(data["messages"], list)


def test_start_with_empty_catalog_conflicts(client):
    response = client.post('/api/playback/start')
    assert response.status_code == 409
    payload = _json(response)
    assert payload["success"] is False
    assert payload["error_code"] == "empty_catalog"
    assert payload["message"] == "No announcements available"


def test_start_stop_cycle(loaded, player):
    response = loaded.post('/api/playback/start')
    assert response.status_code == 200
    assert _json(response)["data"]["phase"] == "playing"
    assert len(player.plays) == 1

    again = loaded.post('/api/playback/start')
    assert again.status_code == 409
    assert _json(again)["error_code"] == "already_playing"
    assert _json(again)["message"] == "Playing already in progress"

    stopped = loaded.post('/api/playback/stop')
    assert stopped.status_code == 200
    assert _json(stopped)["data"]["phase"] == "stopped"


def test_play_index_and_next(loaded, player):
    assert loaded.post('/api/playback/play/2').status_code == 200
    assert player.plays[-1].endswith("announcement_1.mp3")

    assert loaded.post('/api/playback/next').status_code == 200
    assert player.plays[-1].endswith("announcement_3.mp3")

    missing = loaded.post('/api/playback/play/9')
    assert missing.status_code == 404
    assert _json(missing)["error_code"] == "invalid_index"


def test_interval_update(client, runtime):
    response = client.put('/api/playback/interval', json={"interval_minutes": 30})
    assert response.status_code == 200
    assert _json(response)["data"]["interval_minutes"] == 30
    assert runtime.controller.interval_minutes == 30

    bad = client.put('/api/playback/interval', json={"interval_minutes": "soon"})
    assert bad.status_code == 400
    assert _json(bad)["error_code"] == "interval_minutes"
    assert runtime.controller.interval_minutes == 30


def test_list_remote_and_cached(client, store):
    remote = _json(client.get('/api/list'))["data"]
    assert remote["source"] == "remote"
    assert remote["count"] == 3
    assert remote["announcements"][0]["name"] == "announcement_3"
    assert len(store.get(KEY_ANNOUNCEMENTS)) == 3

    cached = _json(client.get('/api/list?cached=1'))["data"]
    assert cached["source"] == "memory"
    assert cached["count"] == 3


def test_upload(client, blob_store):
    response = client.post(
        '/api/upload',
        data={"audio": (io.BytesIO(b"ID3abc"), "pagi.mp3", "audio/mpeg")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    payload = _json(response)
    assert payload["message"] == "Announcement uploaded successfully!"
    assert payload["data"]["catalog"]["count"] == 4
    assert len(blob_store.uploaded) == 1


def test_upload_validation(client, blob_store):
    missing = client.post('/api/upload', data={}, content_type="multipart/form-data")
    assert missing.status_code == 400
    assert _json(missing)["error_code"] == "missing_file"

    wrong_type = client.post(
        '/api/upload',
        data={"audio": (io.BytesIO(b"%PDF"), "doc.pdf", "application/pdf")},
        content_type="multipart/form-data",
    )
    assert wrong_type.status_code == 400
    assert _json(wrong_type)["error_code"] == "invalid_file"
    assert blob_store.uploaded == []


def test_delete_by_url(loaded, runtime):
    url = runtime.controller.catalog[0].url
    response = loaded.delete('/api/delete', json={"url": url})
    assert response.status_code == 200
    assert _json(response)["data"]["count"] == 2

    missing = loaded.delete('/api/delete', json={})
    assert missing.status_code == 400
    assert _json(missing)["error_code"] == "missing_target"


def test_delete_by_index(loaded, runtime):
    assert loaded.delete('/api/announcements/1').status_code == 200
    assert [track.name for track in runtime.controller.catalog] == ["announcement_3", "announcement_1"]

    response = loaded.delete('/api/announcements/9')
    assert response.status_code == 404
    assert _json(response)["error_code"] == "invalid_index"


def test_storage_outage_surfaces_503(client, blob_store):
    blob_store.list_errors = [NetworkError("down")] * 3
    response = client.get('/api/list')
    assert response.status_code == 503
    assert _json(response)["error_code"] == "network_error"


def test_prayer_times_get_and_update(client, runtime):
    current = _json(client.get('/api/prayer-times'))["data"]
    assert current["times"]["dhuhr"] == "12:00"
    assert current["is_prayer_time"] is False

    response = client.put('/api/prayer-times', json={"times": MANUAL_TIMES})
    assert response.status_code == 200
    data = _json(response)["data"]
    assert data["source"] == "manual"
    assert data["times"] == MANUAL_TIMES

    bad = client.put('/api/prayer-times', json={"times": {"fajr": "xx"}})
    assert bad.status_code == 400


def test_prayer_times_refresh(client):
    response = client.post('/api/prayer-times/refresh')
    assert response.status_code == 200
    assert _json(response)["data"]["source"] == "default"


def test_services_health(client):
    response = client.get('/api/services/health')
    assert response.status_code == 200
    data = _json(response)["data"]
    assert data["total_services"] == 3
    assert set(data["services"]) == {"announcements", "playback", "prayer"}
    assert "rate_limiter" in data


def test_unknown_route_is_json_404(client):
    response = client.get('/api/does-not-exist')
    assert response.status_code == 404
    assert _json(response)["error_code"] == "not_found"


def test_wrong_method_is_json_405(client):
    response = client.get('/api/playback/start')
    assert response.status_code == 405
    assert _json(response)["error_code"] == "method_not_allowed"


def test_error_messages_follow_accept_language(client):
    response = client.get('/api/does-not-exist', headers={"Accept-Language": "id-ID,id;q=0.9"})
    assert _json(response)["message"] == "Halaman tidak ditemukan"


def test_upload_rate_limit(client):
    statuses = [
        client.post('/api/upload', data={}, content_type="multipart/form-data").status_code
        for _ in range(11)
    ]
    assert statuses[:10] == [400] * 10
    assert statuses[10] == 429
