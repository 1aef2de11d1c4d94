#!/usr/bin/env python3
"""
☁️ Blob storage client for announcement clips.

Thin wrapper over the Vercel Blob REST API: store bytes under a key, list
keys with metadata, delete by URL or pathname. Authentication uses the
``BLOB_READ_WRITE_TOKEN`` environment variable.
"""

import logging
import os
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ..constants import BLOB_PREFIX, MAX_UPLOAD_BYTES
from ..core.catalog import derive_track_name
from ..utils.validation import validate_audio_upload
from .http import get_http_session

_logger = logging.getLogger("blob_store")

DEFAULT_BLOB_BASE_URL = "https://blob.vercel-storage.com"
BLOB_API_VERSION = "7"
LIST_PAGE_LIMIT = 1000


class BlobStoreError(Exception):
    """Base class for blob storage failures."""

    message_key = "upload_failed"


class ConfigError(BlobStoreError):
    """Storage credentials are missing; never retried."""

    message_key = "store_not_configured"


class NetworkError(BlobStoreError):
    """Transport failure or server-side error; safe to retry reads."""

    message_key = "network_retry_later"


class StoreTimeoutError(NetworkError):
    """The storage request timed out."""


class NotFoundError(BlobStoreError):
    """The blob does not exist (treated as already removed)."""

    message_key = "delete_not_found"


class AuthError(BlobStoreError):
    """The token was rejected."""

    message_key = "store_auth_failed"


def _extension_for(filename: Optional[str], mime_type: str) -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[-1].strip().lower()
        if ext and ext.isalnum():
            return ext
    subtype = mime_type.split("/", 1)[-1].lower()
    return {"mpeg": "mp3", "x-wav": "wav", "wave": "wav", "mp4": "m4a", "x-m4a": "m4a"}.get(subtype, subtype or "mp3")


class BlobStoreClient:
    """Client for the announcement folder of the blob store."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        prefix: str = BLOB_PREFIX,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        session: Optional[requests.Session] = None,
    ):
        self._token = token if token is not None else os.getenv("BLOB_READ_WRITE_TOKEN")
        self.base_url = (base_url or os.getenv("ANNOUNCER_BLOB_BASE_URL") or DEFAULT_BLOB_BASE_URL).rstrip("/")
        self.prefix = prefix
        self.max_upload_bytes = max_upload_bytes
        self._session = session

    @property
    def configured(self) -> bool:
        return bool(self._token)

    @property
    def session(self) -> requests.Session:
        return self._session or get_http_session()

    def _headers(self, **extra: str) -> Dict[str, str]:
        if not self._token:
            raise ConfigError("BLOB_READ_WRITE_TOKEN is not configured")
        headers = {
            "authorization": f"Bearer {self._token}",
            "x-api-version": BLOB_API_VERSION,
        }
        headers.update(extra)
        return headers

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.Timeout as exc:
            raise StoreTimeoutError(f"{method} {url} timed out") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthError(f"Blob storage rejected the token (HTTP {response.status_code})")
        if response.status_code == 404:
            raise NotFoundError(f"{url} not found")
        if response.status_code >= 500 or response.status_code == 429:
            raise NetworkError(f"Blob storage returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise BlobStoreError(f"Blob storage returned HTTP {response.status_code}: {response.text[:200]}")
        return response

    def upload(self, data: bytes, mime_type: str, filename: Optional[str] = None) -> Dict[str, Any]:
        """Store an audio clip and return ``{url, id, size}``.

        Raises:
            ConfigError: no token configured
            ValidationError: mime type is not ``audio/*``
            SizeError: clip exceeds the upload cap
            NetworkError / AuthError: storage request failed
        """
        headers = self._headers()
        validate_audio_upload(filename, mime_type, len(data), self.max_upload_bytes)

        pathname = f"{self.prefix}announcement_{int(time.time() * 1000)}.{_extension_for(filename, mime_type)}"
        headers.update({
            "x-content-type": mime_type,
            "x-add-random-suffix": "0",
            "content-type": mime_type,
        })
        response = self._request("PUT", f"{self.base_url}/{quote(pathname)}", data=data, headers=headers)
        payload = response.json()
        result = {
            "url": payload.get("url"),
            "id": payload.get("pathname", pathname),
            "size": len(data),
        }
        _logger.info("☁️ Uploaded %s (%s bytes)", result["id"], result["size"])
        return result

    def list(self, prefix: Optional[str] = None) -> List[Dict[str, Any]]:
        """List clips under ``prefix``, newest first.

        Each entry carries ``id`` (the pathname), ``name``, ``url``,
        ``uploaded_at`` and ``size``.
        """
        headers = self._headers()
        params: Dict[str, Any] = {"prefix": prefix or self.prefix, "limit": LIST_PAGE_LIMIT}
        blobs: List[Dict[str, Any]] = []
        while True:
            response = self._request("GET", self.base_url, params=params, headers=headers)
            payload = response.json()
            blobs.extend(payload.get("blobs") or [])
            cursor = payload.get("cursor")
            if not payload.get("hasMore") or not cursor:
                break
            params["cursor"] = cursor

        entries = [
            {
                "id": blob.get("pathname"),
                "name": derive_track_name(blob.get("pathname") or blob.get("url") or ""),
                "url": blob.get("url"),
                "uploaded_at": blob.get("uploadedAt"),
                "size": blob.get("size"),
            }
            for blob in blobs
            if blob.get("url")
        ]
        entries.sort(key=lambda entry: entry.get("uploaded_at") or "", reverse=True)
        return entries

    def _resolve_url(self, id_or_url: str) -> str:
        if id_or_url.startswith(("http://", "https://")):
            return id_or_url
        for entry in self.list(prefix=id_or_url):
            if entry["id"] == id_or_url:
                return entry["url"]
        raise NotFoundError(f"{id_or_url} not found")

    def delete(self, id_or_url: str) -> None:
        """Delete one clip by pathname or URL.

        Raises:
            NotFoundError: nothing stored under that key
            AuthError: token rejected
        """
        if not id_or_url:
            raise NotFoundError("empty blob reference")
        headers = self._headers()
        url = self._resolve_url(id_or_url)
        self._request("POST", f"{self.base_url}/delete", json={"urls": [url]}, headers=headers)
        _logger.info("🗑️ Deleted blob %s", id_or_url)
