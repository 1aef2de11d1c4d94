"""
📢 Announcement Service - Catalog synchronisation with blob storage
==================================================================

Uploads, lists and deletes announcement clips and keeps the controller's
catalog and the local cache in step with the remote store.
"""

import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import BaseService, ServiceResult
from ..api.blob_store import (AuthError, BlobStoreError, ConfigError,
                              NetworkError, NotFoundError, StoreTimeoutError)
from ..api.http import compute_backoff
from ..constants import (DELETE_RETRY_POLICY, KEY_ANNOUNCEMENTS,
                         KEY_ANNOUNCEMENTS_LAST_FETCH, LIST_RETRY_POLICY)
from ..core.catalog import Track
from ..runtime import load_cached_tracks
from ..utils.translations import t
from ..utils.validation import SizeError, ValidationError


class AnnouncementService(BaseService):
    """Service for the announcement catalog."""

    def __init__(self, runtime: Any):
        super().__init__("announcements", runtime)
        self._sleep: Callable[[float], None] = runtime.sleep or time.sleep

    def _t(self, key: str, **params: Any) -> str:
        return t(key, self.runtime.language, **params)

    def _with_retry(self, operation: Callable[[], Any], policy: Tuple[int, float], label: str) -> Any:
        """Retry ``operation`` on NetworkError with exponential backoff."""
        attempts, base_delay = policy
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except NetworkError as exc:
                if attempt >= attempts:
                    raise
                delay = compute_backoff(base_delay, attempt)
                self.logger.warning(
                    "%s failed (attempt %s/%s): %s - retrying in %.1fs",
                    label, attempt, attempts, exc, delay,
                )
                self._sleep(delay)
        raise RuntimeError("unreachable")  # pragma: no cover

    def _store_cache(self, tracks: List[Track]) -> None:
        self.runtime.store.update({
            KEY_ANNOUNCEMENTS: [track.to_dict() for track in tracks],
            KEY_ANNOUNCEMENTS_LAST_FETCH: int(time.time() * 1000),
        })

    def _catalog_payload(self, source: str) -> Dict[str, Any]:
        controller = self.runtime.controller

        def _snapshot() -> Dict[str, Any]:
            return {
                "announcements": controller.catalog.to_list(),
                "count": len(controller.catalog),
                "current_index": controller.current_index,
            }

        payload = self.runtime.call(_snapshot)
        payload["source"] = source
        return payload

    def get_catalog(self) -> ServiceResult:
        """Current in-memory catalog without contacting storage."""
        try:
            return self._success_result(data=self._catalog_payload("memory"))
        except Exception as e:
            return self._handle_error(e, "get_catalog")

    def load_announcements(self) -> ServiceResult:
        """Refresh the catalog from storage, falling back to the local cache."""
        try:
            entries = self._with_retry(self.runtime.blob_store.list, LIST_RETRY_POLICY, "List announcements")
        except ConfigError as exc:
            self.logger.error("Blob storage not configured: %s", exc)
            fallback = self._use_cache(self._t("store_not_configured"), "config_error")
            return self._error_result(self._t("store_not_configured"), error_code="config_error",
                                      data=fallback.data)
        except (NetworkError, AuthError, BlobStoreError) as exc:
            self.logger.error("Loading announcements failed: %s", exc)
            reason_key = "catalog_timeout" if isinstance(exc, StoreTimeoutError) else "catalog_network"
            if isinstance(exc, AuthError):
                reason_key = "store_auth_failed"
            return self._use_cache(self._t(reason_key), "network_error")
        except Exception as e:
            return self._handle_error(e, "load_announcements")

        tracks = [track for track in (Track.from_dict(entry) for entry in entries) if track is not None]
        count = self.runtime.call(self.runtime.controller.replace_catalog, tracks)
        self._store_cache(tracks)
        message_key = "catalog_loaded" if count else "catalog_empty"
        self.runtime.feed.push(message_key, "success" if count else "info", count=count)
        self.logger.info("📂 Loaded %s announcements from storage", count)
        return self._success_result(data=self._catalog_payload("remote"), message=self._t(message_key, count=count))

    def _use_cache(self, reason: str, error_code: str) -> ServiceResult:
        cached = load_cached_tracks(self.runtime.store)
        if not cached:
            self.runtime.feed.push("catalog_load_failed", "error")
            return self._error_result(
                f"{self._t('catalog_load_failed')}: {reason}",
                error_code=error_code,
                data=self._catalog_payload("memory"),
            )
        controller = self.runtime.controller
        if not self.runtime.call(lambda: len(controller.catalog)):
            self.runtime.call(controller.replace_catalog, cached)
        self.runtime.feed.push("catalog_cache_fallback", "warning", reason=reason, count=len(cached))
        return self._success_result(
            data=self._catalog_payload("cache"),
            message=self._t("catalog_cache_fallback", reason=reason, count=len(cached)),
        )

    def upload(self, data: bytes, mime_type: Optional[str], filename: Optional[str]) -> ServiceResult:
        """Store a clip and refresh the catalog."""
        try:
            result = self.runtime.blob_store.upload(data, mime_type or "", filename)
        except SizeError:
            return self._error_result(
                self._t("file_too_large", max_mb=self.runtime.blob_store.max_upload_bytes // (1024 * 1024)),
                error_code="file_too_large",
            )
        except ValidationError as exc:
            self.logger.info("Upload rejected: %s", exc)
            return self._error_result(self._t("invalid_file_type"), error_code="invalid_file")
        except ConfigError:
            return self._error_result(self._t("store_not_configured"), error_code="config_error")
        except AuthError:
            return self._error_result(self._t("store_auth_failed"), error_code="auth_error")
        except NetworkError as exc:
            self.logger.error("Upload failed: %s", exc)
            return self._error_result(self._t("network_retry_later"), error_code="network_error")
        except BlobStoreError as exc:
            self.logger.error("Upload failed: %s", exc)
            return self._error_result(self._t("upload_failed"), error_code="upload_failed")
        except Exception as e:
            return self._handle_error(e, "upload")

        refreshed = self.load_announcements()
        self.runtime.feed.push("upload_success", "success")
        data_out = {**result, "catalog": refreshed.data}
        return self._success_result(data=data_out, message=self._t("upload_success"))

    def delete(self, id_or_url: str) -> ServiceResult:
        """Delete a clip remotely, then drop it from the catalog."""
        if not id_or_url:
            return self._error_result("url or pathname is required", error_code="missing_target")
        controller = self.runtime.controller
        index = self.runtime.call(controller.catalog.index_of, id_or_url)
        return self._delete(id_or_url, index)

    def delete_at(self, index: int) -> ServiceResult:
        """Delete the clip at catalog position ``index``."""
        controller = self.runtime.controller

        def _lookup() -> Optional[Track]:
            if 0 <= index < len(controller.catalog):
                return controller.catalog[index]
            return None

        track = self.runtime.call(_lookup)
        if track is None:
            return self._error_result(self._t("invalid_index"), error_code="invalid_index")
        return self._delete(track.id, index)

    def _delete(self, target: str, index: Optional[int]) -> ServiceResult:
        already_gone = False
        try:
            self._with_retry(lambda: self.runtime.blob_store.delete(target), DELETE_RETRY_POLICY, "Delete announcement")
        except NotFoundError:
            self.logger.info("Blob %s already removed from storage", target)
            already_gone = True
        except ConfigError:
            return self._error_result(self._t("store_not_configured"), error_code="config_error")
        except AuthError:
            return self._error_result(self._t("store_auth_failed"), error_code="auth_error")
        except NetworkError as exc:
            self.logger.error("Delete failed: %s", exc)
            return self._error_result(self._t("network_retry_later"), error_code="network_error")
        except BlobStoreError as exc:
            self.logger.error("Delete failed: %s", exc)
            return self._error_result(self._t("delete_failed"), error_code="delete_failed")
        except Exception as e:
            return self._handle_error(e, "delete")

        controller = self.runtime.controller

        def _remove_locally() -> Optional[Dict[str, Any]]:
            position = index
            if position is None or position >= len(controller.catalog) or controller.catalog[position].id != target:
                position = controller.catalog.index_of(target)
            if position is None:
                return None
            removed = controller.remove_track(position)
            return removed.to_dict()

        removed = self.runtime.call(_remove_locally)
        self._store_cache(self.runtime.call(lambda: list(controller.catalog)))
        message_key = "delete_not_found" if already_gone else "delete_success"
        self.runtime.feed.push(message_key, "warning" if already_gone else "success")
        return self._success_result(
            data={
                "deleted": target,
                "removed": removed,
                "already_removed": already_gone,
                "deleted_at": datetime.now().isoformat(),
                **self._catalog_payload("memory"),
            },
            message=self._t(message_key),
        )

    def health_check(self) -> ServiceResult:
        base = super().health_check()
        if not base.success:
            return base
        configured = self.runtime.blob_store.configured
        return self._success_result(data={
            "status": "healthy" if configured else "degraded",
            "service": self.name,
            "storage_configured": configured,
            "cached_announcements": len(load_cached_tracks(self.runtime.store)),
        })
