"""
🔧 Service Manager - Central Service Coordination
===============================================

Manages all services and provides a unified interface for the Flask application.
"""

import logging
from typing import Any, Dict, Optional

from . import ServiceResult
from .announcement_service import AnnouncementService
from .playback_service import PlaybackService
from .prayer_refresher import PrayerTimesRefresher
from .prayer_service import PrayerService


class ServiceManager:
    """Central manager for all application services."""

    def __init__(self, runtime: Any):
        self.logger = logging.getLogger("service_manager")
        self.runtime = runtime

        self.announcements = AnnouncementService(runtime)
        self.playback = PlaybackService(runtime)
        self.prayer = PrayerService(runtime)
        self.prayer_refresher = PrayerTimesRefresher(self.prayer.refresh)

        self.services = {
            "announcements": self.announcements,
            "playback": self.playback,
            "prayer": self.prayer,
        }

        self._initialize_all()

    def _initialize_all(self) -> None:
        self.logger.info("🚀 Initializing service manager...")
        for name, service in self.services.items():
            result = service.initialize()
            if result.success:
                self.logger.info(f"✅ {name} service initialized")
            else:
                self.logger.error(f"❌ {name} service initialization failed: {result.message}")

    def get_service(self, name: str) -> Optional[Any]:
        return self.services.get(name)

    def bootstrap(self) -> None:
        """Initial prayer-time resolution and catalog load after the runtime started.

        Also starts the hourly prayer-time re-check.
        """
        prayer = self.prayer.refresh()
        if not prayer.success:
            self.logger.warning("Prayer times unavailable at startup: %s", prayer.message)
        catalog = self.announcements.load_announcements()
        if not catalog.success:
            self.logger.warning("Announcements unavailable at startup: %s", catalog.message)
        self.prayer_refresher.start()

    def shutdown(self) -> None:
        """Stop background work; the persisted countdown is kept."""
        self.prayer_refresher.stop()
        self.runtime.shutdown()

    def health_check_all(self) -> ServiceResult:
        """Perform health check on all services."""
        results: Dict[str, Any] = {}
        overall_healthy = True
        for name, service in self.services.items():
            try:
                health = service.health_check()
            except Exception as e:
                self.logger.error(f"Health check of {name} failed: {e}")
                health = ServiceResult(success=False, message=str(e), error_code="HEALTH_CHECK_FAILED")

            status_payload = health.data if health.success and isinstance(health.data, dict) else {"error": health.message}
            status_value = str(status_payload.get("status", "")).lower() if isinstance(status_payload, dict) else ""
            healthy = health.success and status_value not in {"degraded", "error", "unhealthy"}
            results[name] = {"healthy": healthy, "status": status_payload}
            overall_healthy = overall_healthy and healthy

        return ServiceResult(
            success=True,
            data={
                "overall_healthy": overall_healthy,
                "services": results,
                "total_services": len(self.services),
                "healthy_services": sum(1 for r in results.values() if r["healthy"]),
            },
            message="Health check completed for all services",
        )


_service_manager: Optional[ServiceManager] = None


def set_service_manager(manager: Optional[ServiceManager]) -> None:
    global _service_manager
    _service_manager = manager


def get_service_manager() -> ServiceManager:
    if _service_manager is None:
        raise RuntimeError("Service manager not initialised - call create_app() first")
    return _service_manager


def get_service(name: str) -> Optional[Any]:
    """Get a specific service by name."""
    return get_service_manager().get_service(name)
