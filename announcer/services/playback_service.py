"""
🎵 Playback Service - Control of the announcement cycle
=======================================================
"""

from typing import Any, Dict

from . import BaseService, ServiceResult
from ..config import set_config_value
from ..core.controller import (AlreadyPlayingError, ControllerError,
                               CountdownActiveError, EmptyCatalogError)
from ..utils.translations import t
from ..utils.validation import InputValidator

_ERROR_CODES = {
    EmptyCatalogError: "empty_catalog",
    AlreadyPlayingError: "already_playing",
    CountdownActiveError: "countdown_active",
}


class PlaybackService(BaseService):
    """Service wrapping the playback controller."""

    def __init__(self, runtime: Any):
        super().__init__("playback", runtime)

    @property
    def controller(self):
        return self.runtime.controller

    def _t(self, key: str, **params: Any) -> str:
        return t(key, self.runtime.language, **params)

    def _controller_error(self, error: ControllerError) -> ServiceResult:
        code = _ERROR_CODES.get(type(error), "controller_error")
        self.logger.info("Playback command rejected: %s", error)
        return self._error_result(self._t(error.message_key), error_code=code, data=self._status_data())

    def _status_data(self) -> Dict[str, Any]:
        data = self.runtime.call(self.controller.snapshot)
        data["messages"] = self.runtime.feed.recent()
        return data

    def get_status(self) -> ServiceResult:
        try:
            return self._success_result(data=self._status_data())
        except Exception as e:
            return self._handle_error(e, "get_status")

    def start(self) -> ServiceResult:
        try:
            self.runtime.call(self.controller.start)
        except ControllerError as e:
            return self._controller_error(e)
        except Exception as e:
            return self._handle_error(e, "start")
        latest = self.runtime.feed.latest()
        return self._success_result(data=self._status_data(), message=latest["message"] if latest else None)

    def stop(self) -> ServiceResult:
        try:
            self.runtime.call(self.controller.stop)
            return self._success_result(data=self._status_data(), message=self._t("playback_stopped"))
        except Exception as e:
            return self._handle_error(e, "stop")

    def play_index(self, index: int) -> ServiceResult:
        try:
            size = self.runtime.call(lambda: len(self.controller.catalog))
            if size == 0:
                return self._controller_error(EmptyCatalogError())
            if not 0 <= index < size:
                return self._error_result(self._t("invalid_index"), error_code="invalid_index")
            self.runtime.call(self.controller.play_index, index)
            latest = self.runtime.feed.latest()
            return self._success_result(data=self._status_data(), message=latest["message"] if latest else None)
        except ControllerError as e:
            return self._controller_error(e)
        except Exception as e:
            return self._handle_error(e, "play_index")

    def play_next(self) -> ServiceResult:
        try:
            self.runtime.call(self.controller.play_next)
        except ControllerError as e:
            return self._controller_error(e)
        except Exception as e:
            return self._handle_error(e, "play_next")
        latest = self.runtime.feed.latest()
        return self._success_result(data=self._status_data(), message=latest["message"] if latest else None)

    def set_interval(self, value: Any) -> ServiceResult:
        """Validate and apply a new interval; it takes effect at the next countdown."""
        result = InputValidator.validate_interval(value)
        if not result.is_valid:
            return self._error_result(result.error, error_code="interval_minutes")
        try:
            minutes = self.runtime.call(self.controller.set_interval, result.value)
            if not set_config_value("interval_minutes", minutes):
                self.logger.warning("Interval %s applied but could not be persisted", minutes)
            return self._success_result(
                data={"interval_minutes": minutes},
                message=self._t("interval_updated", minutes=minutes),
            )
        except Exception as e:
            return self._handle_error(e, "set_interval")

    def health_check(self) -> ServiceResult:
        base = super().health_check()
        if not base.success:
            return base
        return self._success_result(data={
            "status": "healthy" if self.runtime.started else "degraded",
            "service": self.name,
            "scheduler_running": self.runtime.started,
            "phase": self.runtime.call(lambda: self.controller.phase.value),
        })
