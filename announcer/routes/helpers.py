"""
🛠️ Route Helpers
Shared utilities for all route blueprints.
"""

import datetime
import logging
import uuid
from functools import wraps
from typing import Any, Callable, Optional

from flask import Response, g, jsonify, request

from ..services import ServiceResult
from ..utils.translations import t_api

logger = logging.getLogger(__name__)

# Service error codes that are not plain 400s
ERROR_STATUS = {
    "invalid_index": 404,
    "not_found": 404,
    "empty_catalog": 409,
    "already_playing": 409,
    "countdown_active": 409,
    "file_too_large": 413,
    "config_error": 500,
    "save_failed": 500,
    "OPERATION_FAILED": 500,
    "auth_error": 502,
    "upload_failed": 502,
    "delete_failed": 502,
    "network_error": 503,
}


def _iso_timestamp_now() -> str:
    """Return ISO 8601 timestamp in UTC with a trailing Z."""
    now_utc = datetime.datetime.now(tz=datetime.timezone.utc)
    return now_utc.isoformat(timespec="microseconds").replace("+00:00", "Z")


def _request_id() -> str:
    req_id = getattr(g, "request_id", None)
    if not req_id:
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        g.request_id = req_id
    return req_id


def api_response(
    success: bool,
    *,
    data: Optional[Any] = None,
    message: str = "",
    status: int = 200,
    error_code: Optional[str] = None
) -> Response:
    """Create a standardized API response with consistent envelope."""
    req_id = _request_id()
    timestamp = _iso_timestamp_now()
    payload = {
        "success": success,
        "timestamp": timestamp,
        "request_id": req_id
    }
    if message:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    if error_code:
        payload["error_code"] = error_code
    resp = jsonify(payload)
    resp.status_code = status
    resp.headers['X-Request-ID'] = req_id
    resp.headers['X-Response-Timestamp'] = timestamp
    return resp


def api_error(
    message: str,
    *,
    status: int = 400,
    error_code: Optional[str] = None,
    data: Optional[Any] = None,
) -> Response:
    """Convenience wrapper for standardized error responses."""
    return api_response(
        False,
        data=data,
        message=message,
        status=status,
        error_code=error_code,
    )


def service_response(result: ServiceResult, *, success_status: int = 200) -> Response:
    """Map a ServiceResult onto the API envelope and an HTTP status."""
    if result.success:
        return api_response(True, data=result.data, message=result.message or "", status=success_status)
    status = ERROR_STATUS.get(result.error_code or "", 400)
    return api_error(result.message or "", status=status, error_code=result.error_code, data=result.data)


def api_error_handler(func: Callable) -> Callable:
    """Decorator for consistent API error handling.

    Catches exceptions and returns standardized error responses.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            logging.exception(f"Error in {func.__name__}")
            return api_error(
                t_api("an_internal_error_occurred", request),
                status=500,
                error_code="unhandled_exception",
            )
    return wrapper


def json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}
