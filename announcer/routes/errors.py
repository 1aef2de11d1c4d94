"""
🚨 Error Handlers
Centralized HTTP error handling; every error is a JSON envelope.
"""

from __future__ import annotations

import logging

from flask import Flask, request

from ..utils.translations import t_api
from .helpers import api_error

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """Register shared error handlers on the Flask app."""

    @app.errorhandler(404)
    def not_found_error(_error):  # type: ignore[unused-argument]
        return api_error(
            t_api("page_not_found", request),
            status=404,
            error_code="not_found",
        )

    @app.errorhandler(405)
    def method_not_allowed(_error):  # type: ignore[unused-argument]
        return api_error(
            t_api("method_not_allowed", request),
            status=405,
            error_code="method_not_allowed",
        )

    @app.errorhandler(413)
    def request_too_large(_error):  # type: ignore[unused-argument]
        max_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        return api_error(
            t_api("file_too_large", request, max_mb=max_mb),
            status=413,
            error_code="file_too_large",
        )

    @app.errorhandler(500)
    def internal_error(_error):  # type: ignore[unused-argument]
        logger.error("Internal server error on %s", request.path)
        return api_error(
            t_api("an_internal_error_occurred", request),
            status=500,
            error_code="internal_error",
        )
