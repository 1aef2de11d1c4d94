"""
🩺 Health & Status Routes Blueprint
"""

import logging

from flask import Blueprint

from ..services.service_manager import get_service_manager
from ..utils.rate_limiting import get_rate_limiter, rate_limit
from ..version import get_version
from .helpers import api_error_handler, api_response, service_response

health_bp = Blueprint("health", __name__)
logger = logging.getLogger(__name__)


@health_bp.route("/healthz", methods=["GET"])
def healthz():
    """Liveness probe: the process answers and the scheduler runtime is up."""
    runtime = get_service_manager().runtime
    return api_response(
        True,
        data={
            "status": "ok",
            "version": get_version(),
            "scheduler_running": runtime.started,
        },
    )


@health_bp.route("/api/services/health", methods=["GET"])
@rate_limit("status_check")
@api_error_handler
def services_health():
    result = get_service_manager().health_check_all()
    if result.success and isinstance(result.data, dict):
        result.data["rate_limiter"] = get_rate_limiter().get_stats()
    return service_response(result)
