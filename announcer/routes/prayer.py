"""
🕌 Prayer Times Routes Blueprint
"""

from flask import Blueprint

from ..services.service_manager import get_service
from ..utils.rate_limiting import rate_limit
from .helpers import api_error_handler, json_body, service_response

prayer_bp = Blueprint("prayer", __name__, url_prefix="/api/prayer-times")


@prayer_bp.route("", methods=["GET"])
@rate_limit("status_check")
@api_error_handler
def get_prayer_times():
    return service_response(get_service("prayer").get_prayer_times())


@prayer_bp.route("", methods=["PUT", "POST"])
@rate_limit("config_changes")
@api_error_handler
def update_prayer_times():
    """Body: ``{"times": {"fajr": "04:35", ...}}`` and/or ``{"latitude": .., "longitude": ..}``."""
    return service_response(get_service("prayer").update(json_body()))


@prayer_bp.route("/refresh", methods=["POST"])
@rate_limit("config_changes")
@api_error_handler
def refresh_prayer_times():
    return service_response(get_service("prayer").refresh(force=True))
