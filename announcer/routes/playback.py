"""
🎵 Playback Routes Blueprint
Start, stop and inspect the announcement cycle.
"""

from flask import Blueprint, request

from ..services.service_manager import get_service
from ..utils.rate_limiting import rate_limit
from .helpers import api_error_handler, json_body, service_response

playback_bp = Blueprint("playback", __name__, url_prefix="/api/playback")


@playback_bp.route("/status", methods=["GET"])
@rate_limit("status_check")
@api_error_handler
def playback_status():
    return service_response(get_service("playback").get_status())


@playback_bp.route("/start", methods=["POST"])
@rate_limit("config_changes")
@api_error_handler
def start_playback():
    return service_response(get_service("playback").start())


@playback_bp.route("/stop", methods=["POST"])
@rate_limit("config_changes")
@api_error_handler
def stop_playback():
    return service_response(get_service("playback").stop())


@playback_bp.route("/play/<int:index>", methods=["POST"])
@rate_limit("config_changes")
@api_error_handler
def play_index(index: int):
    return service_response(get_service("playback").play_index(index))


@playback_bp.route("/next", methods=["POST"])
@rate_limit("config_changes")
@api_error_handler
def play_next():
    return service_response(get_service("playback").play_next())


@playback_bp.route("/interval", methods=["PUT", "POST"])
@rate_limit("config_changes")
@api_error_handler
def set_interval():
    payload = json_body()
    value = payload.get("interval_minutes", request.form.get("interval_minutes"))
    return service_response(get_service("playback").set_interval(value))
