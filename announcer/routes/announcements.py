"""
📢 Announcement Routes Blueprint
Upload, list and delete announcement clips.
"""

import logging

from flask import Blueprint, request

from ..services.service_manager import get_service
from ..utils.rate_limiting import rate_limit
from .helpers import api_error, api_error_handler, json_body, service_response

announcements_bp = Blueprint("announcements", __name__)
logger = logging.getLogger(__name__)


@announcements_bp.route("/api/upload", methods=["POST"])
@rate_limit("uploads")
@api_error_handler
def upload_announcement():
    """Multipart upload; the clip is sent in the ``audio`` field."""
    audio = request.files.get("audio")
    if audio is None or not audio.filename:
        return api_error("No audio file uploaded.", status=400, error_code="missing_file")

    data = audio.read()
    result = get_service("announcements").upload(data, audio.mimetype, audio.filename)
    return service_response(result)


@announcements_bp.route("/api/list", methods=["GET"])
@rate_limit("api_general")
@api_error_handler
def list_announcements():
    """Refresh from storage; ``?cached=1`` returns the in-memory catalog."""
    service = get_service("announcements")
    if request.args.get("cached") in ("1", "true", "yes"):
        return service_response(service.get_catalog())
    return service_response(service.load_announcements())


@announcements_bp.route("/api/announcements/refresh", methods=["POST"])
@rate_limit("config_changes")
@api_error_handler
def refresh_announcements():
    return service_response(get_service("announcements").load_announcements())


@announcements_bp.route("/api/delete", methods=["DELETE"])
@rate_limit("config_changes")
@api_error_handler
def delete_announcement():
    """Delete by ``url`` or ``pathname`` from the JSON body."""
    payload = json_body()
    target = payload.get("url") or payload.get("pathname")
    if not target:
        return api_error(
            "Missing required parameter: url or pathname is required for deletion",
            status=400,
            error_code="missing_target",
        )
    return service_response(get_service("announcements").delete(str(target)))


@announcements_bp.route("/api/announcements/<int:index>", methods=["DELETE"])
@rate_limit("config_changes")
@api_error_handler
def delete_announcement_at(index: int):
    return service_response(get_service("announcements").delete_at(index))
