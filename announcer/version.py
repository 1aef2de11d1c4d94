"""Announcer version information."""

VERSION = "1.0.0"

APP_NAME = "Announcer"


def get_version() -> str:
    return VERSION


def get_app_info() -> str:
    """Name and version for log banners, e.g. "Announcer v1.0.0"."""
    return f"{APP_NAME} v{VERSION}"
