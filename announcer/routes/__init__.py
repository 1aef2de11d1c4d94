"""
Announcer Route Blueprints
Modular Flask blueprints for better code organization.
"""

from .announcements import announcements_bp
from .health import health_bp
from .playback import playback_bp
from .prayer import prayer_bp

__all__ = [
    "announcements_bp",
    "health_bp",
    "playback_bp",
    "prayer_bp",
]
