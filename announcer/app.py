#!/usr/bin/env python3
"""
🕌 Announcer - Flask application factory
JSON control API for the prayer-aware announcement scheduler.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

from flask import Flask, Response, g, request
from flask_compress import Compress

from .config import load_config
from .routes import announcements_bp, health_bp, playback_bp, prayer_bp
from .routes.errors import register_error_handlers
from .runtime import AnnouncerRuntime
from .services.service_manager import ServiceManager, set_service_manager
from .utils.logger import setup_logger, setup_logging
from .utils.rate_limiting import add_rate_limit_headers
from .version import get_app_info

compress = Compress()


def _int_env(name: str, default: int, minimum: int) -> int:
    try:
        return max(minimum, int(os.getenv(name, str(default))))
    except ValueError:
        return default


def create_app(
    config: Optional[Dict[str, Any]] = None,
    runtime: Optional[AnnouncerRuntime] = None,
    start_runtime: bool = False,
) -> Flask:
    """Build the Flask app around a scheduler runtime.

    Args:
        config: Loaded configuration; read from disk when omitted
        runtime: Pre-built runtime (tests inject fakes here)
        start_runtime: Start the event loop and load catalog/prayer times
    """
    setup_logging()
    logger = setup_logger("announcer")

    config = config if config is not None else load_config()
    runtime = runtime or AnnouncerRuntime(config)

    app = Flask(__name__)
    app.config['JSON_SORT_KEYS'] = False
    app.config['COMPRESS_LEVEL'] = _int_env('ANNOUNCER_COMPRESS_LEVEL', 6, 1)
    app.config['COMPRESS_MIN_SIZE'] = _int_env('ANNOUNCER_COMPRESS_MIN_BYTES', 1024, 256)
    # Multipart overhead on top of the clip size cap
    app.config['MAX_CONTENT_LENGTH'] = int(config.get("max_upload_mb", 50)) * 1024 * 1024 + 1024 * 1024
    compress.init_app(app)

    manager = ServiceManager(runtime)
    set_service_manager(manager)
    app.extensions["announcer.services"] = manager

    app.register_blueprint(announcements_bp)
    app.register_blueprint(playback_bp)
    app.register_blueprint(prayer_bp)
    app.register_blueprint(health_bp)
    register_error_handlers(app)

    @app.before_request
    def _before_request():
        g.request_started = time.perf_counter()

    @app.after_request
    def _after_request(response: Response):
        if request.path.startswith("/api/"):
            response.headers['Access-Control-Allow-Origin'] = '*'
            response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
            response.headers['Access-Control-Allow-Methods'] = 'GET,PUT,POST,DELETE,OPTIONS'
        started = getattr(g, "request_started", None)
        if started is not None:
            elapsed_ms = (time.perf_counter() - started) * 1000
            if elapsed_ms > 1000:
                logger.warning("Slow request %s %s took %.0fms", request.method, request.path, elapsed_ms)
        return add_rate_limit_headers(response)

    if start_runtime:
        runtime.start()
        manager.bootstrap()

    logger.info(f"🕌 {get_app_info()} ready (language={runtime.language})")
    return app


__all__ = ["create_app", "compress"]
