#!/usr/bin/env python3
"""
Announcer Runner - Starts the control API and the announcement scheduler
"""

import os
import signal
import sys

from announcer.app import create_app
from announcer.config import load_config
from announcer.services.service_manager import get_service_manager
from announcer.utils.logger import log_shutdown, log_startup, setup_logger
from waitress import serve


def main() -> int:
    logger = setup_logger("runner")
    log_startup("runner")
    config = load_config()

    port = int(os.environ.get("PORT", 5000 if config.get("environment") == "production" else 5001))
    debug_mode = config.get("debug", False)
    host = config.get("host", "0.0.0.0")

    logger.info(f"🚀 Starting Announcer on {host}:{port}")
    logger.info(f"🌍 Environment: {config.get('environment', 'unknown')}")
    logger.info(f"🔧 Debug mode: {debug_mode}")

    app = create_app(config, start_runtime=True)
    manager = get_service_manager()

    def _shutdown(signum, _frame):
        logger.info("Received signal %s", signum)
        manager.shutdown()
        log_shutdown(logger, "Announcer")
        sys.exit(0)

    signal.signal(signal.SIGTERM, _shutdown)

    try:
        if debug_mode:
            # Reloader would start a second scheduler
            app.run(host=host, port=port, debug=True, use_reloader=False)
        else:
            threads = int(os.environ.get("ANNOUNCER_WAITRESS_THREADS", "4"))
            logger.info(f"🍽️ Using Waitress WSGI server (threads={threads})")
            serve(app, host=host, port=port, threads=threads)
    except KeyboardInterrupt:
        pass
    finally:
        manager.shutdown()
        log_shutdown(logger, "Announcer")
    return 0


if __name__ == "__main__":
    sys.exit(main())
