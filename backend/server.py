"""
Flask application entry point for the WOTS detail service.

Registers the detail admin routes and starts the hourly reminder scheduler.
"""

import logging

from flask import Flask

from wots.config import config
from wots.api.details import bp as details_bp
from wots.scheduler import start_scheduler


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_app(start_jobs: bool = False):
    """Create and configure Flask app."""
    app = Flask(__name__)

    # Load config
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["DEBUG"] = config.DEBUG

    app.register_blueprint(details_bp)  # /api/v1/details/*

    # Health check endpoint
    @app.route("/health")
    def health():
        return {
            "status": "ok",
            "firestore_enabled": config.ENABLE_FIRESTORE,
            "push_enabled": config.ENABLE_PUSH,
            "scheduler_enabled": config.ENABLE_SCHEDULER,
        }

    if start_jobs:
        start_scheduler()

    return app


if __name__ == "__main__":
    configure_logging()
    app = create_app(start_jobs=True)
    logger = logging.getLogger("wots")
    logger.info("Starting server on port 5001...")
    logger.info("Firestore enabled: %s", config.ENABLE_FIRESTORE)
    logger.info("Scheduler enabled: %s", config.ENABLE_SCHEDULER)
    logger.info("Routes:")
    logger.info("  - /api/v1/details/* (Detail admin)")
    logger.info("  - /health (Health check)")
    # Reloader would start a second scheduler process
    app.run(debug=config.DEBUG, port=5001, use_reloader=False)
