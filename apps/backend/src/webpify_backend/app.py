"""Flask application factory for the WebP backend."""

from __future__ import annotations

import logging
import sys

from flask import Flask
from flask_cors import CORS

from .config import Config
from .routes import conversions_bp, estimates_bp
from .services import BatchService

logger = logging.getLogger(__name__)


def create_app(config: Config | None = None) -> Flask:
    """Create and configure the Flask application."""
    if config is None:
        config = Config.load()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length
    app.config["batch_service"] = BatchService(config)
    app.config["archive_name"] = config.archive_name
    app.config["default_target_size"] = config.default_target_size

    app.register_blueprint(estimates_bp)
    app.register_blueprint(conversions_bp)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    logger.info("WebP backend initialized")
    return app


def main() -> None:
    """Entry point for running the development server."""
    config = Config.load()
    app = create_app(config)
    app.run(host=config.host, port=config.port, debug=True, use_reloader=False)


if __name__ == "__main__":
    main()
