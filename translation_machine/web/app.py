"""Flask application configuration and blueprint registration."""

from __future__ import annotations

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from translation_machine.ai.exceptions import (
    ConfigurationError,
    EmptyDocumentError,
    JobStateError,
    RemoteError,
    SlotAlreadySetError,
    TranslationError,
)
from translation_machine.logger import get_logger

from .routes.jobs import jobs_bp
from .routes.checkpoints import checkpoints_bp
from .routes.settings import settings_bp

logger = get_logger(__name__)


def error_status(error: TranslationError) -> int:
    """HTTP status for a domain error."""
    if isinstance(error, (JobStateError, SlotAlreadySetError)):
        return 409
    if isinstance(error, (ConfigurationError, EmptyDocumentError)):
        return 400
    if isinstance(error, RemoteError):
        return 502
    return 500


def build_app() -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Ensure JSON responses keep Unicode data.
    app.json.ensure_ascii = False

    register_blueprints(app)
    register_default_routes(app)

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(jobs_bp, url_prefix="/api/jobs")
    app.register_blueprint(checkpoints_bp, url_prefix="/api/checkpoints")
    app.register_blueprint(settings_bp, url_prefix="/api/settings")


def register_default_routes(app: Flask) -> None:
    """Register the health route and JSON error handlers."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok"})

    @app.errorhandler(TranslationError)
    def translation_error(e: TranslationError):
        status = error_status(e)
        logger.warning(f"Request failed with {type(e).__name__} ({status}): {e}")
        payload = {"error": e.message, "code": e.code or "translation_error"}
        if e.details:
            payload["details"] = e.details
        return jsonify(payload), status

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify({"error": e.description, "code": e.name.lower().replace(" ", "_")}), e.code

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Internal server error: %s", e)
        return jsonify({"error": "An unexpected error occurred", "code": "internal_error"}), 500
