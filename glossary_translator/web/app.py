"""Flask application configuration and blueprint registration."""

from __future__ import annotations

from datetime import datetime

from flask import Flask, jsonify, render_template, request

from glossary_translator import config
from glossary_translator import language_codes as lc
from glossary_translator.logger import get_logger

from .routes.translation import translation_bp
from .routes.settings import settings_bp

logger = get_logger(__name__)


def build_app() -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__, template_folder="templates")

    # Ensure JSON responses keep Unicode data.
    app.json.ensure_ascii = False

    register_blueprints(app)
    register_default_routes(app)

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(translation_bp, url_prefix="/api")
    app.register_blueprint(settings_bp, url_prefix="/api/settings")


def register_default_routes(app: Flask) -> None:
    """Register default health and index routes."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok"})

    @app.get("/")
    def home():
        session = config.load_config(apply_env=False)["session"]
        return render_template(
            "index.html",
            title="Translator",
            current_year=datetime.now().year,
            source_lang=session.get("source_lang", ""),
            target_lang=session.get("target_lang", ""),
            back_translate=session.get("back_translate", True),
            source_languages=lc.get_source_languages(),
            target_languages=lc.get_target_languages(),
        )

    # API callers get JSON errors, browsers the default pages
    @app.errorhandler(404)
    def page_not_found(e):
        if request.path.startswith("/api/"):
            return jsonify({"error": "Not found", "code": "not_found"}), 404
        return e

    @app.errorhandler(500)
    def internal_error(e):
        """Handle 500 errors with a JSON body."""
        logger.exception("Internal server error: %s", e)
        return jsonify({"error": "Unexpected server error", "code": "internal_error"}), 500
