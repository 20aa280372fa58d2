"""Flask application factory."""

import logging
import os
import time
from flask import Flask, g, request
from flask_cors import CORS

from services.dashboard_config import load_settings

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "config", "dashboard-config.json"
)


def register_request_logging(app):
    """Log one line per API request: method, path, status and duration."""

    @app.before_request
    def start_timer():
        g.request_started = time.monotonic()

    @app.after_request
    def log_request(response):
        if request.path.startswith("/api"):
            started = g.get("request_started", time.monotonic())
            duration_ms = int((time.monotonic() - started) * 1000)
            app.logger.info(
                f"{request.method} {request.path} {response.status_code} in {duration_ms}ms"
            )
        return response


def create_app(config_path=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.logger.setLevel(logging.INFO)

    settings = load_settings(config_path or DEFAULT_CONFIG_PATH)
    app.config["DASHBOARD_SETTINGS"] = settings

    # Enable CORS for frontend
    CORS(app, resources={
        r"/api/*": {
            "origins": list(settings.allowed_origins),
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": [
                "Content-Type",
                "X-Jira-Token", "X-Jira-Email", "X-Jira-Server"
            ]
        }
    })

    # Register blueprints
    from app.api import auth, projects, metrics, insights, debug
    app.register_blueprint(auth.bp)
    app.register_blueprint(projects.bp)
    app.register_blueprint(metrics.bp)
    app.register_blueprint(insights.bp)
    app.register_blueprint(debug.bp)

    register_request_logging(app)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app
