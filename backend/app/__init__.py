"""Application factory for the TradeKeep content orchestrator backend."""
from __future__ import annotations

import time

from flask import Flask
from sqlalchemy.exc import OperationalError

from .config import Config
from .errors import register_error_handlers
from .extensions import cors, db, limiter

API_PREFIX = "/api/v1"


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application instance."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    # Per-platform results are keyed in request order.
    app.json.sort_keys = False

    db.init_app(app)

    allowed_origins = [
        origin.strip()
        for origin in (app.config.get("CORS_ALLOWED_ORIGINS") or "").split(",")
        if origin.strip()
    ]
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": allowed_origins}},
        allow_headers=["Content-Type", "Authorization"],
    )

    limiter.init_app(app)
    register_error_handlers(app)

    from .publishing import adapters

    adapters.init_app(app)

    from .api.activities import bp as activities_bp
    from .api.auth import bp as auth_bp
    from .api.content import bp as content_bp
    from .api.health import bp as health_bp
    from .api.notifications import bp as notifications_bp
    from .api.social import bp as social_bp
    from .api.workflows import bp as workflows_bp

    for blueprint in (
        health_bp,
        auth_bp,
        workflows_bp,
        content_bp,
        social_bp,
        notifications_bp,
        activities_bp,
    ):
        app.register_blueprint(blueprint, url_prefix=API_PREFIX)

    with app.app_context():
        # Import models to ensure they are registered with SQLAlchemy before creating tables.
        from .models import activity, auth, content, publishing, workflow  # noqa: F401

        _initialize_database(app)

    if app.config.get("ENABLE_SCHEDULER", True):
        from .publishing.scheduler import ensure_scheduler_started

        ensure_scheduler_started(app)

    return app


def _initialize_database(app: Flask) -> None:
    """Initialize the database with retry logic to handle delayed availability."""

    max_retries = int(app.config.get("DB_INIT_MAX_RETRIES", 30))
    retry_delay = float(app.config.get("DB_INIT_RETRY_DELAY", 2))

    for attempt in range(1, max_retries + 1):
        try:
            db.create_all()
            return
        except OperationalError as exc:
            if attempt >= max_retries:
                app.logger.exception("Database initialization failed after %s attempts.", attempt)
                raise

            app.logger.warning(
                "Database initialization attempt %s/%s failed: %s", attempt, max_retries, exc
            )
            time.sleep(retry_delay)
