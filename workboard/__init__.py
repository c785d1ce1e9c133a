"""
Workboard — project workflow board service.
Flask Application Factory.

Usage:
    from workboard import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_migrate import Migrate

from workboard.config import config
from workboard.models import db
from workboard.middleware.logging_config import configure_logging
from workboard.middleware.timing import init_request_timing
from workboard.middleware.jwt_auth import init_jwt_middleware
from workboard.middleware.rate_limiter import init_rate_limits, rate_limit_key
from workboard.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[],                     # no global limit; applied per blueprint
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    # ProductionConfig validates required env vars on instantiation
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── JWT auth middleware (resolves g.jwt_user_id / g.jwt_role) ────────
    init_jwt_middleware(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    app.config.setdefault("MAX_CONTENT_LENGTH", 1024 * 1024)  # 1 MB

    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from workboard.models import auth as _auth_models           # noqa: F401
    from workboard.models import project as _project_models     # noqa: F401
    from workboard.models import workflow as _workflow_models   # noqa: F401
    from workboard.models import activity as _activity_models   # noqa: F401

    # ── Blueprints ───────────────────────────────────────────────────────
    from workboard.blueprints import IdConverter
    from workboard.blueprints.stages_bp import stages_bp
    from workboard.blueprints.items_bp import items_bp
    from workboard.blueprints.comments_bp import comments_bp
    from workboard.blueprints.health_bp import health_bp

    # Path ids are bounded before any rule is added
    app.url_map.converters["int"] = IdConverter
    app.register_blueprint(stages_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(comments_bp)
    app.register_blueprint(health_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    register_error_handlers(app)

    # ── Local tables (development convenience; migrations elsewhere) ─────
    if app.config.get("AUTO_CREATE_TABLES"):
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            db.create_all()
            app.logger.info("db.create_all() completed successfully")

    # ── CLI commands ─────────────────────────────────────────────────────
    from workboard.cli import register_cli
    register_cli(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
