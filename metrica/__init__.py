"""
MétricaAgro Workflow Service
Flask Application Factory.

Usage:
    from metrica import create_app
    app = create_app()           # defaults to APP_ENV, else "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from metrica.auth import init_auth
from metrica.config import config
from metrica.core.exceptions import ConflictError, NotFoundError, ValidationError
from metrica.middleware.logging_config import configure_logging
from metrica.middleware.rate_limiter import init_rate_limits
from metrica.middleware.timing import init_request_timing
from metrica.models import db
from metrica.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # limits are applied per blueprint
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def _register_error_handlers(app):
    @app.errorhandler(NotFoundError)
    def _not_found_error(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(ValidationError)
    def _validation_error(error: ValidationError):
        return api_error(E.BUSINESS_RULE, str(error), details=error.details)

    @app.errorhandler(ConflictError)
    def _conflict_error(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @app.errorhandler(SQLAlchemyError)
    def _database_error(error: SQLAlchemyError):
        db.session.rollback()
        logger.exception("Database error on %s %s", request.method, request.path)
        return api_error(E.DATABASE, "Database error")

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

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

    # ── Authentication & request timing ──────────────────────────────────
    init_auth(app)
    init_request_timing(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from metrica.models import audit as _audit_models        # noqa: F401
    from metrica.models import catalog as _catalog_models    # noqa: F401
    from metrica.models import finance as _finance_models    # noqa: F401
    from metrica.models import workflow as _workflow_models  # noqa: F401

    if config_name == "development":
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from metrica.blueprints.dashboard_bp import dashboard_bp
    from metrica.blueprints.finance_bp import finance_bp
    from metrica.blueprints.health_bp import health_bp
    from metrica.blueprints.records_bp import records_bp
    from metrica.blueprints.workflow_bp import workflow_bp

    app.register_blueprint(workflow_bp)
    app.register_blueprint(records_bp)
    app.register_blueprint(finance_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-catalog")
    def seed_catalog_cmd():
        """Seed shared registries and budget item templates."""
        from metrica.services.catalog_seed import seed_catalog
        count = seed_catalog()
        logger.info("Seeded %s catalog records.", count)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
