"""
Reentry Pathway
Flask Application Factory.

Usage:
    from pathway import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from pathway.config import config
from pathway.middleware.logging_config import configure_logging
from pathway.middleware.rate_limiter import init_rate_limits
from pathway.middleware.timing import init_request_timing
from pathway.models import db
from pathway.services.clock import SystemClock
from pathway.services.document_store import DocumentStore
from pathway.services.due_dates import CadenceSettings
from pathway.services.guidance_service import GuidanceTaskDispatcher
from pathway.services.notification import NotificationDispatcher
from pathway.services.participant_service import ParticipantService
from pathway.services.scheduler_service import SchedulerService

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def init_services(app, *, store=None, clock=None, transport=None):
    """Build the engine's collaborators and keep them in ``app.extensions``."""
    store = store or DocumentStore()
    clock = clock or SystemClock()
    retry_limit = app.config["WRITE_RETRY_LIMIT"]

    notifier = NotificationDispatcher(
        transport=transport,
        leaders_recipient=app.config["NOTIFY_LEADERS_RECIPIENT"],
    )
    guidance = GuidanceTaskDispatcher(store, clock, notifier, retry_limit=retry_limit)
    service = ParticipantService(
        store, clock, guidance, notifier,
        cadence=CadenceSettings.from_config(app.config),
        retry_limit=retry_limit,
        escalation_attempts=app.config["ESCALATION_ATTEMPTS"],
        escalation_window_days=app.config["ESCALATION_WINDOW_DAYS"],
    )
    app.extensions["document_store"] = store
    app.extensions["notification_dispatcher"] = notifier
    app.extensions["guidance_dispatcher"] = guidance
    app.extensions["participant_service"] = service
    return service


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to APP_ENV, or "development" if unset.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

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

    init_request_timing(app)

    # ── Tables (CREATE IF NOT EXISTS) ────────────────────────────────────
    from pathway.models import document as _document_models  # noqa: F401

    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
        os.makedirs(app.instance_path, exist_ok=True)

    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Engine ───────────────────────────────────────────────────────────
    init_services(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from pathway.blueprints.guidance_bp import guidance_bp
    from pathway.blueprints.health_bp import health_bp
    from pathway.blueprints.participant_bp import participant_bp

    app.register_blueprint(participant_bp)
    app.register_blueprint(guidance_bp)
    app.register_blueprint(health_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    # ── Scheduler (importing the sweep registers its job) ────────────────
    import pathway.services.due_date_sweep  # noqa: F401

    SchedulerService.init_app(app)
    if app.config.get("SCHEDULER_ENABLED"):
        SchedulerService.start(app.config["DUE_DATE_SWEEP_INTERVAL_MINUTES"] * 60)

    return app
