"""
Project Pulse
Flask Application Factory for the REST backend.

Usage:
    from pulse import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from pulse.config import config
from pulse.middleware.logging_config import configure_logging
from pulse.middleware.rate_limiter import init_rate_limits
from pulse.middleware.timing import init_request_timing
from pulse.models import db

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import engine as _sa_engine, event as _sa_event  # noqa: E402


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
    default_limits=[],                     # no global limit - apply per-blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
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
    cfg = config[config_name]
    app.config.from_object(cfg() if config_name == "production" else cfg)

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

    # ── Import all models so Alembic can detect them ─────────────────────
    from pulse.models import audit as _audit_models          # noqa: F401
    from pulse.models import leave as _leave_models          # noqa: F401
    from pulse.models import member as _member_models        # noqa: F401
    from pulse.models import project as _project_models      # noqa: F401
    from pulse.models import settings as _settings_models    # noqa: F401
    from pulse.models import task as _task_models            # noqa: F401
    from pulse.models import todo as _todo_models            # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if config_name != "testing":
        if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///"):
            os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            try:
                db.create_all()
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from pulse.blueprints.audit_bp import audit_bp
    from pulse.blueprints.auth_bp import auth_bp
    from pulse.blueprints.member_bp import member_bp
    from pulse.blueprints.project_bp import project_bp
    from pulse.blueprints.schedule_bp import schedule_bp
    from pulse.blueprints.settings_bp import settings_bp
    from pulse.blueprints.task_bp import task_bp

    app.register_blueprint(project_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(schedule_bp)
    app.register_blueprint(member_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(settings_bp)

    init_rate_limits(app, limiter)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Create a demo team, an MD login (admin/admin) and default settings."""
        from pulse.models.member import Team, User
        from pulse.models.settings import SystemConfiguration

        if User.query.filter_by(name="admin").first():
            print("Demo data already present.")
            return
        team = Team(name="Core", description="Demo team")
        db.session.add(team)
        db.session.flush()
        admin = User(name="admin", role="MD", title="Managing Director", team_id=team.id)
        admin.set_password("admin")
        db.session.add(admin)
        SystemConfiguration.current()
        db.session.commit()
        print(f"Seeded team {team.id} and user {admin.id} (admin/admin).")

    # ── Health / error handlers ──────────────────────────────────────────
    @app.route("/api/health")
    def health():
        return {"status": "ok", "app": "Project Pulse"}

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests"}, 429

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Unhandled server error")
        db.session.rollback()
        return {"error": "Internal server error"}, 500

    return app
