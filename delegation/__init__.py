"""
Workflow Delegation Service
Flask Application Factory.

Usage:
    from delegation import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from delegation.config import config
from delegation.models import db
from delegation.middleware.logging_config import configure_logging
from delegation.middleware.rate_limiter import init_rate_limits
from delegation.middleware.tenant_context import init_tenant_context
from delegation.middleware.timing import init_request_timing

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit — apply per-blueprint
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

    # ── Request middleware ───────────────────────────────────────────────
    init_request_timing(app)
    init_tenant_context(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from delegation.models import tenant as _tenant_models              # noqa: F401
    from delegation.models import substitution as _substitution_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS; migrations remain authoritative) ──
    if not app.config.get("TESTING"):
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            try:
                db.create_all()
                app.logger.info("db.create_all() completed successfully")
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from delegation.blueprints.substitution_bp import substitution_bp

    app.register_blueprint(substitution_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("resolve-substitutes")
    @click.option("--tenant", "tenant_slug", required=True, help="Tenant slug or id.")
    @click.option("--forced", is_flag=True, default=False,
                  help="Persist undefined results instead of aborting on a cycle.")
    def resolve_substitutes_cmd(tenant_slug, forced):
        """Recalculate all transitive substitutes of a tenant."""
        from delegation.middleware.tenant_context import resolve_tenant
        from delegation.services.transitivity import resolve_tenant as run_resolution

        tenant = resolve_tenant(tenant_slug)
        if tenant is None:
            raise click.ClickException(f"Unknown tenant {tenant_slug!r}")
        if not run_resolution(tenant.id, forced):
            raise click.ClickException(
                "Unresolvable substitution chain found; nothing was persisted "
                "(use --forced to store undefined results)"
            )
        click.echo(f"Transitive substitutes resolved for tenant {tenant.slug}.")

    # ── Health check ─────────────────────────────────────────────────────
    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "Workflow Delegation Service"}

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        from flask import request
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
        return {"error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
