"""
Rate limiting configuration.

Applies per-blueprint limits using Flask-Limiter. The Limiter instance is
created in delegation/__init__.py with no default limits.

Usage:
    from delegation.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)


def _get_tenant_rate_limit_key():
    """Dynamic rate limit key: tenant_id if available, else remote IP."""
    tenant_id = getattr(g, "tenant_id", None)
    if tenant_id:
        return f"tenant:{tenant_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits:
        - Substitution endpoints: SUBSTITUTION_RATE_LIMIT per tenant
          (batch resolution reloads the whole tenant)

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    limit = app.config.get("SUBSTITUTION_RATE_LIMIT", "30/minute")
    bp = app.blueprints.get("substitution")
    if bp:
        limiter.limit(limit, key_func=_get_tenant_rate_limit_key)(bp)

    app.logger.info("Rate limiter configured — substitutions: %s per tenant", limit)
