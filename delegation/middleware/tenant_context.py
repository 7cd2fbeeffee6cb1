"""
Tenant Context Middleware — identifies the tenant of a substitution request.

For requests under TENANT_PREFIXES:
  1. Reads the X-Tenant-ID header (numeric id or slug)
  2. Verifies the tenant exists and is active
  3. Sets g.tenant / g.tenant_id for the route handler

Every substitution query downstream filters by g.tenant_id.
"""

import logging

from flask import g, request
from sqlalchemy import select

from delegation.models import db
from delegation.models.tenant import Tenant
from delegation.utils.errors import E, api_error

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"

# Paths that require a tenant
TENANT_PREFIXES = (
    "/api/v1/substitutions",
)


def resolve_tenant(identifier: str) -> Tenant | None:
    """Look up a tenant by numeric id or slug."""
    identifier = identifier.strip()
    if identifier.isdigit():
        return db.session.get(Tenant, int(identifier))
    return db.session.execute(
        select(Tenant).where(Tenant.slug == identifier)
    ).scalar_one_or_none()


def init_tenant_context(app):
    """Register tenant context middleware as a before_request hook."""

    @app.before_request
    def _tenant_context():
        g.tenant = None
        g.tenant_id = None

        if not request.path.startswith(TENANT_PREFIXES):
            return None

        identifier = request.headers.get(TENANT_HEADER, "")
        if not identifier.strip():
            return api_error(E.TENANT_REQUIRED, f"{TENANT_HEADER} header is required")

        tenant = resolve_tenant(identifier)
        if tenant is None:
            logger.warning("Unknown tenant %r", identifier)
            return api_error(E.NOT_FOUND, "Tenant not found")

        if not tenant.is_active:
            logger.warning("Tenant %s is deactivated", tenant.slug, extra={"tenant_id": tenant.id})
            return api_error(E.TENANT_INACTIVE, "Tenant account is deactivated")

        g.tenant = tenant
        g.tenant_id = tenant.id
        return None

    logger.debug("Tenant context middleware installed")
