"""
Substitution Blueprint — transitive substitute resolution API.

The availability/workflow subsystem calls these endpoints; the tenant comes
from the X-Tenant-ID header (see middleware/tenant_context.py).

Endpoints:
    GET  /api/v1/substitutions                 — records + stored transitive substitutes
    POST /api/v1/substitutions/resolve         — batch resolution  {"forced": bool}
    POST /api/v1/substitutions/<user>/resolve  — incremental resolution of one record
    GET  /api/v1/substitutions/impact/<user>   — does user's availability affect any chain?
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request

from delegation.core.exceptions import NotFoundError, ValidationError
from delegation.services import transitivity
from delegation.services.substitution_repository import SubstitutionRepository
from delegation.utils.errors import E, api_error

logger = logging.getLogger(__name__)

substitution_bp = Blueprint("substitution", __name__, url_prefix="/api/v1/substitutions")


@substitution_bp.errorhandler(NotFoundError)
def _not_found(exc):
    logger.info("%s", exc, extra={"tenant_id": exc.tenant_id})
    return api_error(E.NOT_FOUND, f"{exc.resource} not found")


@substitution_bp.errorhandler(ValidationError)
def _invalid(exc):
    return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)


@substitution_bp.errorhandler(TimeoutError)
def _busy(exc):
    return api_error(E.CONFLICT_BUSY, "A resolution is already running for this tenant")


def _forced_flag(data) -> bool:
    if "forced" not in data:
        return current_app.config.get("SUBSTITUTION_FORCED_RESOLVE", False)
    forced = data["forced"]
    if not isinstance(forced, bool):
        raise ValidationError("forced must be a boolean", details={"forced": repr(forced)})
    return forced


def _unresolvable(user=None):
    message = "Unresolvable substitution chain; nothing was persisted"
    details = {"user": user} if user else None
    return api_error(E.CONFLICT_STATE, message, details=details)


# ═══════════════════════════════════════════════════════════════
# Read
# ═══════════════════════════════════════════════════════════════

@substitution_bp.route("", methods=["GET"])
def list_substitutions():
    """List the tenant's substitutions with their stored transitive substitute."""
    rows = SubstitutionRepository().list_for_tenant(g.tenant_id)
    return jsonify([row.to_dict() for row in rows]), 200


@substitution_bp.route("/impact/<user>", methods=["GET"])
def check_impact(user):
    """Tell whether a change of ``user``'s availability requires resolution."""
    required = transitivity.is_resolving_required(g.tenant_id, user)
    return jsonify({"user": user, "resolving_required": required}), 200


# ═══════════════════════════════════════════════════════════════
# Resolution
# ═══════════════════════════════════════════════════════════════

@substitution_bp.route("/resolve", methods=["POST"])
def resolve_all():
    """Recalculate every transitive substitute of the tenant."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    forced = _forced_flag(data)
    ok = transitivity.resolve_tenant(
        g.tenant_id, forced,
        lock_timeout=current_app.config.get("SUBSTITUTION_LOCK_TIMEOUT", -1),
    )
    if not ok:
        return _unresolvable()
    return jsonify({"resolved": True, "forced": forced}), 200


@substitution_bp.route("/<user>/resolve", methods=["POST"])
def resolve_one(user):
    """Refresh the transitive substitute of a single user's record."""
    ok = transitivity.resolve_user(
        g.tenant_id, user,
        lock_timeout=current_app.config.get("SUBSTITUTION_LOCK_TIMEOUT", -1),
    )
    if not ok:
        return _unresolvable(user)
    row = SubstitutionRepository().load_substitution(user, g.tenant_id)
    return jsonify({"resolved": True, "substitution": row.to_dict()}), 200
