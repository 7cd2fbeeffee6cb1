"""
Substitution model — one user's delegation to a substitute.

A row says "while ``user`` is unavailable, ``substitute`` acts on their
behalf", limited to the window (substitution_start, substitution_end) and
only when ``enabled``.

The computed transitive substitute is stored as two columns:

    transitive_state   transitive_user
    ----------------   ---------------
    NULL               NULL             not computed yet
    not_applicable     NULL             direct substitute is final
    undefined          NULL             a cycle prevents resolution
    resolved           <user>           final delegate down the chain
"""

from datetime import datetime, timezone

from delegation.models import db
from delegation.models.base import TenantModel

# Only resolved carries a user.
TRANSITIVE_COLUMNS_CHECK = (
    "(transitive_state IS NULL AND transitive_user IS NULL) "
    "OR (transitive_state IN ('not_applicable', 'undefined') AND transitive_user IS NULL) "
    "OR (transitive_state = 'resolved' AND transitive_user IS NOT NULL)"
)
USERS_NOT_EMPTY_CHECK = "\"user\" <> '' AND substitute <> ''"


class Substitution(TenantModel):
    __tablename__ = "substitutes"

    id = db.Column(db.Integer, primary_key=True)
    user = db.Column(db.String(255), nullable=False)
    substitute = db.Column(db.String(255), nullable=False)
    transitive_state = db.Column(db.String(20))  # NULL, not_applicable, undefined, resolved
    transitive_user = db.Column(db.String(255))
    substitution_start = db.Column(db.DateTime, nullable=False)
    substitution_end = db.Column(db.DateTime, nullable=False)
    enabled = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "user", name="uq_substitutes_tenant_user"),
        db.Index("ix_substitutes_tenant_substitute", "tenant_id", "substitute"),
        db.CheckConstraint(TRANSITIVE_COLUMNS_CHECK, name="ck_substitutes_transitive_state"),
        db.CheckConstraint(USERS_NOT_EMPTY_CHECK, name="ck_substitutes_users_not_empty"),
    )

    tenant = db.relationship("Tenant", back_populates="substitutions")

    def to_dict(self):
        transitive = None
        if self.transitive_state is not None:
            transitive = {"state": self.transitive_state, "user": self.transitive_user}
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "user": self.user,
            "substitute": self.substitute,
            "transitive_sub": transitive,
            "substitution_start": self.substitution_start.isoformat() if self.substitution_start else None,
            "substitution_end": self.substitution_end.isoformat() if self.substitution_end else None,
            "enabled": self.enabled,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Substitution {self.user} -> {self.substitute}>"
