"""
Substitution Repository — durable storage for substitution records.

The four operations the transitivity resolver needs:

    load_all_substitutions(tenant_id)          -> SubstitutionGraph
    load_substitution(user, tenant_id)         -> SubstitutionRecord | None
    count_records_referencing(user, tenant_id) -> int
    persist_transitive_sub(user, tenant_id, value)

Rows are copied into detached SubstitutionRecord values so that in-memory
memoization during a run never touches the ORM session. Writes are only
staged; ``commit()`` / ``rollback()`` close the unit of work.
"""

import logging

from sqlalchemy import func, select

from delegation.core.exceptions import NotFoundError
from delegation.models import db
from delegation.models.substitution import Substitution
from delegation.services.substitution_graph import (
    SubstitutionGraph,
    SubstitutionRecord,
    TransitiveSub,
)

logger = logging.getLogger(__name__)


def _to_record(row: Substitution) -> SubstitutionRecord:
    return SubstitutionRecord(
        user=row.user,
        substitute=row.substitute,
        substitution_start=row.substitution_start,
        substitution_end=row.substitution_end,
        enabled=bool(row.enabled),
        transitive_sub=TransitiveSub.from_columns(row.transitive_state, row.transitive_user),
    )


class SubstitutionRepository:
    """SQLAlchemy-backed persistence for the ``substitutes`` table."""

    def __init__(self, session=None):
        self.session = session or db.session

    def load_all_substitutions(self, tenant_id: int) -> SubstitutionGraph:
        rows = self.session.execute(
            select(Substitution)
            .where(Substitution.tenant_id == tenant_id)
            .order_by(Substitution.id)
        ).scalars().all()
        logger.debug(
            "Loaded %d substitution records", len(rows),
            extra={"tenant_id": tenant_id, "event_type": "substitutions_loaded"},
        )
        return SubstitutionGraph(_to_record(row) for row in rows)

    def load_substitution(self, user: str, tenant_id: int) -> SubstitutionRecord | None:
        row = self._get_row(user, tenant_id)
        return _to_record(row) if row is not None else None

    def count_records_referencing(self, user: str, tenant_id: int) -> int:
        return self.session.execute(
            select(func.count(Substitution.id)).where(
                Substitution.tenant_id == tenant_id,
                Substitution.substitute == user,
            )
        ).scalar_one()

    def persist_transitive_sub(self, user: str, tenant_id: int, value: TransitiveSub) -> None:
        row = self._get_row(user, tenant_id)
        if row is None:
            raise NotFoundError(resource="Substitution", resource_id=user, tenant_id=tenant_id)
        row.transitive_state = value.state.value
        row.transitive_user = value.user

    def list_for_tenant(self, tenant_id: int) -> list[Substitution]:
        return (
            Substitution.query_for_tenant(tenant_id)
            .order_by(Substitution.user)
            .all()
        )

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def _get_row(self, user: str, tenant_id: int) -> Substitution | None:
        return self.session.execute(
            select(Substitution).where(
                Substitution.tenant_id == tenant_id,
                Substitution.user == user,
            )
        ).scalar_one_or_none()
