"""
Transitivity Resolution — transitive substitutes for a tenant's delegations.

When A delegates to B and B (currently unavailable) delegates to C, A's work
must end up with C. This module follows those chains:

    TransitivityEngine    — walks one chain, memoizes every record on the path
    TransitivityResolver  — batch (whole tenant) and incremental (one record)
                            resolution plus the impact check

Key Rules:
  - A hop is followed only while the next record is enabled and
    substitution_start < now < substitution_end
  - A chain leading back to its origin user is UNDEFINED
  - A chain revisiting any user already on the current path is UNDEFINED
  - Batch runs compute everything first and persist only when no chain is
    UNDEFINED (or when forced)
  - Outcomes are reported as booleans; no exceptions for unresolvable chains

Usage:
    from delegation.services.transitivity import TransitivityResolver

    resolver = TransitivityResolver(SubstitutionRepository(), tenant_id)
    if not resolver.resolve_all(forced_resolve=False):
        ...  # unresolvable cycle, nothing was written
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from delegation.core.exceptions import NotFoundError
from delegation.services.resolution_lock import tenant_lock
from delegation.services.substitution_graph import (
    SubstitutionGraph,
    SubstitutionRecord,
    TransitiveSub,
)
from delegation.services.substitution_repository import SubstitutionRepository

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_substitution_active(record: SubstitutionRecord, now: datetime) -> bool:
    """True if the delegation is enabled and ``now`` lies strictly inside its window."""
    if not record.enabled:
        return False
    now = _as_utc(now)
    return _as_utc(record.substitution_start) < now < _as_utc(record.substitution_end)


# ═════════════════════════════════════════════════════════════════════════════
# Engine
# ═════════════════════════════════════════════════════════════════════════════

class TransitivityEngine:
    """Resolves transitive substitutes over one SubstitutionGraph.

    The engine samples "now" once, so every activity check of a run sees
    the same instant.
    """

    def __init__(self, graph: SubstitutionGraph, now: datetime | None = None):
        self.graph = graph
        self.now = now or datetime.now(timezone.utc)

    def is_active(self, record: SubstitutionRecord) -> bool:
        return is_substitution_active(record, self.now)

    def resolve(self, record: SubstitutionRecord, origin_user: str) -> TransitiveSub:
        """
        Follow the chain starting at ``record`` and return its final answer.

        The answer is either ``resolved(user)`` or ``undefined()``. Every
        record on the walked path stores the answer as its memo, or
        ``not_applicable()`` where the answer is its own direct substitute.

        Args:
            record: The record to resolve.
            origin_user: User that started the chain; fixed for the whole walk.
        """
        path = [record]
        on_path = {origin_user, record.user}
        current = record

        while True:
            next_hop = self.graph.get(current.substitute)

            if next_hop is None or not self.is_active(next_hop):
                answer = TransitiveSub.resolved(current.substitute)
                break

            if next_hop.substitute == origin_user:
                answer = TransitiveSub.undefined()
                break

            memo = next_hop.transitive_sub
            if memo is not None and memo.is_not_applicable:
                answer = TransitiveSub.resolved(next_hop.substitute)
                break
            if memo is not None:
                answer = memo
                break

            if next_hop.user in on_path:
                # Cycle that does not pass through the origin.
                answer = TransitiveSub.undefined()
                break

            path.append(next_hop)
            on_path.add(next_hop.user)
            current = next_hop

        for visited in reversed(path):
            visited.transitive_sub = self._memo_for(visited, answer)
        return answer

    @staticmethod
    def _memo_for(record: SubstitutionRecord, answer: TransitiveSub) -> TransitiveSub:
        if answer.user is not None and answer.user == record.substitute:
            return TransitiveSub.not_applicable()
        return answer


# ═════════════════════════════════════════════════════════════════════════════
# Resolver
# ═════════════════════════════════════════════════════════════════════════════

class TransitivityResolver:
    """Batch / incremental transitive resolution for one tenant."""

    def __init__(self, repository: SubstitutionRepository, tenant_id: int,
                 clock=None):
        self.repository = repository
        self.tenant_id = tenant_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _log_extra(self, event_type: str) -> dict:
        return {"tenant_id": self.tenant_id, "event_type": event_type}

    # ── Impact check ────────────────────────────────────────────────────

    def is_resolving_required(self, user: str) -> bool:
        """True if some record names ``user`` as its direct substitute."""
        return self.repository.count_records_referencing(user, self.tenant_id) > 0

    # ── Batch ───────────────────────────────────────────────────────────

    def resolve_all(self, forced_resolve: bool = False) -> bool:
        """
        Recalculate the transitive substitute of every record of the tenant.

        Args:
            forced_resolve: Persist UNDEFINED results instead of aborting.

        Returns:
            False if an unresolvable chain was found while not forced; no
            record is written in that case. True once everything is committed.
        """
        graph = self.repository.load_all_substitutions(self.tenant_id)
        # Stored values belong to the previous run.
        graph.reset_transitive()
        engine = TransitivityEngine(graph, now=self._clock())

        for record in graph:
            if record.transitive_sub is None:
                engine.resolve(record, record.user)
            if not forced_resolve and record.transitive_sub.is_undefined:
                logger.warning(
                    "Unresolvable substitution chain for %s; nothing persisted",
                    record.user, extra=self._log_extra("transitive_resolve_aborted"),
                )
                return False

        undefined = 0
        try:
            for record in graph:
                if record.transitive_sub.is_undefined:
                    undefined += 1
                self.repository.persist_transitive_sub(
                    record.user, self.tenant_id, record.transitive_sub,
                )
            self.repository.commit()
        except (SQLAlchemyError, NotFoundError):
            self.repository.rollback()
            logger.exception(
                "Persisting transitive substitutes failed",
                extra=self._log_extra("transitive_resolve_failed"),
            )
            raise

        if undefined:
            logger.warning(
                "Forced resolve stored %d undefined transitive substitute(s)", undefined,
                extra=self._log_extra("transitive_resolve_forced"),
            )
        logger.info(
            "Resolved %d transitive substitute(s)", len(graph),
            extra=self._log_extra("transitive_resolve_completed"),
        )
        return True

    # ── Incremental ─────────────────────────────────────────────────────

    def resolve_one(self, graph: SubstitutionGraph, record: SubstitutionRecord) -> bool:
        """
        Refresh the transitive substitute of a single record.

        Args:
            graph: Substitution graph of the tenant, already loaded.
            record: The record whose delegation changed.

        Returns:
            False if the record's chain is unresolvable (nothing persisted).
        """
        delegate = self.repository.load_substitution(record.substitute, self.tenant_id)
        engine = TransitivityEngine(graph, now=self._clock())

        if delegate is not None and engine.is_active(delegate):
            answer = engine.resolve(record, record.user)
            if answer.is_undefined:
                logger.warning(
                    "Unresolvable substitution chain for %s; nothing persisted",
                    record.user, extra=self._log_extra("transitive_resolve_aborted"),
                )
                return False
            # Memo form: NOT_APPLICABLE when the answer is the direct substitute.
            value = record.transitive_sub
        else:
            value = TransitiveSub.not_applicable()
            record.transitive_sub = value

        try:
            self.repository.persist_transitive_sub(record.user, self.tenant_id, value)
            self.repository.commit()
        except (SQLAlchemyError, NotFoundError):
            self.repository.rollback()
            logger.exception(
                "Persisting transitive substitute for %s failed", record.user,
                extra=self._log_extra("transitive_resolve_failed"),
            )
            raise
        logger.debug(
            "Transitive substitute of %s is %s", record.user, value.state.value,
            extra=self._log_extra("transitive_resolve_single"),
        )
        return True


# ═════════════════════════════════════════════════════════════════════════════
# Entry points (serialized per tenant)
# ═════════════════════════════════════════════════════════════════════════════

def resolve_tenant(tenant_id: int, forced_resolve: bool = False, lock_timeout: float = -1) -> bool:
    """Run a batch resolution for ``tenant_id`` under the tenant lock."""
    with tenant_lock(tenant_id, timeout=lock_timeout):
        resolver = TransitivityResolver(SubstitutionRepository(), tenant_id)
        return resolver.resolve_all(forced_resolve)


def resolve_user(tenant_id: int, user: str, lock_timeout: float = -1) -> bool:
    """
    Refresh one user's transitive substitute under the tenant lock.

    Raises:
        NotFoundError: ``user`` has no substitution record in the tenant.
        TimeoutError: another resolution of the tenant is still running.
    """
    with tenant_lock(tenant_id, timeout=lock_timeout):
        repository = SubstitutionRepository()
        graph = repository.load_all_substitutions(tenant_id)
        record = graph.get(user)
        if record is None:
            raise NotFoundError(resource="Substitution", resource_id=user, tenant_id=tenant_id)
        resolver = TransitivityResolver(repository, tenant_id)
        return resolver.resolve_one(graph, record)


def is_resolving_required(tenant_id: int, user: str) -> bool:
    return TransitivityResolver(SubstitutionRepository(), tenant_id).is_resolving_required(user)
