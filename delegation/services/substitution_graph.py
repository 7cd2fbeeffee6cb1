"""
Substitution Graph — run-scoped, in-memory view of a tenant's delegations.

Types:
    TransitiveState   — tag of a computed transitive substitute
    TransitiveSub     — tagged value: not-applicable / undefined / resolved(user)
    SubstitutionRecord — one user's delegation, detached from the ORM session
    SubstitutionGraph — mapping user → SubstitutionRecord for one resolution run

A record whose ``transitive_sub`` is ``None`` has not been computed yet.

Usage:
    from delegation.services.substitution_graph import SubstitutionGraph, TransitiveSub

    graph = SubstitutionGraph([record_a, record_b])
    graph["alice"].transitive_sub = TransitiveSub.not_applicable()
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator


# ═════════════════════════════════════════════════════════════════════════════
# Tri-state transitive substitute
# ═════════════════════════════════════════════════════════════════════════════

class TransitiveState(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    UNDEFINED = "undefined"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class TransitiveSub:
    """Computed transitive substitute.

    Only RESOLVED carries a user; the constructors below are the only
    supported way to build one.
    """
    state: TransitiveState
    user: str | None = None

    def __post_init__(self):
        if self.state is TransitiveState.RESOLVED and self.user is None:
            raise ValueError("a resolved transitive substitute needs a user")
        if self.state is not TransitiveState.RESOLVED and self.user is not None:
            raise ValueError(f"{self.state.value} carries no user")

    @classmethod
    def not_applicable(cls) -> TransitiveSub:
        return cls(TransitiveState.NOT_APPLICABLE)

    @classmethod
    def undefined(cls) -> TransitiveSub:
        return cls(TransitiveState.UNDEFINED)

    @classmethod
    def resolved(cls, user: str) -> TransitiveSub:
        return cls(TransitiveState.RESOLVED, user)

    @classmethod
    def from_columns(cls, state: str | None, user: str | None) -> TransitiveSub | None:
        """Rebuild from the (transitive_state, transitive_user) column pair."""
        if state is None:
            return None
        return cls(TransitiveState(state), user)

    @property
    def is_not_applicable(self) -> bool:
        return self.state is TransitiveState.NOT_APPLICABLE

    @property
    def is_undefined(self) -> bool:
        return self.state is TransitiveState.UNDEFINED

    def to_dict(self) -> dict:
        return {"state": self.state.value, "user": self.user}


# ═════════════════════════════════════════════════════════════════════════════
# Records & graph
# ═════════════════════════════════════════════════════════════════════════════

@dataclass
class SubstitutionRecord:
    """One user's delegation as seen by a resolution run."""
    user: str
    substitute: str
    substitution_start: datetime
    substitution_end: datetime
    enabled: bool = True
    transitive_sub: TransitiveSub | None = None

    def to_dict(self) -> dict:
        return {
            "user": self.user,
            "substitute": self.substitute,
            "transitive_sub": self.transitive_sub.to_dict() if self.transitive_sub else None,
            "substitution_start": self.substitution_start.isoformat(),
            "substitution_end": self.substitution_end.isoformat(),
            "enabled": self.enabled,
        }


class SubstitutionGraph:
    """Mapping user → SubstitutionRecord, owned by a single resolution run.

    Records are mutated in place while the engine memoizes results; the
    graph is discarded once the run has committed.
    """

    def __init__(self, records: Iterable[SubstitutionRecord] = ()):
        self._records: dict[str, SubstitutionRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: SubstitutionRecord) -> None:
        if record.user in self._records:
            raise ValueError(f"duplicate substitution record for user {record.user!r}")
        self._records[record.user] = record

    def get(self, user: str) -> SubstitutionRecord | None:
        return self._records.get(user)

    def __getitem__(self, user: str) -> SubstitutionRecord:
        return self._records[user]

    def __contains__(self, user: object) -> bool:
        return user in self._records

    def __iter__(self) -> Iterator[SubstitutionRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def reset_transitive(self) -> None:
        """Forget every computed transitive substitute."""
        for record in self._records.values():
            record.transitive_sub = None
