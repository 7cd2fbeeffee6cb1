"""
Workflow Delegation Service
Tests — Transitivity Engine (in-memory graphs, fixed clock).

Covers:
    - Activity predicate (enabled flag, strict window bounds)
    - Chain termination with path-compression memos
    - Inactive / missing next hop
    - Cycle back to the origin user
    - Cycle not passing through the origin
    - Memo reuse without re-descending
"""

from datetime import datetime, timedelta, timezone

from delegation.services.substitution_graph import (
    SubstitutionGraph,
    SubstitutionRecord,
    TransitiveSub,
)
from delegation.services.transitivity import TransitivityEngine, is_substitution_active

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _rec(user, substitute, *, active=True, enabled=True, transitive_sub=None):
    if active:
        start, end = NOW - timedelta(days=1), NOW + timedelta(days=1)
    else:
        start, end = NOW - timedelta(days=5), NOW - timedelta(hours=1)
    return SubstitutionRecord(
        user=user,
        substitute=substitute,
        substitution_start=start,
        substitution_end=end,
        enabled=enabled,
        transitive_sub=transitive_sub,
    )


def _engine(*records):
    return TransitivityEngine(SubstitutionGraph(records), now=NOW)


# ═════════════════════════════════════════════════════════════════════════════
# Activity predicate
# ═════════════════════════════════════════════════════════════════════════════

def test_active_inside_window():
    assert is_substitution_active(_rec("a", "b"), NOW) is True


def test_disabled_record_is_inactive():
    assert is_substitution_active(_rec("a", "b", enabled=False), NOW) is False


def test_expired_window_is_inactive():
    assert is_substitution_active(_rec("a", "b", active=False), NOW) is False


def test_window_bounds_are_exclusive():
    record = _rec("a", "b")
    record.substitution_start = NOW
    assert is_substitution_active(record, NOW) is False

    record.substitution_start = NOW - timedelta(days=1)
    record.substitution_end = NOW
    assert is_substitution_active(record, NOW) is False


def test_naive_datetimes_are_read_as_utc():
    record = _rec("a", "b")
    record.substitution_start = (NOW - timedelta(minutes=1)).replace(tzinfo=None)
    record.substitution_end = (NOW + timedelta(minutes=1)).replace(tzinfo=None)
    assert is_substitution_active(record, NOW) is True


# ═════════════════════════════════════════════════════════════════════════════
# Chains
# ═════════════════════════════════════════════════════════════════════════════

def test_chain_resolves_to_last_user_without_record():
    a, b, c = _rec("A", "B"), _rec("B", "C"), _rec("C", "D")
    engine = _engine(a, b, c)

    answer = engine.resolve(a, "A")

    assert answer == TransitiveSub.resolved("D")
    assert a.transitive_sub == TransitiveSub.resolved("D")
    assert b.transitive_sub == TransitiveSub.resolved("D")
    assert c.transitive_sub == TransitiveSub.not_applicable()


def test_missing_next_hop_keeps_direct_substitute():
    a = _rec("A", "B")
    engine = _engine(a)

    assert engine.resolve(a, "A") == TransitiveSub.resolved("B")
    assert a.transitive_sub == TransitiveSub.not_applicable()


def test_empty_substitute_name_resolves_without_error():
    a, b = _rec("A", "B"), _rec("B", "")
    engine = _engine(a, b)

    assert engine.resolve(a, "A") == TransitiveSub.resolved("")
    assert b.transitive_sub == TransitiveSub.not_applicable()


def test_inactive_hop_stops_the_chain():
    a, b, c = _rec("A", "B"), _rec("B", "C", active=False), _rec("C", "D")
    engine = _engine(a, b, c)

    assert engine.resolve(a, "A") == TransitiveSub.resolved("B")
    assert a.transitive_sub == TransitiveSub.not_applicable()
    # B was never walked into
    assert b.transitive_sub is None
    assert c.transitive_sub is None


def test_disabled_hop_stops_the_chain():
    a, b = _rec("A", "B"), _rec("B", "C", enabled=False)
    engine = _engine(a, b)

    assert engine.resolve(a, "A") == TransitiveSub.resolved("B")
    assert a.transitive_sub == TransitiveSub.not_applicable()


def test_inactive_origin_record_is_still_resolved():
    # Only next hops are checked for activity.
    a, b = _rec("A", "B", active=False), _rec("B", "C")
    engine = _engine(a, b)

    assert engine.resolve(a, "A") == TransitiveSub.resolved("C")
    assert a.transitive_sub == TransitiveSub.resolved("C")


# ═════════════════════════════════════════════════════════════════════════════
# Cycles
# ═════════════════════════════════════════════════════════════════════════════

def test_cycle_back_to_origin_is_undefined():
    a, b, c = _rec("A", "B"), _rec("B", "C"), _rec("C", "A")
    engine = _engine(a, b, c)

    assert engine.resolve(a, "A") == TransitiveSub.undefined()
    assert a.transitive_sub == TransitiveSub.undefined()
    assert b.transitive_sub == TransitiveSub.undefined()

    # C reuses the undefined memo it finds on A
    assert engine.resolve(c, "C") == TransitiveSub.undefined()
    assert c.transitive_sub == TransitiveSub.undefined()


def test_two_user_cycle_is_undefined():
    a, b = _rec("A", "B"), _rec("B", "A")
    engine = _engine(a, b)

    assert engine.resolve(a, "A") == TransitiveSub.undefined()
    assert a.transitive_sub == TransitiveSub.undefined()


def test_self_delegation_is_undefined():
    a = _rec("A", "A")
    engine = _engine(a)

    assert engine.resolve(a, "A") == TransitiveSub.undefined()


def test_cycle_not_involving_origin_is_undefined():
    x = _rec("X", "A")
    a, b, c = _rec("A", "B"), _rec("B", "C"), _rec("C", "A")
    engine = _engine(x, a, b, c)

    assert engine.resolve(x, "X") == TransitiveSub.undefined()
    for record in (x, a, b, c):
        assert record.transitive_sub == TransitiveSub.undefined()


def test_cycle_behind_inactive_hop_is_not_reached():
    x = _rec("X", "A")
    a, b = _rec("A", "B", active=False), _rec("B", "A")
    engine = _engine(x, a, b)

    assert engine.resolve(x, "X") == TransitiveSub.resolved("A")
    assert x.transitive_sub == TransitiveSub.not_applicable()


# ═════════════════════════════════════════════════════════════════════════════
# Memo reuse
# ═════════════════════════════════════════════════════════════════════════════

def test_not_applicable_memo_is_reused_without_descending():
    # C -> D is active, so walking into B would answer D; the memo says C.
    a = _rec("A", "B")
    b = _rec("B", "C", transitive_sub=TransitiveSub.not_applicable())
    c = _rec("C", "D")
    engine = _engine(a, b, c)

    assert engine.resolve(a, "A") == TransitiveSub.resolved("C")
    assert a.transitive_sub == TransitiveSub.resolved("C")
    assert b.transitive_sub == TransitiveSub.not_applicable()
    assert c.transitive_sub is None


def test_resolved_memo_is_reused():
    a = _rec("A", "B")
    b = _rec("B", "C", transitive_sub=TransitiveSub.resolved("Z"))
    engine = _engine(a, b, _rec("C", "D"))

    assert engine.resolve(a, "A") == TransitiveSub.resolved("Z")
    assert a.transitive_sub == TransitiveSub.resolved("Z")


def test_memo_equal_to_direct_substitute_is_stored_as_not_applicable():
    a = _rec("A", "B")
    b = _rec("B", "C", transitive_sub=TransitiveSub.resolved("B"))
    engine = _engine(a, b)

    assert engine.resolve(a, "A") == TransitiveSub.resolved("B")
    assert a.transitive_sub == TransitiveSub.not_applicable()


def test_memoized_tail_is_not_walked_again():
    a, b, c = _rec("A", "C"), _rec("B", "C"), _rec("C", "D")
    graph = SubstitutionGraph([a, b, c])
    engine = TransitivityEngine(graph, now=NOW)

    engine.resolve(a, "A")
    assert c.transitive_sub == TransitiveSub.not_applicable()

    # D now delegates further; C keeps its memo for the rest of the run
    graph.add(_rec("D", "E"))
    assert engine.resolve(b, "B") == TransitiveSub.resolved("D")
    assert b.transitive_sub == TransitiveSub.resolved("D")
    assert c.transitive_sub == TransitiveSub.not_applicable()
