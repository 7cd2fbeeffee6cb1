"""
Shared pytest fixtures for the Workflow Delegation Service test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test app context + clean database (autouse)
    - client: Flask test client (function-scoped)
    - default_tenant: Pre-created Tenant entity
    - add_substitution: Factory that stores a Substitution row
"""

from datetime import datetime, timedelta, timezone

import pytest

from delegation import create_app
from delegation.models import db as _db
from delegation.models.substitution import Substitution
from delegation.models.tenant import Tenant

DEFAULT_TENANT_SLUG = "test-default"


def _ensure_default_tenant():
    """Create the default tenant for tests if it doesn't exist."""
    t = Tenant.query.filter_by(slug=DEFAULT_TENANT_SLUG).first()
    if not t:
        t = Tenant(name="Test Default", slug=DEFAULT_TENANT_SLUG)
        _db.session.add(t)
        _db.session.commit()
    return t.id


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        _ensure_default_tenant()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def default_tenant():
    """Return the auto-created default test tenant."""
    return Tenant.query.filter_by(slug=DEFAULT_TENANT_SLUG).first()


@pytest.fixture()
def tenant_headers(default_tenant):
    return {"X-Tenant-ID": default_tenant.slug}


# ── Convenience fixtures ─────────────────────────────────────────────────


def active_window(now):
    return now - timedelta(days=1), now + timedelta(days=1)


def expired_window(now):
    return now - timedelta(days=3), now - timedelta(hours=1)


@pytest.fixture()
def add_substitution(default_tenant):
    """Store a substitution row; ``active=False`` gives it an expired window."""

    def _add(user, substitute, *, active=True, enabled=True, now=None, tenant_id=None):
        now = now or datetime.now(timezone.utc)
        start, end = active_window(now) if active else expired_window(now)
        row = Substitution(
            tenant_id=tenant_id or default_tenant.id,
            user=user,
            substitute=substitute,
            substitution_start=start,
            substitution_end=end,
            enabled=enabled,
        )
        _db.session.add(row)
        _db.session.commit()
        return row

    return _add


@pytest.fixture()
def stored_transitive(default_tenant):
    """Return (transitive_state, transitive_user) as persisted for a user."""

    def _stored(user, tenant_id=None):
        _db.session.expire_all()
        row = Substitution.query.filter_by(
            tenant_id=tenant_id or default_tenant.id, user=user,
        ).one()
        return row.transitive_state, row.transitive_user

    return _stored
