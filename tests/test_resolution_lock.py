"""
Tests — per-tenant resolution lock.
"""

import pytest

from delegation.services.resolution_lock import is_locked, tenant_lock


def test_lock_is_released_after_block():
    with tenant_lock(101):
        assert is_locked(101)
    assert not is_locked(101)


def test_lock_is_released_on_error():
    with pytest.raises(RuntimeError):
        with tenant_lock(102):
            raise RuntimeError("boom")
    assert not is_locked(102)


def test_same_tenant_times_out():
    with tenant_lock(103):
        with pytest.raises(TimeoutError):
            with tenant_lock(103, timeout=0.01):
                pass


def test_tenants_are_independent():
    with tenant_lock(104):
        with tenant_lock(105, timeout=0.01):
            assert is_locked(104) and is_locked(105)
