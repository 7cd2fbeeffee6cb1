"""
Per-tenant serialization of resolution runs.

A resolution run owns its substitution graph and rewrites many rows on
commit, so two runs for the same tenant must not overlap. Runs for
different tenants proceed independently.

Usage:
    from delegation.services.resolution_lock import tenant_lock

    with tenant_lock(tenant_id):
        resolver.resolve_all()
"""

import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_tenant_locks: dict[int, threading.Lock] = {}


def _lock_for(tenant_id: int) -> threading.Lock:
    with _registry_lock:
        lock = _tenant_locks.get(tenant_id)
        if lock is None:
            lock = threading.Lock()
            _tenant_locks[tenant_id] = lock
        return lock


@contextmanager
def tenant_lock(tenant_id: int, timeout: float = -1):
    """Hold the resolution lock of ``tenant_id`` for the duration of the block.

    Raises:
        TimeoutError: the lock could not be acquired within ``timeout`` seconds.
    """
    lock = _lock_for(tenant_id)
    if not lock.acquire(timeout=timeout):
        raise TimeoutError(f"resolution already running for tenant {tenant_id}")
    logger.debug("Acquired resolution lock", extra={"tenant_id": tenant_id})
    try:
        yield
    finally:
        lock.release()


def is_locked(tenant_id: int) -> bool:
    return _lock_for(tenant_id).locked()
