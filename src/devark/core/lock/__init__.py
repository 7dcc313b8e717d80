"""
Cross-process locking.

ConcurrencyGuard serializes writers of a shared file (a settings layer, a
trigger's processing slot) with a sidecar lock file that is reclaimed once it
is older than STALE_LOCK_SECONDS.
"""

from devark.core.lock.guard import (
    STALE_LOCK_SECONDS,
    AlreadyLockedError,
    ConcurrencyGuard,
    LockRecord,
    default_owner_id,
)

__all__ = [
    "STALE_LOCK_SECONDS",
    "AlreadyLockedError",
    "ConcurrencyGuard",
    "LockRecord",
    "default_owner_id",
]
