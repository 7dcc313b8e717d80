"""
Sync bookkeeping for hook triggers.

SyncTracker persists when each trigger was last handled so that a trigger
fired twice in quick succession is only processed once.
"""

from devark.core.sync.tracker import SYNC_STATE_FILE, SyncTracker

__all__ = ["SYNC_STATE_FILE", "SyncTracker"]
