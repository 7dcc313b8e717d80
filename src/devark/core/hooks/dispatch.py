"""
Duplicate suppression for hook execution.

When the host fires a trigger, it runs ``devark send --hook-trigger=...`` for
every session that has the hook, and overlapping sessions can fire the same
trigger within seconds of each other. ``claim_trigger`` lets exactly one of
those processes do the work:

    with claim_trigger(Trigger.SESSION_END, tracker, guard, window_seconds=30) as claim:
        if claim.granted:
            upload_sessions()

The trigger's guard is held for the whole block. The trigger is recorded as
handled only when the block exits cleanly, so a failed run does not suppress
the next attempt.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from devark.core.lock.guard import AlreadyLockedError, ConcurrencyGuard
from devark.core.settings.models import Trigger
from devark.core.sync.tracker import SYNC_STATE_FILE, SyncTracker
from devark.utils.time import Clock, utc_now

if TYPE_CHECKING:
    from devark.core.config.models import DevarkConfig

logger = logging.getLogger(__name__)

LOCKS_DIR = "locks"


class ClaimOutcome(str, Enum):
    """Why a trigger claim was or was not granted."""

    GRANTED = "granted"
    LOCKED = "locked"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class TriggerClaim:
    """Result of trying to claim a trigger for processing."""

    trigger: Trigger
    outcome: ClaimOutcome

    @property
    def granted(self) -> bool:
        return self.outcome is ClaimOutcome.GRANTED


def trigger_guard(state_dir: Path, trigger: Trigger | str, **kwargs: Any) -> ConcurrencyGuard:
    """Guard for one trigger's processing slot (``<state_dir>/locks/<Trigger>.lock``)."""
    trigger = Trigger(trigger)
    return ConcurrencyGuard(state_dir / LOCKS_DIR / f"{trigger.value}.lock", **kwargs)


@contextmanager
def claim_trigger(
    trigger: Trigger | str,
    tracker: SyncTracker,
    guard: ConcurrencyGuard,
    window_seconds: float,
) -> Iterator[TriggerClaim]:
    """
    Claim a trigger for processing.

    Args:
        trigger: Trigger being handled
        tracker: Sync tracker holding last-handled times
        guard: Guard for this trigger's processing slot
        window_seconds: Duplicate-suppression window

    Yields:
        TriggerClaim; only a granted claim should do the work
    """
    trigger = Trigger(trigger)

    try:
        guard.acquire()
    except AlreadyLockedError as e:
        logger.info(f"{trigger.value} is already being handled: {e}")
        yield TriggerClaim(trigger, ClaimOutcome.LOCKED)
        return

    try:
        if tracker.was_recently_handled(trigger, window_seconds):
            logger.info(f"{trigger.value} was handled in the last {window_seconds}s, skipping")
            yield TriggerClaim(trigger, ClaimOutcome.DUPLICATE)
            return

        yield TriggerClaim(trigger, ClaimOutcome.GRANTED)
        tracker.record_handled(trigger)
    finally:
        guard.release()


def claim_for(
    trigger: Trigger | str,
    config: DevarkConfig,
    *,
    state_dir: Path | None = None,
    clock: Clock = utc_now,
) -> AbstractContextManager[TriggerClaim]:
    """
    Claim a trigger using devark's configured state directory and windows.

    The sync record lives at ``<state_dir>/hook-sync.json`` and the trigger
    lock under ``<state_dir>/locks/``. Lock staleness and the duplicate window
    come from ``config``.

    Args:
        trigger: Trigger being handled
        config: Effective devark configuration
        state_dir: State directory (defaults to get_state_dir())
        clock: Source of "now", injectable for tests

    Returns:
        Context manager yielding the TriggerClaim

    Example:
        >>> with claim_for(Trigger.SESSION_END, load_config()) as claim:
        ...     if claim.granted:
        ...         upload_sessions()
    """
    # Import here to avoid a circular import (config models use the predicate)
    from devark.core.config.loader import get_state_dir

    if state_dir is None:
        state_dir = get_state_dir()

    tracker = SyncTracker(state_dir / SYNC_STATE_FILE, clock=clock)
    guard = trigger_guard(state_dir, trigger, clock=clock, stale_after=config.lock_stale_seconds)
    return claim_trigger(trigger, tracker, guard, window_seconds=config.sync_window_seconds)
