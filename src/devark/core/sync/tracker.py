"""
Per-trigger sync bookkeeping.

The host can fire the same trigger twice in quick succession from overlapping
processes (two sessions ending together, a compaction right after a session
start). SyncTracker remembers when each trigger was last handled so the hook
execution path can skip a duplicate within a short window.

The state file maps trigger names to ISO-8601 timestamps:

    {"SessionStart": "2026-01-14T10:00:00+00:00", "PreCompact": "..."}

Different triggers are handled concurrently, so updates to the shared file are
serialized with a ConcurrencyGuard on ``<state file>.lock``.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path

from devark.core.lock.guard import AlreadyLockedError, ConcurrencyGuard
from devark.core.settings.models import Trigger
from devark.utils.atomic import atomic_write_json
from devark.utils.time import Clock, ensure_aware, utc_now

logger = logging.getLogger(__name__)

SYNC_STATE_FILE = "hook-sync.json"

# The state file lock is only held for one read-modify-write
LOCK_ATTEMPTS = 20
LOCK_RETRY_DELAY = 0.05


def _key(trigger: Trigger | str) -> str:
    return trigger.value if isinstance(trigger, Trigger) else str(trigger)


class SyncTracker:
    """
    Last-handled timestamps per trigger, persisted atomically.

    Example:
        >>> tracker = SyncTracker(Path.home() / ".devark" / "hook-sync.json")
        >>> if not tracker.was_recently_handled(Trigger.SESSION_END, within_seconds=30):
        ...     process()
        ...     tracker.record_handled(Trigger.SESSION_END)
    """

    def __init__(self, state_file: Path, *, clock: Clock = utc_now) -> None:
        """
        Initialize the tracker.

        Args:
            state_file: JSON file holding the trigger -> timestamp mapping
            clock: Source of "now", injectable for tests
        """
        self.state_file = state_file
        self.clock = clock

    def load(self) -> dict[str, datetime]:
        """
        Read all records.

        Missing, malformed or partially invalid files degrade to the entries
        that can be parsed.

        Returns:
            Mapping of trigger name to last-handled time
        """
        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.debug(f"Ignoring unreadable sync state {self.state_file}: {e}")
            return {}

        if not isinstance(data, dict):
            return {}

        records: dict[str, datetime] = {}
        for trigger, value in data.items():
            if not isinstance(value, str):
                continue
            try:
                records[trigger] = ensure_aware(datetime.fromisoformat(value.replace("Z", "+00:00")))
            except ValueError:
                logger.debug(f"Ignoring invalid timestamp for {trigger}: {value!r}")
        return records

    def last_handled(self, trigger: Trigger | str) -> datetime | None:
        """When ``trigger`` was last handled, or None if never."""
        return self.load().get(_key(trigger))

    def record_handled(self, trigger: Trigger | str, timestamp: datetime | None = None) -> None:
        """
        Record that ``trigger`` was handled.

        Args:
            trigger: Trigger that was processed
            timestamp: When it was handled (defaults to now)

        Raises:
            OSError: If the state file cannot be written; the previous state
                is left intact
            AlreadyLockedError: If another process kept the state file locked
                through every retry
        """
        when = ensure_aware(timestamp or self.clock())
        with self._locked():
            records = self.load()
            records[_key(trigger)] = when
            atomic_write_json(
                self.state_file,
                {name: handled.isoformat() for name, handled in records.items()},
            )
        logger.debug(f"Recorded {_key(trigger)} as handled")

    @contextmanager
    def _locked(self) -> Iterator[None]:
        guard = ConcurrencyGuard.for_file(self.state_file, clock=self.clock)
        for attempt in range(1, LOCK_ATTEMPTS + 1):
            try:
                guard.acquire()
                break
            except AlreadyLockedError:
                if attempt == LOCK_ATTEMPTS:
                    raise
                time.sleep(LOCK_RETRY_DELAY)
        try:
            yield
        finally:
            guard.release()

    def was_recently_handled(self, trigger: Trigger | str, within_seconds: float) -> bool:
        """
        Check whether ``trigger`` was handled in the last ``within_seconds``.

        Args:
            trigger: Trigger to check
            within_seconds: Size of the duplicate-suppression window

        Returns:
            True if the last record is inside the window
        """
        last = self.last_handled(trigger)
        if last is None:
            return False
        age = ensure_aware(self.clock()) - last
        return timedelta(0) <= age <= timedelta(seconds=within_seconds)
