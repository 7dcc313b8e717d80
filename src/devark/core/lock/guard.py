"""
Stale-aware file lock for cross-process mutual exclusion.

The host may fire the same trigger from overlapping sessions, and two
``hooks install`` runs may race on the same settings file. ConcurrencyGuard
serializes them with a sidecar lock file holding a small JSON record:

    {"owner_id": "host:1234", "pid": 1234, "acquired_at": "2026-01-01T00:00:00+00:00"}

State machine:
    Unlocked --acquire--> Locked(owner_id, acquired_at) --release--> Unlocked

A lock older than the staleness threshold (300 seconds) is presumed abandoned
by a crashed holder and is reclaimed by the next acquirer. Reclaiming renames
the stale file aside and checks it still holds the record that was judged
stale; if a competing reclaimer has already replaced it with a fresh lock, that
lock is put back and the late reclaimer gets AlreadyLockedError. Creation uses
an exclusive open, so only one process ends up holding the lock.

A record dated in the future (clock skew between hosts sharing a home
directory) is judged by the lock file's modification time instead.
"""

from __future__ import annotations

import logging
import os
import socket
import uuid
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import TracebackType
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from devark.utils.time import Clock, ensure_aware, utc_now

logger = logging.getLogger(__name__)

STALE_LOCK_SECONDS = 300
LOCK_SUFFIX = ".lock"
# Future timestamps within this margin are treated as ordinary clock jitter
CLOCK_SKEW_TOLERANCE = timedelta(seconds=5)


class LockRecord(BaseModel):
    """Contents of a lock sidecar file."""

    owner_id: str = Field(description="Identifier of the holding process")
    pid: int | None = Field(default=None, description="Holder's process id")
    acquired_at: datetime = Field(description="When the lock was taken")


class AlreadyLockedError(Exception):
    """
    Raised when a live (non-stale) lock is held by someone else.

    Callers should retry later or abort; the lock must never be forced.

    Attributes:
        lock_path: The contested lock file
        record: The current holder's record, if it could be read
    """

    def __init__(self, lock_path: Path, record: LockRecord | None = None) -> None:
        self.lock_path = lock_path
        self.record = record
        if record is not None:
            message = (
                f"{lock_path} is held by {record.owner_id} "
                f"since {record.acquired_at.isoformat()}"
            )
        else:
            message = f"{lock_path} is held by another process"
        super().__init__(message)


def default_owner_id() -> str:
    """Owner identifier for the current process (``host:pid``)."""
    return f"{socket.gethostname()}:{os.getpid()}"


def _mtime(path: Path) -> datetime | None:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except OSError:
        return None


def _load_record(path: Path) -> LockRecord | None:
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.debug(f"Could not read lock {path}: {e}")
        content = ""

    try:
        return LockRecord.model_validate_json(content)
    except ValidationError:
        pass

    mtime = _mtime(path)
    if mtime is None:
        # Removed while we were looking at it
        return None

    pid = int(content.strip()) if content.strip().isdigit() else None
    owner = f"pid:{pid}" if pid is not None else "unknown"
    return LockRecord(owner_id=owner, pid=pid, acquired_at=mtime)


class ConcurrencyGuard:
    """
    File lock with staleness reclamation.

    Example:
        >>> guard = ConcurrencyGuard.for_file(settings_path)
        >>> with guard:
        ...     document = store.load(layer)
        ...     store.write(layer, document)
    """

    def __init__(
        self,
        lock_path: Path,
        *,
        owner_id: str | None = None,
        clock: Clock = utc_now,
        stale_after: timedelta | float = STALE_LOCK_SECONDS,
    ) -> None:
        """
        Initialize the guard.

        Args:
            lock_path: Lock sidecar file
            owner_id: Identifier written into the record (defaults to host:pid)
            clock: Source of "now", injectable for tests
            stale_after: Age (timedelta or seconds) after which a lock is reclaimable
        """
        self.lock_path = lock_path
        self.owner_id = owner_id or default_owner_id()
        self.clock = clock
        if not isinstance(stale_after, timedelta):
            stale_after = timedelta(seconds=stale_after)
        self.stale_after = stale_after

    @classmethod
    def for_file(cls, target: Path, **kwargs: Any) -> ConcurrencyGuard:
        """
        Create a guard whose lock sits next to ``target``.

        ``~/.claude/settings.json`` is guarded by ``~/.claude/settings.json.lock``.
        """
        return cls(target.with_name(target.name + LOCK_SUFFIX), **kwargs)

    def _mtime(self) -> datetime | None:
        return _mtime(self.lock_path)

    def read_record(self) -> LockRecord | None:
        """
        Read the current lock record.

        Records that are not valid JSON (a legacy pid-only file, or one caught
        mid-write) fall back to the file's modification time.

        Returns:
            LockRecord, or None if no lock file exists
        """
        return _load_record(self.lock_path)

    def is_stale(self, record: LockRecord) -> bool:
        """
        Check whether a record is older than the staleness threshold.

        A record dated in the future is aged by the lock file's modification
        time; if that is in the future too (or the file is gone), the record
        is stale.
        """
        now = ensure_aware(self.clock())
        age = now - ensure_aware(record.acquired_at)
        if age < -CLOCK_SKEW_TOLERANCE:
            logger.warning(
                f"Lock {self.lock_path} is dated in the future "
                f"({record.acquired_at.isoformat()}); using file modification time"
            )
            mtime = self._mtime()
            if mtime is None or now - mtime < -CLOCK_SKEW_TOLERANCE:
                return True
            age = now - mtime
        return age > self.stale_after

    def is_locked(self) -> bool:
        """Check for a live lock. Stale locks count as unlocked."""
        record = self.read_record()
        return record is not None and not self.is_stale(record)

    def _create(self) -> LockRecord:
        record = LockRecord(owner_id=self.owner_id, pid=os.getpid(), acquired_at=self.clock())
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        # Exclusive create: FileExistsError if someone else holds it
        with self.lock_path.open("x", encoding="utf-8") as f:
            f.write(record.model_dump_json())
        return record

    def acquire(self) -> LockRecord:
        """
        Take the lock.

        Returns:
            The record written for this holder

        Raises:
            AlreadyLockedError: If a live lock is held, or another process
                won the race to reclaim a stale one
        """
        try:
            record = self._create()
            logger.debug(f"Acquired lock {self.lock_path}")
            return record
        except FileExistsError:
            pass

        existing = self.read_record()
        if existing is not None and not self.is_stale(existing):
            raise AlreadyLockedError(self.lock_path, existing)

        if existing is not None:
            logger.info(
                f"Reclaiming stale lock {self.lock_path} "
                f"(held by {existing.owner_id} since {existing.acquired_at.isoformat()})"
            )
            self._reclaim(existing)

        try:
            return self._create()
        except FileExistsError:
            raise AlreadyLockedError(self.lock_path, self.read_record()) from None

    def _reclaim(self, stale: LockRecord) -> None:
        """
        Remove the lock file if it still holds ``stale``.

        Raises:
            AlreadyLockedError: If the file was replaced by a fresh lock after
                ``stale`` was read
        """
        moved = self.lock_path.with_name(f"{self.lock_path.name}.{uuid.uuid4().hex}.stale")
        try:
            os.rename(self.lock_path, moved)
        except FileNotFoundError:
            # Another reclaimer got there first; the exclusive create decides
            return

        current = _load_record(moved)
        if current == stale:
            moved.unlink(missing_ok=True)
            return

        logger.info(f"Lock {self.lock_path} was taken over while reclaiming it, backing off")
        # Put the fresh lock back; if yet another holder already exists, it wins
        with suppress(FileExistsError):
            os.link(moved, self.lock_path)
        moved.unlink(missing_ok=True)
        raise AlreadyLockedError(self.lock_path, current)

    def release(self) -> None:
        """Remove the lock file. A missing file is not an error."""
        self.lock_path.unlink(missing_ok=True)
        logger.debug(f"Released lock {self.lock_path}")

    @contextmanager
    def held(self) -> Iterator[LockRecord]:
        """Hold the lock for the duration of a ``with`` block."""
        record = self.acquire()
        try:
            yield record
        finally:
            self.release()

    def __enter__(self) -> LockRecord:
        return self.acquire()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
