"""
In-memory model of the ``hooks`` section of one settings document.

HookRegistry wraps a deep copy of a settings document and offers the
trigger -> matcher group -> hook entry operations that install and uninstall
need. The wrapped copy is mutated in place; the caller's document never is.

Foreign content is handled conservatively:
    - entries, groups and trigger keys that are not devark's are kept in their
      original order with all their keys (``timeout`` and anything else)
    - shapes the registry does not understand (a group that is not an object,
      a ``hooks`` value that is not a list) are kept as-is and skipped
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from devark.core.settings.models import HookEntry, MatcherGroup, Trigger

logger = logging.getLogger(__name__)

HOOKS_KEY = "hooks"

OwnershipCheck = Callable[[object], bool]


@dataclass(frozen=True)
class HookLocation:
    """Where a hook command sits inside a settings document."""

    trigger: str
    group_index: int
    hook_index: int
    matcher: str
    command: str


@dataclass
class RemovalReport:
    """Outcome of removing owned entries from a document."""

    removed: int = 0
    triggers_affected: list[str] = field(default_factory=list)
    triggers_removed: list[str] = field(default_factory=list)


def _trigger_key(trigger: Trigger | str) -> str:
    return trigger.value if isinstance(trigger, Trigger) else Trigger(trigger).value


def _group_matcher(group: dict[str, Any]) -> str:
    matcher = group.get("matcher", "")
    return matcher if isinstance(matcher, str) else ""


class HookRegistry:
    """
    Hook structures of a single settings document.

    Example:
        >>> registry = HookRegistry(store.load(SettingsLayer.USER))
        >>> registry.add(Trigger.SESSION_START, "devark send")
        True
        >>> store.write(SettingsLayer.USER, registry.document)
    """

    def __init__(self, document: dict[str, Any] | None = None) -> None:
        """
        Initialize from a settings document snapshot.

        Args:
            document: Settings document; None is treated as an empty document
        """
        self._document: dict[str, Any] = copy.deepcopy(document) if document else {}

    @property
    def document(self) -> dict[str, Any]:
        """The (possibly modified) settings document."""
        return self._document

    def _hooks(self) -> dict[str, Any]:
        hooks = self._document.get(HOOKS_KEY)
        return hooks if isinstance(hooks, dict) else {}

    def triggers(self) -> list[str]:
        """Trigger keys present under ``hooks``, in document order."""
        return [key for key, value in self._hooks().items() if isinstance(value, list)]

    def entries(self, trigger: Trigger | str | None = None) -> Iterator[HookLocation]:
        """
        Iterate over every command hook entry.

        Args:
            trigger: Restrict to one trigger key (exact, case-sensitive)

        Yields:
            HookLocation for each entry with a string ``command``
        """
        for key, groups in self._hooks().items():
            if trigger is not None and key != _trigger_key(trigger):
                continue
            if not isinstance(groups, list):
                continue
            for group_index, group in enumerate(groups):
                if not isinstance(group, dict):
                    continue
                hooks = group.get(HOOKS_KEY)
                if not isinstance(hooks, list):
                    continue
                for hook_index, hook in enumerate(hooks):
                    if not isinstance(hook, dict):
                        continue
                    command = hook.get("command")
                    if isinstance(command, str):
                        yield HookLocation(
                            trigger=key,
                            group_index=group_index,
                            hook_index=hook_index,
                            matcher=_group_matcher(group),
                            command=command,
                        )

    def owned_entries(
        self, owns: OwnershipCheck, trigger: Trigger | str | None = None
    ) -> list[HookLocation]:
        """Entries whose command satisfies the ownership check."""
        return [loc for loc in self.entries(trigger) if owns(loc.command)]

    def find_group(self, trigger: Trigger | str, matcher: str = "") -> dict[str, Any] | None:
        """
        Find the first group for ``(trigger, matcher)``.

        Returns:
            The group dict (live, mutable), or None
        """
        groups = self._hooks().get(_trigger_key(trigger))
        if not isinstance(groups, list):
            return None
        for group in groups:
            if (
                isinstance(group, dict)
                and isinstance(group.get(HOOKS_KEY), list)
                and _group_matcher(group) == matcher
            ):
                return group
        return None

    def has_command(self, trigger: Trigger | str, command: str, matcher: str = "") -> bool:
        """Check whether ``command`` already exists in the ``(trigger, matcher)`` group."""
        group = self.find_group(trigger, matcher)
        if group is None:
            return False
        return any(
            isinstance(hook, dict) and hook.get("command") == command for hook in group[HOOKS_KEY]
        )

    def add(
        self,
        trigger: Trigger | str,
        command: str,
        matcher: str = "",
        timeout: int | None = None,
    ) -> bool:
        """
        Add a command hook to the ``(trigger, matcher)`` group.

        A missing group is appended after the trigger's existing groups.
        Existing groups are never reordered.

        Args:
            trigger: Trigger to install under
            command: Hook command
            matcher: Matcher of the target group
            timeout: Optional timeout in seconds for the new entry

        Returns:
            True if an entry was added, False if an identical command was
            already present in the group
        """
        key = _trigger_key(trigger)

        if self.has_command(key, command, matcher):
            return False

        entry = HookEntry(command=command, timeout=timeout)

        hooks = self._document.get(HOOKS_KEY)
        if not isinstance(hooks, dict):
            if hooks is not None:
                logger.warning(f"Replacing malformed '{HOOKS_KEY}' value ({type(hooks).__name__})")
            hooks = {}
            self._document[HOOKS_KEY] = hooks

        groups = hooks.get(key)
        if not isinstance(groups, list):
            if groups is not None:
                logger.warning(f"Replacing malformed hooks.{key} value ({type(groups).__name__})")
            groups = []
            hooks[key] = groups

        group = self.find_group(key, matcher)
        if group is None:
            groups.append(MatcherGroup(matcher=matcher, hooks=[entry]).to_settings())
        else:
            group[HOOKS_KEY].append(entry.to_settings())
        return True

    def remove_owned(self, owns: OwnershipCheck) -> RemovalReport:
        """
        Remove every owned entry across all triggers.

        Non-owned entries keep their relative order. Groups emptied by this
        removal are dropped, then triggers left without groups, then the
        ``hooks`` key itself if no trigger remains.

        Args:
            owns: Ownership check applied to each entry's command

        Returns:
            RemovalReport with counts and the triggers touched
        """
        report = RemovalReport()
        hooks = self._document.get(HOOKS_KEY)
        if not isinstance(hooks, dict):
            return report

        for key in list(hooks):
            groups = hooks[key]
            if not isinstance(groups, list):
                continue

            kept_groups: list[Any] = []
            removed_here = 0
            for group in groups:
                entries = group.get(HOOKS_KEY) if isinstance(group, dict) else None
                if not isinstance(entries, list):
                    kept_groups.append(group)
                    continue

                kept = [
                    hook
                    for hook in entries
                    if not (isinstance(hook, dict) and owns(hook.get("command")))
                ]
                removed = len(entries) - len(kept)
                removed_here += removed

                if removed and not kept:
                    continue
                if removed:
                    group[HOOKS_KEY] = kept
                kept_groups.append(group)

            if not removed_here:
                continue

            report.removed += removed_here
            report.triggers_affected.append(key)
            if kept_groups:
                hooks[key] = kept_groups
            else:
                del hooks[key]
                report.triggers_removed.append(key)

        if report.removed and not hooks:
            del self._document[HOOKS_KEY]

        return report
