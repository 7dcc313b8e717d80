"""
Hook configuration installer for the host assistant.

Manages the installation and removal of devark hook entries in one settings
layer (~/.claude/settings.json by default). Updates are non-destructive: only
entries recognized as devark's are ever added or removed.

Implementation:
    - Takes the layer's ConcurrencyGuard (settings.json.lock) for the whole
      load -> modify -> write sequence
    - Loads the layer (missing or malformed files count as empty)
    - Modifies a HookRegistry copy of the document in memory
    - Writes the document back atomically, only when something changed
    - Reports failures as typed issues on the result instead of raising
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Iterable
from datetime import timedelta

from devark.core.hooks.models import (
    HookErrorCode,
    HookInstallResult,
    HookIssue,
    HookUninstallResult,
)
from devark.core.hooks.predicate import HookPredicate
from devark.core.hooks.registry import HookRegistry
from devark.core.lock.guard import STALE_LOCK_SECONDS, AlreadyLockedError, ConcurrencyGuard
from devark.core.settings.models import DEFAULT_TRIGGERS, SettingsLayer, Trigger
from devark.core.settings.store import PersistenceFailedError, SettingsStore

logger = logging.getLogger(__name__)

# Bumped whenever the shape of installed hook commands changes. Installed
# commands carry it as --hook-version=N; commands without it are version 1.
HOOK_VERSION = 2


def build_hook_command(cli_path: str, trigger: Trigger | str) -> str:
    """
    Build the hook command devark installs for a trigger.

    Args:
        cli_path: Canonical CLI path or invocation (``/usr/local/bin/devark``,
            ``npx devark-cli``)
        trigger: Trigger the command handles

    Returns:
        Command string, e.g.
        ``/usr/local/bin/devark send --silent --background --hook-trigger=sessionstart --hook-version=2``
    """
    trigger = Trigger(trigger)
    program = cli_path
    if " " in cli_path and os.path.exists(cli_path):
        # A single path containing spaces, not a multi-word invocation
        program = shlex.quote(cli_path)
    return (
        f"{program} send --silent --background "
        f"--hook-trigger={trigger.slug} --hook-version={HOOK_VERSION}"
    )


def _lock_failure(e: AlreadyLockedError) -> HookIssue:
    return HookIssue(
        code=HookErrorCode.ALREADY_LOCKED,
        message=f"Settings are being modified by another process: {e}",
        file_path=str(e.lock_path),
    )


def _persistence_failure(e: PersistenceFailedError) -> HookIssue:
    return HookIssue(
        code=HookErrorCode.PERSISTENCE_FAILED,
        message=f"Failed to write settings: {e.cause}",
        file_path=str(e.path),
    )


def _install_entries(
    store: SettingsStore,
    layer: SettingsLayer,
    entries: list[tuple[Trigger, str]],
    matcher: str,
    timeout: int | None,
    stale_after: timedelta | float,
) -> HookInstallResult:
    settings_file = store.path_for(layer)
    guard = ConcurrencyGuard.for_file(settings_file, stale_after=stale_after)

    hooks_installed: list[str] = []
    hooks_skipped: list[str] = []

    try:
        with guard:
            registry = HookRegistry(store.load(layer))

            for trigger, command in entries:
                if registry.add(trigger, command, matcher=matcher, timeout=timeout):
                    hooks_installed.append(trigger.value)
                else:
                    logger.info(f"Hook {trigger.value} already configured, skipping")
                    hooks_skipped.append(trigger.value)

            if hooks_installed:
                store.write(layer, registry.document)
                logger.info(f"Wrote updated settings to {settings_file}")

    except AlreadyLockedError as e:
        return HookInstallResult(
            success=False,
            layer=layer.value,
            settings_file=str(settings_file),
            error=_lock_failure(e),
            message="Settings file is locked",
        )
    except PersistenceFailedError as e:
        return HookInstallResult(
            success=False,
            layer=layer.value,
            settings_file=str(settings_file),
            error=_persistence_failure(e),
            message="Failed to write settings file",
        )

    message = (
        f"Installed {len(hooks_installed)} hooks"
        if hooks_installed
        else "All hooks already configured"
    )
    return HookInstallResult(
        success=True,
        layer=layer.value,
        hooks_installed=hooks_installed,
        hooks_skipped=hooks_skipped,
        settings_file=str(settings_file),
        message=message,
    )


def install_hook(
    store: SettingsStore,
    trigger: Trigger | str,
    command: str,
    *,
    layer: SettingsLayer = SettingsLayer.USER,
    matcher: str = "",
    timeout: int | None = None,
    stale_after: timedelta | float = STALE_LOCK_SECONDS,
) -> HookInstallResult:
    """
    Install a single hook command.

    Locates or creates the ``(trigger, matcher)`` group in the layer and
    appends the command unless an identical command is already there, in
    which case the call is a successful no-op.

    Args:
        store: Settings store
        trigger: Trigger to install under (exact name)
        command: Hook command
        layer: Settings layer to modify
        matcher: Matcher of the target group ("" matches all)
        timeout: Optional hook timeout in seconds
        stale_after: Lock staleness threshold

    Returns:
        HookInstallResult; ``added`` tells whether an entry was written

    Raises:
        ValueError: If ``trigger`` is not a known trigger name

    Example:
        >>> result = install_hook(store, Trigger.SESSION_START, "/usr/local/bin/devark send")
        >>> result.added
        True
    """
    return _install_entries(
        store,
        SettingsLayer(layer),
        [(Trigger(trigger), command)],
        matcher,
        timeout,
        stale_after,
    )


def install_hooks(
    store: SettingsStore,
    cli_path: str,
    *,
    layer: SettingsLayer = SettingsLayer.USER,
    triggers: Iterable[Trigger | str] | None = None,
    matcher: str = "",
    timeout: int | None = None,
    stale_after: timedelta | float = STALE_LOCK_SECONDS,
) -> HookInstallResult:
    """
    Install devark's hook command for a set of triggers in one write.

    Args:
        store: Settings store
        cli_path: Canonical CLI path or invocation used to build commands
        layer: Settings layer to modify
        triggers: Triggers to install (defaults to SessionStart, PreCompact, SessionEnd)
        matcher: Matcher of the target groups
        timeout: Optional hook timeout in seconds
        stale_after: Lock staleness threshold

    Returns:
        HookInstallResult listing installed and already-present triggers
    """
    selected = [Trigger(t) for t in (triggers if triggers is not None else DEFAULT_TRIGGERS)]
    entries = [(trigger, build_hook_command(cli_path, trigger)) for trigger in selected]
    return _install_entries(store, SettingsLayer(layer), entries, matcher, timeout, stale_after)


def uninstall_hooks(
    store: SettingsStore,
    predicate: HookPredicate,
    *,
    layer: SettingsLayer = SettingsLayer.USER,
    stale_after: timedelta | float = STALE_LOCK_SECONDS,
) -> HookUninstallResult:
    """
    Remove devark hook entries from every trigger of one layer.

    Other hooks keep their order and content. Groups emptied by the removal
    are dropped, then empty triggers, then ``hooks`` itself if nothing is left.
    Other top-level settings are preserved.

    Args:
        store: Settings store
        predicate: Ownership predicate identifying devark commands
        layer: Settings layer to modify
        stale_after: Lock staleness threshold

    Returns:
        HookUninstallResult; ``NO_HOOKS_FOUND`` when there was nothing to remove

    Example:
        >>> result = uninstall_hooks(store, HookPredicate())
        >>> result.removed_count
        3
    """
    layer = SettingsLayer(layer)
    settings_file = store.path_for(layer)
    guard = ConcurrencyGuard.for_file(settings_file, stale_after=stale_after)

    try:
        with guard:
            document = store.load(layer)
            registry = HookRegistry(document)
            report = registry.remove_owned(predicate.owns)

            if not report.removed:
                logger.info(f"No devark hooks found in {settings_file}")
                return HookUninstallResult(
                    success=False,
                    layer=layer.value,
                    settings_file=str(settings_file),
                    error=HookIssue(
                        code=HookErrorCode.NO_HOOKS_FOUND,
                        message="No devark hooks found to uninstall",
                        file_path=str(settings_file),
                    ),
                    message="No devark hooks found to uninstall",
                )

            store.write(layer, registry.document)
            logger.info(f"Removed {report.removed} devark hooks from {settings_file}")

    except AlreadyLockedError as e:
        return HookUninstallResult(
            success=False,
            layer=layer.value,
            settings_file=str(settings_file),
            error=_lock_failure(e),
            message="Settings file is locked",
        )
    except PersistenceFailedError as e:
        return HookUninstallResult(
            success=False,
            layer=layer.value,
            settings_file=str(settings_file),
            error=_persistence_failure(e),
            message="Failed to write settings file",
        )

    return HookUninstallResult(
        success=True,
        layer=layer.value,
        removed_count=report.removed,
        triggers_affected=report.triggers_affected,
        triggers_removed=report.triggers_removed,
        settings_file=str(settings_file),
        message=f"Removed {report.removed} hooks",
    )
