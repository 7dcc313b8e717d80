"""
Hook status and validation against the effective settings.

Both operations read the merged view of all settings layers (what the host
actually runs) and never take a lock: writes are atomic, so a read sees either
the old or the new document.

Validation checks, for every devark hook found:
    - the program it runs exists (a path on disk, or a name on PATH)
    - it uses the currently configured CLI path (detects stale installs after
      devark was moved or reinstalled elsewhere)
"""

from __future__ import annotations

import os
import re
import shutil

from devark.core.hooks.installer import HOOK_VERSION
from devark.core.hooks.models import (
    HookErrorCode,
    HookIssue,
    HookStatus,
    HookValidationResult,
    TriggerStatus,
)
from devark.core.hooks.predicate import HookPredicate, invokes_cli_path, parse_invocation
from devark.core.hooks.registry import HookRegistry
from devark.core.settings.models import SettingsLayer, Trigger
from devark.core.settings.store import SettingsStore

_HOOK_VERSION_FLAG = re.compile(r"--hook-version[= ](\d+)")


def hook_version(command: str) -> int:
    """Registry version marker of an installed command (1 when absent)."""
    match = _HOOK_VERSION_FLAG.search(command)
    return int(match.group(1)) if match else 1


def _program_exists(program: str) -> bool:
    if os.sep in program or (os.altsep and os.altsep in program):
        return os.access(program, os.F_OK)
    return shutil.which(program) is not None


def get_hook_status(store: SettingsStore, predicate: HookPredicate) -> HookStatus:
    """
    Report which triggers have an effective devark hook.

    Args:
        store: Settings store
        predicate: Ownership predicate

    Returns:
        HookStatus with one TriggerStatus per known trigger

    Example:
        >>> status = get_hook_status(store, HookPredicate())
        >>> status.is_installed("SessionStart")
        True
    """
    merged = HookRegistry(store.load_merged())

    per_layer = {
        layer: HookRegistry(document)
        for layer, document in store.load_all().items()
        if document is not None
    }

    triggers: list[TriggerStatus] = []
    versions: list[int] = []
    for trigger in Trigger:
        commands = [loc.command for loc in merged.owned_entries(predicate.owns, trigger)]
        versions.extend(hook_version(c) for c in commands)
        sources = [
            layer.value
            for layer, registry in per_layer.items()
            if registry.owned_entries(predicate.owns, trigger)
        ]
        triggers.append(
            TriggerStatus(
                trigger=trigger.value,
                installed=bool(commands),
                commands=commands,
                sources=sources,
            )
        )

    oldest = min(versions) if versions else None
    return HookStatus(
        installed=any(t.installed for t in triggers),
        triggers=triggers,
        hook_version=oldest,
        outdated=oldest is not None and oldest < HOOK_VERSION,
    )


def validate_hooks(
    store: SettingsStore,
    predicate: HookPredicate,
    cli_path: str,
) -> HookValidationResult:
    """
    Validate every effective devark hook.

    Args:
        store: Settings store
        predicate: Ownership predicate
        cli_path: Canonical CLI path or invocation currently configured

    Returns:
        HookValidationResult; valid only if at least one hook is installed
        and no errors were found

    Example:
        >>> result = validate_hooks(store, HookPredicate(), "/usr/local/bin/devark")
        >>> result.messages
        ['PreCompact hook uses different CLI path: /old/bin/devark send']
    """
    registry = HookRegistry(store.load_merged())
    owned = registry.owned_entries(predicate.owns)

    if not owned:
        return HookValidationResult(
            valid=False,
            errors=[
                HookIssue(code=HookErrorCode.NO_HOOKS_INSTALLED, message="No hooks installed")
            ],
        )

    errors: list[HookIssue] = []
    missing: set[str] = set()

    for location in owned:
        invocation = parse_invocation(location.command)
        if invocation is not None:
            program = invocation.program
            if program not in missing and not _program_exists(program):
                missing.add(program)
                errors.append(
                    HookIssue(
                        code=HookErrorCode.COMMAND_NOT_FOUND,
                        message=f"CLI command not found: {program}",
                        trigger=location.trigger,
                        file_path=program,
                    )
                )

        if cli_path and not invokes_cli_path(location.command, cli_path):
            errors.append(
                HookIssue(
                    code=HookErrorCode.PATH_MISMATCH,
                    message=f"{location.trigger} hook uses different CLI path: {location.command}",
                    trigger=location.trigger,
                )
            )

    return HookValidationResult(valid=not errors, errors=errors, hooks_checked=len(owned))


def layers_with_hooks(store: SettingsStore, predicate: HookPredicate) -> list[SettingsLayer]:
    """Layers whose own document contains at least one devark hook."""
    return [
        layer
        for layer, document in store.load_all().items()
        if document is not None and HookRegistry(document).owned_entries(predicate.owns)
    ]
