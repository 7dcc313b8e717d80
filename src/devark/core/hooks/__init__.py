"""
Hook configuration and installation for host assistant integration.

This module provides functionality for installing, validating, and removing
devark hook entries in the host's layered settings.json files. Only entries
recognized as devark's (see HookPredicate) are ever added or removed;
everything else in the files is preserved verbatim.

Key Functions:
    install_hook: Install one hook command under a trigger
    install_hooks: Install devark's command for the default triggers
    uninstall_hooks: Remove every devark hook from a layer
    get_hook_status: Report effective devark hooks per trigger
    validate_hooks: Check installed hooks still point at a usable CLI
    claim_trigger: Suppress duplicate handling of a trigger across processes
    claim_for: claim_trigger wired to the configured state directory

Architecture:
    - Non-destructive: foreign hooks and settings are never touched
    - Idempotent: re-running installation is safe
    - Serialized: writers hold a stale-aware lock on the settings file
    - Atomic: settings are written via temp file + rename

Usage:
    from devark.core.hooks import HookPredicate, install_hooks, uninstall_hooks
    from devark.core.settings import SettingsStore

    store = SettingsStore()
    result = install_hooks(store, "/usr/local/bin/devark")
    if result.success:
        print(f"Installed {len(result.hooks_installed)} hooks")

    result = uninstall_hooks(store, HookPredicate(cli_path="/usr/local/bin/devark"))
"""

from devark.core.hooks.dispatch import (
    ClaimOutcome,
    TriggerClaim,
    claim_for,
    claim_trigger,
    trigger_guard,
)
from devark.core.hooks.installer import (
    HOOK_VERSION,
    build_hook_command,
    install_hook,
    install_hooks,
    uninstall_hooks,
)
from devark.core.hooks.models import (
    HookErrorCode,
    HookInstallResult,
    HookIssue,
    HookStatus,
    HookUninstallResult,
    HookValidationResult,
    TriggerStatus,
)
from devark.core.hooks.predicate import (
    DEFAULT_COMMAND_PATTERNS,
    HookInvocation,
    HookPredicate,
    invokes_cli_path,
    parse_invocation,
)
from devark.core.hooks.registry import HookLocation, HookRegistry, RemovalReport
from devark.core.hooks.validator import (
    get_hook_status,
    hook_version,
    layers_with_hooks,
    validate_hooks,
)

__all__ = [
    # Installer functions
    "HOOK_VERSION",
    "build_hook_command",
    "install_hook",
    "install_hooks",
    "uninstall_hooks",
    # Status and validation
    "get_hook_status",
    "hook_version",
    "layers_with_hooks",
    "validate_hooks",
    # Dispatch
    "ClaimOutcome",
    "TriggerClaim",
    "claim_for",
    "claim_trigger",
    "trigger_guard",
    # Ownership and registry
    "DEFAULT_COMMAND_PATTERNS",
    "HookInvocation",
    "HookPredicate",
    "invokes_cli_path",
    "parse_invocation",
    "HookLocation",
    "HookRegistry",
    "RemovalReport",
    # Result models
    "HookErrorCode",
    "HookInstallResult",
    "HookIssue",
    "HookStatus",
    "HookUninstallResult",
    "HookValidationResult",
    "TriggerStatus",
]
