"""
Result models for hook installation, removal, status and validation.

Every public hook operation returns one of these models rather than raising:
callers (the CLI) decide on messaging and exit codes from ``success`` /
``valid`` and the typed ``HookIssue`` records.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class HookErrorCode(str, Enum):
    """Typed error kinds reported by hook operations."""

    PERSISTENCE_FAILED = "persistence_failed"
    NO_HOOKS_FOUND = "no_hooks_found"
    ALREADY_LOCKED = "already_locked"
    COMMAND_NOT_FOUND = "command_not_found"
    PATH_MISMATCH = "path_mismatch"
    NO_HOOKS_INSTALLED = "no_hooks_installed"


class HookIssue(BaseModel):
    """Represents an error or diagnostic from a hook operation."""

    code: HookErrorCode = Field(description="Error kind")
    message: str = Field(description="Human-readable issue description")
    trigger: str | None = Field(default=None, description="Trigger if applicable")
    file_path: str | None = Field(default=None, description="Related file path if applicable")


class HookInstallResult(BaseModel):
    """Result of hook installation operation."""

    success: bool = Field(description="Whether installation succeeded")
    layer: str = Field(description="Settings layer that was targeted")
    hooks_installed: list[str] = Field(
        default_factory=list, description="Triggers that received a new entry"
    )
    hooks_skipped: list[str] = Field(
        default_factory=list, description="Triggers where the command was already present"
    )
    settings_file: str | None = Field(
        default=None, description="Path to settings file that was targeted"
    )
    error: HookIssue | None = Field(default=None, description="Failure details")
    message: str | None = Field(default=None, description="Summary message")

    @property
    def added(self) -> bool:
        """Whether any entry was added."""
        return bool(self.hooks_installed)


class HookUninstallResult(BaseModel):
    """Result of hook removal operation."""

    success: bool = Field(description="Whether removal succeeded")
    layer: str = Field(description="Settings layer that was targeted")
    removed_count: int = Field(default=0, description="Number of hook entries removed")
    triggers_affected: list[str] = Field(
        default_factory=list, description="Triggers that lost at least one entry"
    )
    triggers_removed: list[str] = Field(
        default_factory=list, description="Triggers removed entirely"
    )
    settings_file: str | None = Field(
        default=None, description="Path to settings file that was targeted"
    )
    error: HookIssue | None = Field(default=None, description="Failure details")
    message: str | None = Field(default=None, description="Summary message")


class TriggerStatus(BaseModel):
    """Installation state of devark hooks for one trigger."""

    trigger: str = Field(description="Trigger name")
    installed: bool = Field(description="At least one devark hook is effective")
    commands: list[str] = Field(default_factory=list, description="Owned hook commands")
    sources: list[str] = Field(
        default_factory=list, description="Layers holding owned hooks for this trigger"
    )


class HookStatus(BaseModel):
    """Effective devark hook status across all settings layers."""

    installed: bool = Field(description="Any devark hook is effective")
    triggers: list[TriggerStatus] = Field(default_factory=list, description="Per-trigger status")
    hook_version: int | None = Field(
        default=None, description="Oldest hook registry version among installed hooks"
    )
    outdated: bool = Field(
        default=False, description="Some installed hook predates the current registry version"
    )

    def for_trigger(self, trigger: str) -> TriggerStatus | None:
        """Look up a trigger's status by exact name."""
        for status in self.triggers:
            if status.trigger == trigger:
                return status
        return None

    def is_installed(self, trigger: str) -> bool:
        """Whether a devark hook is effective for ``trigger``."""
        status = self.for_trigger(trigger)
        return status is not None and status.installed


class HookValidationResult(BaseModel):
    """Result of validating the effective devark hooks."""

    valid: bool = Field(description="No errors and at least one hook installed")
    errors: list[HookIssue] = Field(default_factory=list, description="Validation errors")
    hooks_checked: int = Field(default=0, description="Number of owned hooks inspected")

    @property
    def messages(self) -> list[str]:
        """Error messages in report order."""
        return [issue.message for issue in self.errors]
