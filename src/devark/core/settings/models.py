"""
Settings data models for devark.

The host assistant reads hooks from layered ``settings.json`` files. The
documents themselves are kept as plain dicts so that keys devark does not know
about survive a load/write cycle untouched; the models here describe the parts
devark reads and writes:

- SettingsLayer: which physical file, in precedence order
- Trigger: lifecycle event names the host fires hooks for
- HookEntry / MatcherGroup: the shape of entries under ``hooks.<Trigger>``
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SettingsLayer(str, Enum):
    """
    Physical settings locations, declared from highest to lowest precedence.

    When the host builds its effective configuration, a populated key in a
    higher layer wins over the same key in a lower one.
    """

    ENTERPRISE = "enterprise"
    LOCAL = "local"
    PROJECT = "project"
    USER = "user"

    @classmethod
    def by_precedence(cls) -> list[SettingsLayer]:
        """Layers from highest to lowest precedence."""
        return list(cls)


class Trigger(str, Enum):
    """
    Lifecycle events at which the host runs hook commands.

    Values are the exact, case-sensitive keys used under ``hooks`` in
    settings files. Legacy spellings (``precompact``) are not normalized.
    """

    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    NOTIFICATION = "Notification"
    USER_PROMPT_SUBMIT = "UserPromptSubmit"
    STOP = "Stop"
    SUBAGENT_STOP = "SubagentStop"
    PRE_COMPACT = "PreCompact"
    SESSION_START = "SessionStart"
    SESSION_END = "SessionEnd"

    @property
    def slug(self) -> str:
        """Lowercase name used in ``--hook-trigger=`` flags."""
        return self.value.lower()


# Triggers devark installs by default
DEFAULT_TRIGGERS: list[Trigger] = [
    Trigger.SESSION_START,
    Trigger.PRE_COMPACT,
    Trigger.SESSION_END,
]


class HookEntry(BaseModel):
    """A single hook command. The ``command`` string is its identity."""

    model_config = ConfigDict(extra="allow")

    type: Literal["command"] = Field(default="command", description="Hook type")
    command: str = Field(description="Shell command the host runs")
    timeout: int | None = Field(default=None, ge=1, description="Timeout in seconds")

    def to_settings(self) -> dict[str, Any]:
        """Dict form as written to settings.json (unset timeout omitted)."""
        return self.model_dump(exclude_none=True)


class MatcherGroup(BaseModel):
    """Hook entries sharing one matcher under a trigger."""

    matcher: str = Field(default="", description="Tool matcher; empty matches all")
    hooks: list[HookEntry] = Field(default_factory=list, description="Ordered hook entries")

    def to_settings(self) -> dict[str, Any]:
        """Dict form as written to settings.json."""
        return {"matcher": self.matcher, "hooks": [h.to_settings() for h in self.hooks]}
