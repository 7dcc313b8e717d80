"""
Configuration data models for devark.

These models define the structure of ~/.config/devark/config.json and the
project's .devark.json, with validation and type safety via Pydantic.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from devark.core.hooks.predicate import DEFAULT_COMMAND_PATTERNS
from devark.core.lock.guard import STALE_LOCK_SECONDS
from devark.core.settings.models import DEFAULT_TRIGGERS, SettingsLayer, Trigger


class DevarkConfig(BaseModel):
    """
    Top-level devark configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = DevarkConfig(cli_path="/usr/local/bin/devark")
        >>> config.lock_stale_seconds
        300
    """
    cli_path: Optional[str] = Field(
        default=None,
        description="Canonical devark invocation written into hooks (path or 'npx devark-cli')"
    )
    recognized_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_COMMAND_PATTERNS),
        description="Names recognized as devark when found in a hook's executable position"
    )
    hook_triggers: list[Trigger] = Field(
        default_factory=lambda: list(DEFAULT_TRIGGERS),
        description="Triggers installed by 'devark hooks install'"
    )
    hook_timeout: Optional[int] = Field(
        default=None,
        ge=1,
        description="Timeout in seconds written into installed hook entries"
    )
    default_layer: SettingsLayer = Field(
        default=SettingsLayer.USER,
        description="Settings layer targeted when --layer is not given"
    )
    lock_stale_seconds: int = Field(
        default=STALE_LOCK_SECONDS,
        ge=1,
        description="Age after which a settings or trigger lock is considered abandoned"
    )
    sync_window_seconds: int = Field(
        default=30,
        ge=0,
        description="A trigger handled within this window is not handled again"
    )

    model_config = ConfigDict(
        extra="ignore",  # Keys owned by other devark components (apiUrl, token, ...)
        validate_assignment=True,
    )

    @field_validator("recognized_commands", "hook_triggers", mode="before")
    @classmethod
    def split_comma_list(cls, v: Union[str, list[str]]) -> Union[str, list[str]]:
        """Accept 'a,b,c' strings (env vars, 'config set') as lists."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("cli_path", mode="before")
    @classmethod
    def blank_cli_path(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty CLI path as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v
