"""
devark - hook management for AI coding assistant settings

Installs, removes and validates the hooks devark registers in the
assistant's layered settings.json files.
"""

__version__ = "0.3.0"

# Re-export core models for convenience
from devark.core.config.models import DevarkConfig
from devark.core.settings.models import SettingsLayer, Trigger

__all__ = ["DevarkConfig", "SettingsLayer", "Trigger", "__version__"]
