"""Service layer helpers (settings)."""

from .settings import ContextSettings, Settings, SettingsStore, ToolSettings

__all__ = ["ContextSettings", "Settings", "SettingsStore", "ToolSettings"]
