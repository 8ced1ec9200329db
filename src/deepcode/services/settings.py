"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = [
    "Settings",
    "ToolSettings",
    "ContextSettings",
    "SettingsStore",
    "parse_override",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".deepcode"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "DEEPCODE_API_KEY": "api_key",
    "DEEPCODE_BASE_URL": "base_url",
    "DEEPCODE_MODEL": "model",
    "DEEPCODE_ORGANIZATION": "organization",
    "DEEPCODE_WORKSPACE": "workspace_root",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "DEEPCODE_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "DEEPCODE_REQUEST_TIMEOUT": "request_timeout",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "DEEPCODE_MAX_RETRIES": "max_retries",
    "DEEPCODE_MAX_CONTEXT_TOKENS": "context.max_tokens",
    "DEEPCODE_COMMAND_TIMEOUT_MS": "tools.command_timeout_ms",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_TRANSIENT_FIELDS = frozenset({"api_key"})


@dataclass(slots=True)
class ToolSettings:
    """Tool catalog limits and toggles."""

    disabled_tools: list[str] = field(default_factory=list)
    command_timeout_ms: int = 30_000
    command_max_buffer: int = 2 * 1024 * 1024
    diagnostics_delay: float = 0.5


@dataclass(slots=True)
class ContextSettings:
    """Prompt budget and rolling-context sizing."""

    max_tokens: int = 56_000
    chars_per_token: float = 3.5
    keep_verbatim: int = 6
    max_summary_chars: int = 4_000
    skeleton_chars: int = 12_000


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions.

    ``api_key`` is read from the environment and never written to disk.
    """

    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    organization: str | None = None
    workspace_root: str | None = None
    request_timeout: float = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: dict[str, str] = field(default_factory=dict)
    debug_logging: bool = False
    tools: ToolSettings = field(default_factory=ToolSettings)
    context: ContextSettings = field(default_factory=ContextSettings)


_NESTED: Mapping[str, type] = {"tools": ToolSettings, "context": ContextSettings}


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, then apply CLI and environment overrides."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload, Settings)
            for name, nested_type in _NESTED.items():
                nested_payload = data.get(name)
                if isinstance(nested_payload, Mapping):
                    data[name] = nested_type(**_filter_fields(nested_payload, nested_type))
                elif name in data:
                    data.pop(name)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
        LOGGER.debug("Settings loaded from %s", self._path)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = self._serialize(settings)
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _serialize(self, settings: Settings) -> Dict[str, Any]:
        data = asdict(settings)
        for name in _TRANSIENT_FIELDS:
            data.pop(name, None)
        data["version"] = _SETTINGS_VERSION
        return data

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        """Apply ``field`` or ``group.field`` overrides; unknown keys are ignored."""

        top_level: Dict[str, Any] = {}
        nested: Dict[str, Dict[str, Any]] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            group, _, name = key.partition(".")
            if name:
                nested_type = _NESTED.get(group)
                if nested_type is None or name not in _field_names(nested_type):
                    LOGGER.debug("Ignoring unknown %s override %s", source, key)
                    continue
                nested.setdefault(group, {})[name] = value
            elif key in _field_names(Settings) and key not in _NESTED:
                top_level[key] = value
            else:
                LOGGER.debug("Ignoring unknown %s override %s", source, key)
        for group, values in nested.items():
            top_level[group] = replace(getattr(settings, group), **values)
        if top_level:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(top_level))
            settings = replace(settings, **top_level)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid integer",
                    env_name,
                    value,
                )
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid float", env_name, value
                )
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def parse_override(text: str) -> tuple[str, Any]:
    """Parse a ``KEY=VALUE`` override; the value is JSON-decoded when possible."""

    key, sep, raw = text.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Override must look like KEY=VALUE, got {text!r}")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key, value


def _field_names(cls: type) -> set[str]:
    return {item.name for item in fields(cls)}


def _filter_fields(payload: Mapping[str, Any], cls: type) -> Dict[str, Any]:
    allowed = _field_names(cls) - _TRANSIENT_FIELDS
    return {key: value for key, value in payload.items() if key in allowed}


def redact_secret(value: str) -> str:
    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"
