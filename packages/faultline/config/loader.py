"""Configuration loading with deterministic precedence.

The cascade is always:
1) CLI params
2) Environment variables
3) ~/.config/faultline/faultline.yaml
4) Model defaults

Environment variable format:
- Prefix: ``FAULTLINE_``
- Nested keys: ``__`` separator
- Example: ``FAULTLINE_LOGGING__LEVEL=DEBUG`` -> ``logging.level = "DEBUG"``
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, ClassVar, Mapping

from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from .models import FaultlineSettings


class EnvironMappingSource(PydanticBaseSettingsSource):
    """Settings source reading prefixed variables from an explicit mapping."""

    def __init__(self, settings_cls: type[BaseSettings], environ: Mapping[str, str], *, prefix: str) -> None:
        super().__init__(settings_cls)
        self._data = _load_env_config(environ=environ, prefix=prefix)

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in self._data.items()
            if name in self.settings_cls.model_fields
        }


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
) -> FaultlineSettings:
    """Resolve ``FaultlineSettings`` through the standard precedence cascade.

    ``environ`` replaces ``os.environ`` when given and ``config_path``
    replaces the default YAML location.
    """
    resolved_path = Path(config_path) if config_path is not None else FaultlineSettings._config_path
    resolved_environ = dict(environ) if environ is not None else None

    class _ResolvedSettings(FaultlineSettings):
        _config_path: ClassVar[Path] = resolved_path
        _environ: ClassVar[Mapping[str, str] | None] = resolved_environ

    return _ResolvedSettings(**dict(cli_params or {}))


def _load_env_config(*, environ: Mapping[str, str], prefix: str) -> dict[str, Any]:
    """Extract and map prefixed environment variables into nested config."""
    output: dict[str, Any] = {}
    for key, raw_value in environ.items():
        if not key.upper().startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        path = [segment.strip().lower() for segment in remainder.split("__") if segment.strip()]
        if not path:
            continue

        _set_nested(output, path, _coerce_scalar(raw_value))
    return output


def _set_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Set a nested mapping value by path, creating intermediate dicts."""
    cursor: dict[str, Any] = target
    for segment in path[:-1]:
        child = cursor.get(segment)
        if not isinstance(child, dict):
            child = {}
            cursor[segment] = child
        cursor = child
    cursor[path[-1]] = value


def _coerce_scalar(raw: str) -> Any:
    """Coerce scalar env strings into bool/int/float/JSON when obvious."""
    value = raw.strip()
    lowered = value.lower()

    if lowered in {"true", "false"}:
        return lowered == "true"

    if lowered in {"null", "none"}:
        return None

    if value.startswith("{") or value.startswith("["):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return raw

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        return raw
