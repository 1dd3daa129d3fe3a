"""Typed configuration models for faultline runtime settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal, Mapping

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "faultline" / "faultline.yaml"


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "faultline"
    environment: str = "dev"


class FactorySettings(BaseModel):
    """Defaults for the process-wide ``ErrorFactory``."""

    default_code: str = Field(default="E999", min_length=1)
    default_severity: Literal["low", "medium", "high", "critical"] = "medium"
    capture_stack: bool = False
    prefix: str = ""
    default_tags: list[str] = Field(default_factory=list)


class ParserSettings(BaseModel):
    """Per-parser override applied on top of registration defaults."""

    enabled: bool = True
    priority: int | None = None


class CustomParserSettings(BaseModel):
    """Parser built from configuration by the custom parser factory."""

    name: str = Field(min_length=1)
    kind: str = Field(min_length=1)
    priority: int = 50
    enabled: bool = True
    config: dict[str, Any] = Field(default_factory=dict)


class RegistrySettings(BaseModel):
    """Parser registry configuration."""

    include_builtin: bool = True
    parsers: dict[str, ParserSettings] = Field(default_factory=dict)
    custom: list[CustomParserSettings] = Field(default_factory=list)


class TelemetrySettings(BaseModel):
    """Configurable OTel names for classification metrics."""

    enabled: bool = True
    meter_name: str = "faultline.classification"
    metric_classifications_total: str = "faultline_classifications_total"
    metric_classification_duration_ms: str = "faultline_classification_duration_ms"


class FaultlineSettings(BaseSettings):
    """Root settings resolved from init/env/yaml/defaults sources."""

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    factory: FactorySettings = Field(default_factory=FactorySettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    _config_path: ClassVar[Path] = DEFAULT_CONFIG_PATH
    # Explicit environment mapping; ``None`` reads ``os.environ``.
    _environ: ClassVar[Mapping[str, str] | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Apply faultline precedence: init > env > yaml > model defaults."""
        from .loader import EnvironMappingSource

        if cls._environ is not None:
            env_settings = EnvironMappingSource(settings_cls, cls._environ, prefix="FAULTLINE_")
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            YamlConfigSettingsSource(
                settings_cls,
                yaml_file=cls._config_path,
                yaml_file_encoding="utf-8",
            ),
        ]
        return tuple(sources)
