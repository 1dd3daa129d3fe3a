"""Public API for faultline configuration."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    CustomParserSettings,
    FactorySettings,
    FaultlineSettings,
    LoggingSettings,
    ParserSettings,
    RegistrySettings,
    TelemetrySettings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "CustomParserSettings",
    "FactorySettings",
    "FaultlineSettings",
    "LoggingSettings",
    "ParserSettings",
    "RegistrySettings",
    "TelemetrySettings",
    "load_settings",
]
