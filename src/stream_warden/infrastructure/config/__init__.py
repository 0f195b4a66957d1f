"""Configuration providers and models."""

from stream_warden.infrastructure.config.models import AppConfig, AppSettings, LoggingConfig
from stream_warden.infrastructure.config.yaml_provider import (
    YamlConfigurationProvider,
    create_default_config,
)

__all__ = [
    "AppConfig",
    "AppSettings",
    "LoggingConfig",
    "YamlConfigurationProvider",
    "create_default_config",
]
