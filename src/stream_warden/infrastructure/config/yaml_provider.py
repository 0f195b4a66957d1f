"""YAML-based configuration provider implementation."""

from __future__ import annotations

import json
import os
import re
import threading
from pathlib import Path
from typing import Any, TextIO

import yaml
from pydantic import ValidationError

from stream_warden.domain.exceptions import ConfigurationError
from stream_warden.domain.models.channel import ChannelConfig
from stream_warden.domain.services.configuration_provider import ConfigurationProvider
from stream_warden.infrastructure.config.models import AppConfig, AppSettings, LoggingConfig

# Matches ${VAR_NAME} or ${VAR_NAME:default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


class YamlConfigurationProvider(ConfigurationProvider):
    """
    Configuration provider that loads settings from YAML files.

    JSON is a subset of YAML, so ``settings.json``-style files load through
    the same path. String values support environment variable substitution,
    and the whole document is validated with Pydantic models.
    """

    def __init__(self, config_path: str | Path) -> None:
        """
        Initialize the YAML configuration provider.

        Args:
            config_path: Path to the YAML (or JSON) configuration file

        Raises:
            ConfigurationError: If the configuration file cannot be loaded or is invalid
        """
        self.config_path = Path(config_path)
        self._config: AppConfig | None = None
        self._raw: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._load_config()

    def _load_config(self) -> None:
        """Load and validate configuration from the file."""
        if not self.config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in configuration file: {e}", e) from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}", e) from e

        if not raw_config:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(raw_config, dict):
            raise ConfigurationError("Configuration file must contain a mapping at the top level")

        try:
            self._config = AppConfig(**self._substitute_env_vars(raw_config))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}", e) from e
        except TypeError as e:
            raise ConfigurationError(f"Failed to load configuration: {e}", e) from e

        self._raw = raw_config

    def _substitute_env_vars(self, obj: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.
        """
        if isinstance(obj, dict):
            return {key: self._substitute_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [self._substitute_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            return self._substitute_string_env_vars(obj)
        else:
            return obj

    def _substitute_string_env_vars(self, value: str) -> str:
        """Substitute environment variables in a string value."""

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.getenv(var_name, default_value)

        return _ENV_VAR_PATTERN.sub(replace_var, value)

    @property
    def config(self) -> AppConfig:
        """Get the loaded configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._config

    def get_settings(self) -> AppSettings:
        """Get the application settings snapshot."""
        return self.config.settings

    def get_channels(self) -> list[ChannelConfig]:
        """Get the ordered list of configured channels."""
        return list(self.config.channels)

    def get_active_channels(self) -> list[ChannelConfig]:
        """Get only the channels marked active."""
        return self.config.get_active_channels()

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration."""
        return self.config.logging

    def reload(self) -> None:
        """Reload configuration from source."""
        self._config = None
        self._load_config()

    def save_channels(self, channels: list[ChannelConfig]) -> None:
        """
        Persist the channel list, leaving the other sections as written.

        Raises:
            ConfigurationError: If the list is invalid or the file cannot be written
        """
        with self._lock:
            updated = self.config.model_copy()
            try:
                updated.channels = list(channels)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid channel list: {e}", e) from e

            raw = dict(self._raw)
            raw["channels"] = [
                channel.model_dump(mode="json", exclude_none=True) for channel in channels
            ]
            # The loaded config only changes once the file is written
            self._write(raw)
            self._config = updated
            self._raw = raw

    def add_channel(self, channel: ChannelConfig) -> None:
        """
        Append a channel and save.

        Raises:
            ConfigurationError: If a channel with the same key already exists
        """
        if self.config.get_channel(channel.platform, channel.channel_name) is not None:
            raise ConfigurationError(f"Channel already configured: {channel.key}")
        self.save_channels([*self.config.channels, channel])

    def remove_channel(self, platform: str, channel_name: str) -> bool:
        """
        Remove a channel and save.

        Returns:
            True if a channel was removed, False if it was not configured
        """
        existing = self.config.get_channel(platform, channel_name)
        if existing is None:
            return False
        self.save_channels([c for c in self.config.channels if c.key != existing.key])
        return True

    def update_channel(self, platform: str, channel_name: str, **changes: Any) -> ChannelConfig:
        """
        Change fields of a configured channel and save, keeping its position.

        Platform and name identify the channel and cannot be changed here.

        Returns:
            The updated channel record

        Raises:
            ConfigurationError: If the channel is not configured or the changes are invalid
        """
        if {"platform", "channel_name"} & changes.keys():
            raise ConfigurationError("Platform and channel name cannot be changed")
        existing = self.config.get_channel(platform, channel_name)
        if existing is None:
            raise ConfigurationError(f"Channel not found: {platform}:{channel_name}")

        try:
            updated = ChannelConfig(**{**existing.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid channel settings: {e}", e) from e

        self.save_channels(
            [updated if c.key == existing.key else c for c in self.config.channels]
        )
        return updated

    def _write(self, raw: dict[str, Any]) -> None:
        """Write the raw document back in the file's own format."""
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                _dump_document(raw, f, self.config_path)
        except OSError as e:
            raise ConfigurationError(f"Failed to write configuration file: {e}", e) from e


def _dump_document(raw: dict[str, Any], stream: TextIO, path: Path) -> None:
    """Serialize as pretty JSON for ``.json`` files and YAML otherwise."""
    if path.suffix.lower() == ".json":
        json.dump(raw, stream, indent=4)
        stream.write("\n")
    else:
        yaml.safe_dump(raw, stream, sort_keys=False, allow_unicode=True)


def create_default_config(config_path: str | Path, overwrite: bool = False) -> Path:
    """
    Write a configuration file populated with default settings.

    Args:
        config_path: Destination path (``.yml``/``.yaml`` or ``.json``)
        overwrite: Replace an existing file

    Returns:
        The path that was written

    Raises:
        ConfigurationError: If the file exists and overwrite is False
    """
    path = Path(config_path)
    if path.exists() and not overwrite:
        raise ConfigurationError(f"Configuration file already exists: {path}")

    defaults = AppSettings.model_fields
    raw: dict[str, Any] = {
        "settings": {name: field.default for name, field in defaults.items()},
        "channels": [],
        "logging": LoggingConfig().model_dump(mode="json"),
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(path, "w", encoding="utf-8") as f:
            _dump_document(raw, f, path)
    except OSError as e:
        raise ConfigurationError(f"Failed to write configuration file: {e}", e) from e
    return path
