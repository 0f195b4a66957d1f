"""Abstract base class for configuration management."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from stream_warden.domain.models.channel import ChannelConfig

if TYPE_CHECKING:
    from stream_warden.infrastructure.config.models import AppSettings, LoggingConfig


class ConfigurationProvider(ABC):
    """
    Abstract service for providing application configuration.

    This interface defines the contract for loading and persisting the
    application settings and the watched channel list.
    """

    @abstractmethod
    def get_settings(self) -> AppSettings:
        """
        Get the application settings snapshot.

        Returns:
            Validated settings (output directory, check interval, helper path, ...)

        Raises:
            ConfigurationError: If configuration is invalid or cannot be loaded
        """
        pass

    @abstractmethod
    def get_channels(self) -> list[ChannelConfig]:
        """
        Get the ordered list of configured channels.

        Returns:
            List of validated channel configurations

        Raises:
            ConfigurationError: If configuration is invalid or cannot be loaded
        """
        pass

    @abstractmethod
    def get_active_channels(self) -> list[ChannelConfig]:
        """Get only the channels marked active."""
        pass

    @abstractmethod
    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration."""
        pass

    @abstractmethod
    def save_channels(self, channels: list[ChannelConfig]) -> None:
        """
        Persist the channel list.

        Args:
            channels: Channels in display order

        Raises:
            ConfigurationError: If the list is invalid or cannot be written
        """
        pass

    @abstractmethod
    def reload(self) -> None:
        """
        Reload configuration from source.

        Raises:
            ConfigurationError: If configuration cannot be reloaded or is invalid
        """
        pass
