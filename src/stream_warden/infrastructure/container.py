"""Dependency injection container configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from dependency_injector import containers, providers

from stream_warden.application.services.monitoring_service import MonitoringService
from stream_warden.domain.services.configuration_provider import ConfigurationProvider
from stream_warden.domain.services.status_sink import NullStatusSink, StatusSink
from stream_warden.infrastructure.config.yaml_provider import YamlConfigurationProvider


def _build_monitoring_service(
    config_provider: ConfigurationProvider,
    status_sink: StatusSink,
) -> MonitoringService:
    return MonitoringService(config_provider.get_settings(), status_sink=status_sink)


class Container(containers.DeclarativeContainer):
    """
    Dependency injection container for the StreamWarden application.

    Holds the configuration provider and the monitoring service as
    singletons, so every command of a CLI run shares one registry of
    monitors.
    """

    config = providers.Configuration()

    status_sink = providers.Singleton(NullStatusSink)

    configuration_provider = providers.Singleton(
        YamlConfigurationProvider,
        config_path=config.path,
    )

    monitoring_service = providers.Singleton(
        _build_monitoring_service,
        config_provider=configuration_provider,
        status_sink=status_sink,
    )


def create_container(
    config_path: str | Path,
    status_sink: Optional[StatusSink] = None,
) -> Container:
    """
    Create and configure the dependency injection container.

    Args:
        config_path: Path to the configuration file
        status_sink: Sink handed to the monitoring service

    Returns:
        Configured container instance
    """
    container = Container()
    container.config.from_dict({"path": str(config_path)})
    if status_sink is not None:
        container.status_sink.override(providers.Object(status_sink))
    return container


def get_configuration_provider(container: Container) -> YamlConfigurationProvider:
    """
    Get the configuration provider from the container.

    Raises:
        ConfigurationError: If the configuration file is missing or invalid
    """
    return container.configuration_provider()


def get_monitoring_service(container: Container) -> MonitoringService:
    """Get the monitoring service from the container."""
    return container.monitoring_service()
