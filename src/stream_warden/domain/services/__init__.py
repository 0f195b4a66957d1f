"""Abstract base classes for domain services."""

from stream_warden.domain.services.configuration_provider import (
    ConfigurationProvider,
)
from stream_warden.domain.services.status_sink import (
    CallbackStatusSink,
    NullStatusSink,
    StatusSink,
)

__all__ = [
    "CallbackStatusSink",
    "ConfigurationProvider",
    "NullStatusSink",
    "StatusSink",
]
