"""Application services for monitoring and recording channels."""

from stream_warden.application.services.monitoring_service import MonitoringService
from stream_warden.application.services.stream_monitor import StreamMonitor

__all__ = [
    "MonitoringService",
    "StreamMonitor",
]
