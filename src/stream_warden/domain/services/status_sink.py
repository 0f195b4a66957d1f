"""Status sink through which monitors publish status and log lines."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from stream_warden.domain.models.channel import Channel


class StatusSink(ABC):
    """
    Receiver of monitor status transitions and log lines.

    Both callbacks may be invoked from any thread. Implementations that feed
    a UI are responsible for marshaling onto the UI thread themselves.
    """

    @abstractmethod
    def on_status_changed(self, channel: Channel, status: str) -> None:
        """
        Called when a channel's status changes.

        Args:
            channel: The channel whose status changed
            status: One of "", "Offline", "Recording", "Error"
        """
        pass

    @abstractmethod
    def on_log_message(self, line: str) -> None:
        """
        Called with a human-readable log line.

        Args:
            line: Message prefixed with "[HH:MM:SS] "
        """
        pass


class NullStatusSink(StatusSink):
    """Sink that discards everything."""

    def on_status_changed(self, channel: Channel, status: str) -> None:
        pass

    def on_log_message(self, line: str) -> None:
        pass


class CallbackStatusSink(StatusSink):
    """Sink that forwards to a pair of plain callables."""

    def __init__(
        self,
        on_status: Optional[Callable[[Channel, str], None]] = None,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._on_status = on_status
        self._on_log = on_log

    def on_status_changed(self, channel: Channel, status: str) -> None:
        if self._on_status is not None:
            self._on_status(channel, status)

    def on_log_message(self, line: str) -> None:
        if self._on_log is not None:
            self._on_log(line)
