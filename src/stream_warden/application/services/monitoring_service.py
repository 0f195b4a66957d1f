"""Supervisor owning one stream monitor per channel."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Iterable, Optional

from stream_warden.application.services.stream_monitor import (
    RECORDING_CHECK_INTERVAL,
    TERMINATION_GRACE,
    StreamMonitor,
    timestamped,
)
from stream_warden.domain.models.channel import Channel
from stream_warden.domain.services.status_sink import NullStatusSink, StatusSink
from stream_warden.infrastructure.config.models import AppSettings

logger = logging.getLogger(__name__)

# Extra time granted on shutdown on top of the recorder termination grace
SHUTDOWN_MARGIN = 3.0


class MonitoringService:
    """
    Registry and lifecycle owner of all channel monitors.

    Channels are identified by ``"{platform}:{channel_name}"``; at most one
    monitor per key exists at any time. Every monitor runs its control loop
    on its own daemon thread and publishes through the service's status
    sink. ``shutdown()`` does not return before every recorder process tree
    has been terminated.
    """

    def __init__(
        self,
        settings: AppSettings,
        status_sink: Optional[StatusSink] = None,
        *,
        recording_check_interval: float = RECORDING_CHECK_INTERVAL,
        termination_grace: float = TERMINATION_GRACE,
        shutdown_grace: Optional[float] = None,
    ) -> None:
        """
        Initialize the monitoring service.

        Args:
            settings: Default settings snapshot handed to new monitors
            status_sink: Receiver of status changes and log lines of every monitor
            recording_check_interval: Passed to every monitor
            termination_grace: Seconds a recorder gets to exit before a forced kill
            shutdown_grace: Seconds ``shutdown()`` waits for monitors before
                escalating; defaults to the termination grace plus a margin
        """
        self.settings = settings
        self.recording_check_interval = recording_check_interval
        self.termination_grace = termination_grace
        self.shutdown_grace = (
            shutdown_grace if shutdown_grace is not None else termination_grace + SHUTDOWN_MARGIN
        )
        self._sink: StatusSink = status_sink or NullStatusSink()
        self._monitors: dict[str, StreamMonitor] = {}
        self._lock = threading.Lock()
        self._shut_down = False

    def set_status_sink(self, status_sink: Optional[StatusSink]) -> None:
        """Replace the status sink used by monitors started from now on."""
        self._sink = status_sink or NullStatusSink()

    def start(self, channel: Channel, settings: Optional[AppSettings] = None) -> bool:
        """
        Start monitoring a channel.

        A channel that is already monitored is left alone and a log line
        notes the duplicate.

        Args:
            channel: Channel to monitor
            settings: Settings snapshot for this monitor; defaults to the service's

        Returns:
            True if a new monitor was started
        """
        key = channel.key
        with self._lock:
            if self._shut_down:
                monitor = None
                rejected = "Monitoring service is shut down, not starting: "
            elif key in self._monitors:
                monitor = None
                rejected = "Already monitoring: "
            else:
                snapshot = settings or self.settings
                monitor = StreamMonitor(
                    channel,
                    snapshot,
                    status_sink=self._sink,
                    recording_check_interval=self.recording_check_interval,
                    termination_grace=self.termination_grace,
                )
                self._monitors[key] = monitor
                rejected = ""

        if monitor is None:
            self._log(f"{rejected}{key}")
            return False

        monitor.start()
        logger.info("Started monitoring: %s", key)
        return True

    def stop(self, channel: Channel) -> bool:
        """
        Stop monitoring a channel and terminate its recorder.

        Returns:
            True if the channel was being monitored
        """
        key = channel.key
        with self._lock:
            monitor = self._monitors.pop(key, None)
        if monitor is None:
            return False

        monitor.stop()
        logger.info("Stopped monitoring: %s", key)
        return True

    def start_all_active(self, channels: Iterable[Channel]) -> int:
        """
        Start every active channel.

        Returns:
            Number of monitors started
        """
        started = 0
        for channel in channels:
            if channel.active and self.start(channel):
                started += 1
        return started

    def stop_all(self) -> None:
        """Stop every monitor and empty the registry."""
        with self._lock:
            monitors = list(self._monitors.values())
            self._monitors.clear()
        self._stop_monitors(monitors)
        logger.info("Stopped all monitoring")

    def is_monitoring(self, channel: Channel) -> bool:
        """Whether the channel has a registered monitor that is running."""
        with self._lock:
            monitor = self._monitors.get(channel.key)
        return monitor is not None and monitor.is_running

    def get_monitor(self, channel: Channel) -> StreamMonitor | None:
        """The monitor registered for a channel, if any."""
        with self._lock:
            return self._monitors.get(channel.key)

    @property
    def active_monitors(self) -> dict[str, StreamMonitor]:
        """Snapshot of the registry."""
        with self._lock:
            return dict(self._monitors)

    @property
    def is_shut_down(self) -> bool:
        with self._lock:
            return self._shut_down

    def shutdown(self) -> None:
        """
        Stop all monitors and wait until every recorder tree is gone.

        Monitors are stopped concurrently. Any monitor that has not finished
        within the shutdown grace gets its process tree force-killed. Calling
        it again is a no-op.
        """
        with self._lock:
            if self._shut_down:
                return
            self._shut_down = True
            monitors = list(self._monitors.values())
            self._monitors.clear()

        self._log("Shutting down monitoring service...")
        deadline = time.monotonic() + self.shutdown_grace

        stragglers = self._stop_monitors(monitors, timeout=self.shutdown_grace)
        for monitor in monitors:
            if monitor in stragglers:
                continue
            if not monitor.join(max(0.0, deadline - time.monotonic())):
                stragglers.append(monitor)

        if stragglers:
            self._log(
                f"{len(stragglers)} monitor(s) did not stop gracefully, forcing shutdown..."
            )
            for monitor in stragglers:
                monitor.kill()
            for monitor in stragglers:
                if not monitor.join(self.termination_grace):
                    self._log(f"Monitor did not terminate after forced shutdown: {monitor.key}")

        self._log("Monitoring service shutdown complete.")

    def _stop_monitors(
        self,
        monitors: list[StreamMonitor],
        timeout: Optional[float] = None,
    ) -> list[StreamMonitor]:
        """
        Stop monitors concurrently.

        Returns:
            Monitors whose ``stop()`` had not returned within the timeout
        """
        if not monitors:
            return []

        executor = ThreadPoolExecutor(
            max_workers=len(monitors), thread_name_prefix="StreamMonitorStop"
        )
        try:
            futures = {executor.submit(monitor.stop): monitor for monitor in monitors}
            done, pending = wait(futures, timeout=timeout)
            for future in done:
                error = future.exception()
                if error is not None:
                    monitor = futures[future]
                    logger.error("Failed to stop %s: %s", monitor.key, error)
            return [futures[future] for future in pending]
        finally:
            # Pending stops are left to finish on their own; the caller escalates.
            executor.shutdown(wait=False)

    def _log(self, message: str) -> None:
        logger.info(message)
        try:
            self._sink.on_log_message(timestamped(message))
        except Exception:
            logger.exception("Status sink failed")
