"""Per-channel monitor: liveness probing, recording, and termination."""

from __future__ import annotations

import logging
import subprocess
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from stream_warden.domain.exceptions import HelperError, ProcessTreeError
from stream_warden.domain.models.channel import Channel
from stream_warden.domain.models.quality import UNKNOWN_QUALITY, build_quality_chain, extract_quality
from stream_warden.domain.models.recording import (
    RecordingTarget,
    build_output_filename,
    channel_directory,
)
from stream_warden.domain.models.status import ChannelStatus
from stream_warden.domain.services.status_sink import NullStatusSink, StatusSink
from stream_warden.infrastructure.config.models import AppSettings
from stream_warden.infrastructure.process import process_tree
from stream_warden.infrastructure.process.helper import StreamHelper, drain_stream

logger = logging.getLogger(__name__)

RECORDING_CHECK_INTERVAL = 30.0
TERMINATION_GRACE = 2.0
# How long to wait for killed processes and reader threads to wind down
REAP_TIMEOUT = 1.0


def timestamped(message: str) -> str:
    """Prefix a log line with the wall-clock time."""
    return f"[{datetime.now().strftime('%H:%M:%S')}] {message}"


class _QualityTracker:
    """Remembers the first quality announced on either output stream."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.quality: str | None = None

    def offer(self, line: str) -> str | None:
        """Record the quality on this line if none was seen yet; return it when newly found."""
        found = extract_quality(line)
        if found is None:
            return None
        with self._lock:
            if self.quality is not None:
                return None
            self.quality = found
            return found


class StreamMonitor:
    """
    Control loop for a single channel.

    The monitor probes the channel with the helper every ``check_interval``
    seconds. When the channel is live it spawns the helper as a recorder on
    a separate thread and waits for it to exit; the helper's exit marks the
    end of the stream. ``stop()`` interrupts every wait, terminates the
    recorder, and force-kills its whole process tree when it does not exit
    within the grace period.

    Status transitions (``Offline``, ``Recording``, ``Error``, ``""``) and log
    lines are published through the status sink, in the order the monitor
    makes them. Once the cleared status has been published nothing further
    is emitted.
    """

    def __init__(
        self,
        channel: Channel,
        settings: AppSettings,
        check_interval: Optional[float] = None,
        status_sink: Optional[StatusSink] = None,
        *,
        helper: Optional[StreamHelper] = None,
        recording_check_interval: float = RECORDING_CHECK_INTERVAL,
        termination_grace: float = TERMINATION_GRACE,
    ) -> None:
        """
        Initialize the monitor.

        Args:
            channel: Channel to watch; its status is updated by this monitor
            settings: Settings snapshot (output directory, helper path, FPS preference)
            check_interval: Seconds between probes; defaults to the channel's own
                interval or the settings default
            status_sink: Receiver of status changes and log lines
            helper: Helper runner; built from ``settings.helper_path`` when omitted
            recording_check_interval: Seconds between loop wake-ups while recording,
                and the pause after a recording ends
            termination_grace: Seconds a recorder gets to exit after a graceful
                termination request before its tree is force-killed
        """
        self.channel = channel
        self.settings = settings
        self.check_interval = float(
            check_interval
            if check_interval is not None
            else settings.check_interval_for(channel.check_interval)
        )
        self.recording_check_interval = recording_check_interval
        self.termination_grace = termination_grace
        self._sink = status_sink or NullStatusSink()
        self._helper = helper or StreamHelper(settings.helper_path)

        self._lock = threading.RLock()
        self._status_lock = threading.RLock()
        self._running = False
        self._recording = False
        self._stop_requested = False
        self._recording_failed = False
        self._status: str | None = None
        self._closed = False

        self._recording_process: subprocess.Popen[str] | None = None
        self._probe_process: subprocess.Popen[str] | None = None
        self._recorder_thread: threading.Thread | None = None
        self._thread: threading.Thread | None = None

        self._stopped = threading.Event()
        self._recorder_done = threading.Event()
        self._finished = threading.Event()

    # ------------------------------------------------------------------ state

    @property
    def key(self) -> str:
        """Registry key of the monitored channel."""
        return self.channel.key

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def is_recording(self) -> bool:
        with self._lock:
            return self._recording

    @property
    def current_recording_process(self) -> subprocess.Popen[str] | None:
        """Handle of the recorder, None when nothing is recording."""
        with self._lock:
            return self._recording_process

    @property
    def status(self) -> str | None:
        """Last status published, None before the first one."""
        with self._status_lock:
            return self._status

    # -------------------------------------------------------------- lifecycle

    def start(self) -> threading.Thread | None:
        """
        Run the control loop on a dedicated daemon thread.

        Returns:
            The thread, or None if the monitor was already started or stopped
        """
        with self._lock:
            if self._thread is not None or self._stop_requested:
                return None
            self._running = True
            self._thread = threading.Thread(
                target=self.run, name=f"StreamMonitor-{self.key}", daemon=True
            )
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the control loop to exit.

        Returns:
            True if the loop has exited (or never started)
        """
        if self._thread is None:
            return True
        return self._finished.wait(timeout)

    def run(self) -> None:
        """Control loop. Blocks until the monitor is stopped or the channel is deactivated."""
        with self._lock:
            if self._stop_requested:
                self._finished.set()
                return
            self._running = True

        try:
            self._transition(ChannelStatus.OFFLINE)
            self._log(f"Started monitoring channel: {self.channel.channel_name}")

            while self._should_continue():
                try:
                    if self._recorder_thread is not None:
                        self._await_recorder()
                        continue

                    live = self._is_stream_live()
                    if not self._should_continue():
                        break
                    if live:
                        self._start_recording()
                        continue

                    self._transition(ChannelStatus.OFFLINE)
                    self._log(
                        f"Channel {self.channel.channel_name} is offline, "
                        f"waiting {self.check_interval:g} seconds..."
                    )
                    if self._sleep(self.check_interval):
                        self._log(f"Monitor interrupted for: {self.channel.channel_name}")
                        break

                except Exception as e:
                    logger.exception("Unexpected error in monitor %s", self.key)
                    self._log(f"Error monitoring {self.channel.channel_name}: {e}")
                    if self._sleep(self.check_interval):
                        break
        finally:
            with self._lock:
                self._running = False
                process = self._recording_process
            # Deactivating the channel ends the recording as well
            self._terminate_recorder(process)
            self._transition(ChannelStatus.CLEARED)
            self._log(f"Stopped monitoring: {self.channel.channel_name}")
            self._finished.set()

    def stop(self) -> None:
        """
        Stop monitoring and make sure the recorder's process tree is gone.

        Returns once the recorder and all of its descendants have exited or
        been killed (at most the termination grace plus the kill). Calling it
        again is a no-op.
        """
        with self._lock:
            if self._stop_requested:
                return
            self._stop_requested = True
            self._running = False
            self._recording = False
            probe = self._probe_process
            process = self._recording_process

        self._stopped.set()
        if probe is not None:
            self._kill_quietly(probe)
        self._terminate_recorder(process)
        self._transition(ChannelStatus.CLEARED)

    def kill(self) -> None:
        """Force-kill the probe and recorder trees without a grace period."""
        with self._lock:
            self._stop_requested = True
            self._running = False
            self._recording = False
            probe = self._probe_process
            process = self._recording_process
        self._stopped.set()
        if probe is not None:
            self._kill_quietly(probe)
        if process is not None:
            self._force_kill_tree(process, [])
            self._release(process)

    # ------------------------------------------------------------ control loop

    def _should_continue(self) -> bool:
        with self._lock:
            return self._running and not self._stop_requested and self.channel.active

    def _sleep(self, seconds: float) -> bool:
        """Interruptible sleep. Returns True when the monitor was stopped meanwhile."""
        return self._stopped.wait(seconds)

    def _await_recorder(self) -> None:
        """Wait for the running recorder; after it exits, pause before probing again."""
        if not self._recorder_done.wait(self.recording_check_interval):
            return

        recorder = self._recorder_thread
        if recorder is not None:
            recorder.join(REAP_TIMEOUT)
        self._recorder_thread = None

        if not self._should_continue():
            return
        with self._lock:
            failed = self._recording_failed
        if not failed:
            self._transition(ChannelStatus.OFFLINE)
            self._log(f"Stream ended for: {self.channel.channel_name}")
        self._sleep(self.recording_check_interval)

    def _is_stream_live(self) -> bool:
        """Probe the channel with the helper; exit code 0 means live."""
        command = self._helper.probe_command(self.channel.channel_url)
        try:
            with self._lock:
                if not self._running:
                    return False
                process = self._helper.spawn(command)
                self._probe_process = process
        except HelperError as e:
            self._log(f"Error checking stream status for {self.channel.channel_name}: {e}")
            return False

        try:
            readers = [
                drain_stream(process.stdout, f"{self.key}-probe-stdout", self._debug_line),
                drain_stream(process.stderr, f"{self.key}-probe-stderr", self._debug_line),
            ]
            exit_code = process.wait()
            for reader in readers:
                reader.join(REAP_TIMEOUT)
        finally:
            with self._lock:
                if self._probe_process is process:
                    self._probe_process = None
        return exit_code == 0

    def _start_recording(self) -> None:
        with self._lock:
            if not self._running or self._recording:
                return
            self._recording = True
            self._recording_failed = False
            self._recorder_done.clear()

        self._transition(ChannelStatus.RECORDING)
        self._log(f"Stream is live! Starting recording: {self.channel.channel_name}")

        self._recorder_thread = threading.Thread(
            target=self._record, name=f"StreamRecorder-{self.key}", daemon=True
        )
        self._recorder_thread.start()

    # --------------------------------------------------------------- recorder

    def _record(self) -> None:
        """Recorder thread: spawn the helper, scan its output, wait for exit."""
        process: subprocess.Popen[str] | None = None
        try:
            target = self._prepare_target()
            quality_chain = build_quality_chain(self.channel.quality, self.settings.record_high_fps)
            command = self._helper.record_command(
                self.channel.channel_url, quality_chain, target.filename
            )
            self._log(f"Starting recording to: {target.path}")

            with self._lock:
                if not self._running:
                    return
                process = self._helper.spawn(command, cwd=target.directory, new_session=True)
                self._recording_process = process

            tracker = _QualityTracker()

            def scan(line: str) -> None:
                logger.debug("[%s] %s", self.key, line)
                found = tracker.offer(line)
                if found is not None:
                    self._log(f"Recording quality: {found}")

            readers = [
                drain_stream(process.stdout, f"{self.key}-record-stdout", scan),
                drain_stream(process.stderr, f"{self.key}-record-stderr", scan),
            ]
            exit_code = process.wait()
            for reader in readers:
                reader.join(REAP_TIMEOUT)

            if exit_code == 0:
                self._log(
                    f"Recording completed successfully: {target.filename} "
                    f"(Quality: {tracker.quality or UNKNOWN_QUALITY})"
                )
            else:
                self._log(
                    f"Recording ended with exit code {exit_code}: {self.channel.channel_name}"
                )

        except Exception as e:
            logger.exception("Recording failed for %s", self.key)
            self._log(f"Recording error for {self.channel.channel_name}: {e}")
            with self._lock:
                self._recording_failed = True
            self._transition(ChannelStatus.ERROR)
        finally:
            with self._lock:
                self._recording = False
            if process is not None:
                self._release(process)
            self._recorder_done.set()

    def _prepare_target(self) -> RecordingTarget:
        """
        Pick the recording file and make sure its directory exists.

        Falls back to the base output directory when the channel directory
        cannot be created.
        """
        base = Path(self.settings.output_directory)
        filename = build_output_filename(self.channel.platform, self.channel.channel_name)
        directory = channel_directory(base, self.channel.channel_name)

        if directory.is_dir():
            return RecordingTarget(directory=directory, filename=filename)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            self._log(f"Created channel directory: {directory}")
            return RecordingTarget(directory=directory, filename=filename)
        except OSError as e:
            self._log(f"Failed to create channel directory: {directory} ({e})")
            base.mkdir(parents=True, exist_ok=True)
            return RecordingTarget(directory=base, filename=filename, fell_back=True)

    # ------------------------------------------------------------ termination

    def _terminate_recorder(self, process: subprocess.Popen[str] | None) -> None:
        """Graceful termination with a grace period, then a forced tree kill."""
        if process is None:
            return
        if process.poll() is not None:
            self._release(process)
            return

        self._log(f"Forcing stop of recording process for: {self.channel.channel_name}")

        # Children spawned by the helper are reparented once it exits, so
        # remember them before asking it to terminate.
        try:
            snapshot = process_tree.descendants(process.pid)
        except ProcessTreeError as e:
            logger.warning("%s", e)
            snapshot = []

        try:
            process.terminate()
        except OSError as e:
            logger.debug("Terminate failed for PID %s: %s", process.pid, e)

        try:
            process.wait(timeout=self.termination_grace)
        except subprocess.TimeoutExpired:
            self._log("Process did not terminate gracefully, forcing kill...")
            self._force_kill_tree(process, snapshot)
        else:
            orphans = process_tree.kill_processes(snapshot)
            if orphans:
                self._log(f"Killed {len(orphans)} orphaned child process(es)")
                process_tree.wait_for_exit(orphans, REAP_TIMEOUT)
        finally:
            self._release(process)

    def _force_kill_tree(
        self,
        process: subprocess.Popen[str],
        snapshot: list,
    ) -> None:
        """Kill every descendant, then the process itself."""
        try:
            tree = process_tree.descendants(process.pid)
        except ProcessTreeError as e:
            self._log(f"Error killing process tree: {e}")
            tree = None

        killed = []
        if tree is not None:
            known = {child.pid for child in tree}
            tree.extend(child for child in snapshot if child.pid not in known)
            for child in tree:
                self._log(f"Killing child process PID: {child.pid}")
            killed = process_tree.kill_processes(tree)

        try:
            process.kill()
        except OSError as e:
            logger.debug("Kill failed for PID %s: %s", process.pid, e)
        try:
            process.wait(timeout=self.termination_grace)
        except subprocess.TimeoutExpired:
            self._log(f"Process {process.pid} still alive after forced kill")

        process_tree.wait_for_exit(killed, REAP_TIMEOUT)
        if tree is not None:
            self._log(f"Process tree terminated for: {self.channel.channel_name}")

    def _kill_quietly(self, process: subprocess.Popen[str]) -> None:
        try:
            process.kill()
        except OSError as e:
            logger.debug("Kill failed for PID %s: %s", process.pid, e)

    def _release(self, process: subprocess.Popen[str]) -> None:
        """Forget an exited recorder and kill anything left in its process group."""
        with self._lock:
            if self._recording_process is process:
                self._recording_process = None

        leftovers = process_tree.kill_group(process.pid)
        if leftovers:
            self._log(f"Killed {len(leftovers)} leftover process(es) of the recorder")
            process_tree.wait_for_exit(leftovers, REAP_TIMEOUT)

    # ----------------------------------------------------------------- output

    def _transition(self, status: ChannelStatus) -> None:
        """Publish a status change; repeats and anything after the cleared status are dropped."""
        with self._status_lock:
            if self._closed or self._status == status.value:
                return
            self._status = status.value
            if status is ChannelStatus.CLEARED:
                self._closed = True
            self.channel.status = status.value
            try:
                self._sink.on_status_changed(self.channel, status.value)
            except Exception:
                logger.exception("Status sink failed for %s", self.key)

    def _log(self, message: str) -> None:
        text = f"[{self.channel.platform}] {message}"
        logger.info(text)
        try:
            self._sink.on_log_message(timestamped(text))
        except Exception:
            logger.exception("Status sink failed for %s", self.key)

    def _debug_line(self, line: str) -> None:
        logger.debug("[%s] %s", self.key, line)

    def __repr__(self) -> str:
        return (
            f"StreamMonitor(key='{self.key}', running={self.is_running}, "
            f"recording={self.is_recording})"
        )
