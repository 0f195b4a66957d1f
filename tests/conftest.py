"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
import sys
import threading
import time
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from stream_warden.domain.models.channel import Channel, ChannelConfig
from stream_warden.domain.services.status_sink import StatusSink
from stream_warden.infrastructure.config.models import AppConfig, AppSettings

# Test double for the stream helper. Behaviour is read from a JSON state file
# next to the script so a test can reconfigure it between invocations.
FAKE_HELPER_SOURCE = '''#!{python}
import json
import os
import signal
import subprocess
import sys
import time

STATE = {state!r}

with open(STATE, encoding="utf-8") as f:
    state = json.load(f)

args = sys.argv[1:]
with open(STATE + ".calls", "a", encoding="utf-8") as f:
    f.write(json.dumps(args) + "\\n")

if "--json" in args:
    marker = state.get("live_marker")
    if marker and marker in args[0]:
        sys.exit(0)
    counter = STATE + ".probes"
    count = 0
    if os.path.exists(counter):
        with open(counter, encoding="utf-8") as f:
            count = int(f.read() or 0)
    with open(counter, "w", encoding="utf-8") as f:
        f.write(str(count + 1))
    exits = state.get("probe_exits", [])
    code = exits[count] if count < len(exits) else state.get("probe_default", 1)
    print(json.dumps({{"live": code == 0}}), flush=True)
    sys.exit(code)

record = state.get("record", {{}})
if record.get("ignore_term"):
    signal.signal(signal.SIGTERM, signal.SIG_IGN)

output = args[args.index("-o") + 1]
with open(output, "w", encoding="utf-8") as f:
    f.write("recording")

if record.get("announce"):
    print(record["announce"], flush=True)

if record.get("spawn_child"):
    child = subprocess.Popen(
        [sys.executable, "-c", "import time; time.sleep(600)"],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    with open("%s.child.%d" % (STATE, os.getpid()), "w", encoding="utf-8") as f:
        f.write(str(child.pid))

with open("%s.ready.%d" % (STATE, os.getpid()), "w", encoding="utf-8") as f:
    f.write("ready")

time.sleep(record.get("duration", 0))
sys.exit(record.get("exit_code", 0))
'''


class FakeHelper:
    """Executable stand-in for streamlink driven by a JSON state file."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.state_path = directory / "helper-state.json"
        self.path = directory / "fake-streamlink"
        self.path.write_text(
            FAKE_HELPER_SOURCE.format(python=sys.executable, state=str(self.state_path)),
            encoding="utf-8",
        )
        self.path.chmod(0o755)
        self.configure()

    def configure(self, **state: Any) -> None:
        """Replace the helper's behaviour and reset its probe counter."""
        self.state_path.write_text(json.dumps(state), encoding="utf-8")
        counter = Path(f"{self.state_path}.probes")
        if counter.exists():
            counter.unlink()

    def calls(self) -> list[list[str]]:
        """Argument lists of every invocation so far."""
        log = Path(f"{self.state_path}.calls")
        if not log.exists():
            return []
        return [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines() if line]

    def record_calls(self) -> list[list[str]]:
        return [args for args in self.calls() if "-o" in args]

    def child_pids(self) -> list[int]:
        """PIDs of children spawned by recorder invocations."""
        contents = [
            path.read_text(encoding="utf-8").strip()
            for path in self.directory.glob(f"{self.state_path.name}.child.*")
        ]
        return [int(pid) for pid in contents if pid]

    def ready_count(self) -> int:
        """Number of recorder invocations that finished their setup."""
        return len(list(self.directory.glob(f"{self.state_path.name}.ready.*")))


class RecordingSink(StatusSink):
    """Thread-safe sink that keeps everything it receives."""

    def __init__(self) -> None:
        self._changed = threading.Condition(threading.RLock())
        self.events: list[tuple[str, str]] = []
        self.lines: list[str] = []

    def on_status_changed(self, channel: Channel, status: str) -> None:
        with self._changed:
            self.events.append((channel.key, status))
            self._changed.notify_all()

    def on_log_message(self, line: str) -> None:
        with self._changed:
            self.lines.append(line)
            self._changed.notify_all()

    def statuses(self, key: str | None = None) -> list[str]:
        with self._changed:
            return [status for k, status in self.events if key is None or k == key]

    def has_line(self, text: str) -> bool:
        with self._changed:
            return any(text in line for line in self.lines)

    def count_lines(self, text: str) -> int:
        with self._changed:
            return sum(1 for line in self.lines if text in line)

    def wait_for(self, predicate: Callable[[], bool], timeout: float = 10.0) -> bool:
        """Block until the predicate holds, re-checking whenever something arrives."""
        deadline = time.monotonic() + timeout
        with self._changed:
            while not predicate():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._changed.wait(remaining)
            return True


def poll_until(predicate: Callable[[], bool], timeout: float = 10.0, interval: float = 0.05) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a predicate until it holds or the timeout expires."""
    return poll_until


@pytest.fixture
def fake_helper(tmp_path: Path) -> FakeHelper:
    """Create an executable fake helper in a temporary directory."""
    helper_dir = tmp_path / "helper"
    helper_dir.mkdir()
    return FakeHelper(helper_dir)


@pytest.fixture
def sink() -> RecordingSink:
    """Create a sink that records statuses and log lines."""
    return RecordingSink()


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Base output directory for recordings."""
    path = tmp_path / "recordings"
    path.mkdir()
    return path


@pytest.fixture
def settings(output_dir: Path, fake_helper: FakeHelper) -> AppSettings:
    """Settings pointing at the fake helper and a temporary output directory."""
    return AppSettings(
        output_directory=str(output_dir),
        helper_path=str(fake_helper.path),
        record_high_fps=True,
    )


@pytest.fixture
def sample_channel() -> Channel:
    """Create a sample channel for testing."""
    return Channel(
        platform="YouTube",
        channel_name="Alice",
        channel_url="https://www.youtube.com/@Alice/live",
        quality="720p",
    )


@pytest.fixture
def sample_channel_config() -> ChannelConfig:
    """Create a sample channel config for testing."""
    return ChannelConfig(
        platform="Twitch",
        channel_name="speedrunner",
        quality="1080p",
        check_interval=30,
    )


@pytest.fixture
def sample_config_data(tmp_path: Path) -> dict[str, Any]:
    """Sample configuration data for testing."""
    return {
        "settings": {
            "output_directory": str(tmp_path / "downloads"),
            "auto_start_monitoring": True,
            "default_check_interval": 60,
            "default_quality": "1080p",
            "record_high_fps": True,
            "helper_path": "streamlink",
        },
        "channels": [
            {
                "platform": "YouTube",
                "channel_name": "Alice",
                "quality": "720p",
            },
            {
                "platform": "Twitch",
                "channel_name": "speedrunner",
                "channel_url": "https://www.twitch.tv/speedrunner",
                "active": True,
                "quality": "1080p60",
                "check_interval": 30,
            },
            {
                "platform": "Kick",
                "channel_name": "sleepy",
                "active": False,
            },
        ],
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file_path": None,
            "max_file_size": 10485760,
            "backup_count": 5,
        },
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, sample_config_data: dict[str, Any]) -> Path:
    """Create a temporary configuration file for testing."""
    path = tmp_path / "config.yml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(sample_config_data, f, sort_keys=False)
    return path


@pytest.fixture
def app_config(sample_config_data: dict[str, Any]) -> AppConfig:
    """Create an AppConfig instance for testing."""
    return AppConfig(**sample_config_data)
