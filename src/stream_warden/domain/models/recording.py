"""Recording filename and directory discipline."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

UNKNOWN_SEGMENT = "unknown"
STREAM_TITLE = "stream"
RECORDING_EXTENSION = ".ts"
TIMESTAMP_FORMAT = "%y%m%d%H%M%S"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_]")
_UNDERSCORE_RUNS = re.compile(r"_+")


def sanitize_segment(text: str | None) -> str:
    """
    Make a string safe for use as a filename segment.

    Every character outside ``[A-Za-z0-9_]`` becomes ``_`` and runs of
    underscores collapse to one. Blank input becomes ``unknown``; the result
    is never empty.
    """
    if text is None or not text.strip():
        return UNKNOWN_SEGMENT
    cleaned = _UNSAFE_CHARS.sub("_", text.strip())
    cleaned = _UNDERSCORE_RUNS.sub("_", cleaned)
    return cleaned or UNKNOWN_SEGMENT


def build_output_filename(
    platform: str,
    channel_name: str,
    started_at: datetime | None = None,
) -> str:
    """Compose ``{platform}_{yyMMddHHmmss}_{channel_name}_stream.ts``."""
    timestamp = (started_at or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return (
        f"{sanitize_segment(platform)}_{timestamp}_"
        f"{sanitize_segment(channel_name)}_{sanitize_segment(STREAM_TITLE)}"
        f"{RECORDING_EXTENSION}"
    )


def channel_directory(output_directory: str | Path, channel_name: str) -> Path:
    """Per-channel directory under the output directory."""
    return Path(output_directory) / sanitize_segment(channel_name)


@dataclass(frozen=True)
class RecordingTarget:
    """Where a recording is written."""

    directory: Path
    filename: str
    fell_back: bool = False

    @property
    def path(self) -> Path:
        """Full path of the recording file."""
        return self.directory / self.filename

    def __str__(self) -> str:
        return str(self.path)
