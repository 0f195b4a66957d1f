"""Observable channel status values."""

from __future__ import annotations

from enum import Enum


class ChannelStatus(str, Enum):
    """Status published by a channel monitor."""

    CLEARED = ""
    OFFLINE = "Offline"
    RECORDING = "Recording"
    ERROR = "Error"

    def __str__(self) -> str:
        return self.value
