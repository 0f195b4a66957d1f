"""Domain models for the StreamWarden application."""

from stream_warden.domain.models.channel import Channel, ChannelConfig, Platform
from stream_warden.domain.models.quality import build_quality_chain, extract_quality
from stream_warden.domain.models.recording import (
    RecordingTarget,
    build_output_filename,
    sanitize_segment,
)
from stream_warden.domain.models.status import ChannelStatus

__all__ = [
    "Channel",
    "ChannelConfig",
    "ChannelStatus",
    "Platform",
    "RecordingTarget",
    "build_output_filename",
    "build_quality_chain",
    "extract_quality",
    "sanitize_segment",
]
