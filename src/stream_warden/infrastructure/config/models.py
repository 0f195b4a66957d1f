"""Pydantic configuration models for application settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stream_warden.domain.models.channel import ChannelConfig, Platform


class LoggingConfig(BaseModel):
    """Configuration for application logging."""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string for the log file"
    )
    file_path: str | None = Field(default=None, description="Log file path (None for console only)")
    max_file_size: int = Field(default=10485760, ge=1024, description="Max log file size in bytes (10MB)")
    backup_count: int = Field(default=5, ge=1, description="Number of backup log files to keep")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class AppSettings(BaseModel):
    """
    Settings snapshot read by the monitoring core.

    Monitors only read these values; changing settings means handing a new
    snapshot to monitors started afterwards.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    output_directory: str = Field(
        default="downloads", validate_default=True, description="Base directory for recordings"
    )
    auto_start_monitoring: bool = Field(default=True, description="Start active channels on launch")
    default_check_interval: int = Field(
        default=60, ge=10, le=3600, description="Seconds between liveness probes"
    )
    default_quality: str = Field(default="1080p", min_length=1, description="Quality for new channels")
    record_high_fps: bool = Field(default=True, description="Prefer 60/50 fps variants")
    helper_path: str = Field(default="streamlink", min_length=1, description="Stream-capture executable")

    @field_validator("output_directory")
    @classmethod
    def resolve_output_directory(cls, v: str) -> str:
        """Expand ``~`` and make the output directory absolute."""
        if not v.strip():
            raise ValueError("Output directory cannot be blank")
        return str(Path(v).expanduser().resolve())

    def check_interval_for(self, channel_interval: int | None) -> int:
        """Probe interval for a channel, falling back to the default."""
        return channel_interval if channel_interval is not None else self.default_check_interval


class AppConfig(BaseModel):
    """
    Main application configuration model.

    This is the root configuration object that contains all application settings,
    validated using Pydantic for type safety and runtime validation.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    settings: AppSettings = Field(default_factory=AppSettings)
    channels: list[ChannelConfig] = Field(default_factory=list, description="Watched channels")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: list[ChannelConfig]) -> list[ChannelConfig]:
        """Reject duplicate channel keys."""
        keys = [channel.key for channel in v]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise ValueError(f"Duplicate channels found in configuration: {', '.join(duplicates)}")
        return v

    def get_active_channels(self) -> list[ChannelConfig]:
        """Get only the active channels."""
        return [channel for channel in self.channels if channel.active]

    def get_channel(self, platform: str, channel_name: str) -> ChannelConfig | None:
        """Get a channel configuration by platform and name, ignoring the platform's case."""
        known = Platform.parse(platform)
        name = known.value if known is not None else platform.strip()
        key = f"{name}:{channel_name.strip()}"
        for channel in self.channels:
            if channel.key == key:
                return channel
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self.model_dump(mode="json")
