"""Channel domain model and configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Platform(str, Enum):
    """Streaming platforms with a known channel URL scheme."""

    YOUTUBE = "YouTube"
    TWITCH = "Twitch"
    KICK = "Kick"

    @classmethod
    def parse(cls, value: str) -> Platform | None:
        """Look up a platform by name, ignoring case."""
        for platform in cls:
            if platform.value.lower() == value.strip().lower():
                return platform
        return None


def build_channel_url(platform: str, channel_name: str) -> str | None:
    """
    Derive the live URL of a channel from its platform and name.

    Returns None for platforms without a known URL scheme.
    """
    name = channel_name.strip()
    known = Platform.parse(platform)
    if known is Platform.YOUTUBE:
        handle = name if name.startswith("@") else f"@{name}"
        return f"https://www.youtube.com/{handle}/live"
    if known is Platform.TWITCH:
        return f"https://www.twitch.tv/{name}"
    if known is Platform.KICK:
        return f"https://kick.com/{name}"
    return None


_IDENTITY_FIELDS = frozenset({"platform", "channel_name"})


@dataclass(eq=False)
class Channel:
    """
    A monitored live-streaming channel.

    The identity (platform and channel name) is fixed once the descriptor is
    created. ``status`` is written only by the monitor that owns the channel.
    """

    platform: str
    channel_name: str
    channel_url: str
    active: bool = True
    quality: str = "best"
    check_interval: int | None = None
    status: str = ""

    def __post_init__(self) -> None:
        """Validate channel data after initialization."""
        if not self.platform or not self.platform.strip():
            raise ValueError("Channel platform cannot be empty")
        if not self.channel_name or not self.channel_name.strip():
            raise ValueError("Channel name cannot be empty")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _IDENTITY_FIELDS and name in self.__dict__:
            raise AttributeError(f"Channel {name} cannot be changed")
        super().__setattr__(name, value)

    @property
    def key(self) -> str:
        """Registry key identifying this channel."""
        return f"{self.platform}:{self.channel_name}"

    def __str__(self) -> str:
        """Human-readable string representation."""
        return f"Channel({self.key})"

    def __repr__(self) -> str:
        """Developer-friendly string representation."""
        return (
            f"Channel(platform='{self.platform}', channel_name='{self.channel_name}', "
            f"active={self.active}, quality='{self.quality}', status='{self.status}')"
        )


class ChannelConfig(BaseModel):
    """
    Persisted channel record with validation.

    This Pydantic model provides runtime validation for the channel list
    loaded from the configuration file.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    platform: str = Field(..., min_length=1, description="Streaming platform name")
    channel_name: str = Field(..., min_length=1, description="Channel name or handle")
    channel_url: str = Field(default="", description="URL understood by the helper")
    active: bool = Field(default=True, description="Whether to monitor this channel")
    quality: str = Field(default="best", min_length=1, description="Preferred quality")
    check_interval: int | None = Field(
        default=None, ge=10, le=3600, description="Seconds between liveness probes"
    )

    @field_validator("platform", "channel_name", "quality")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Reject blank values and trim surrounding whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be blank")
        return v

    @field_validator("platform")
    @classmethod
    def normalize_platform(cls, v: str) -> str:
        """Use the canonical spelling for known platforms."""
        known = Platform.parse(v)
        return known.value if known is not None else v

    @model_validator(mode="after")
    def fill_channel_url(self) -> ChannelConfig:
        """Derive the channel URL for known platforms when it is omitted."""
        if not self.channel_url:
            url = build_channel_url(self.platform, self.channel_name)
            if url is None:
                raise ValueError(
                    f"channel_url is required for platform '{self.platform}'"
                )
            # object.__setattr__ avoids re-running validation on assignment
            object.__setattr__(self, "channel_url", url)
        return self

    @property
    def key(self) -> str:
        """Registry key identifying this channel."""
        return f"{self.platform}:{self.channel_name}"

    def to_domain(self) -> Channel:
        """Convert to domain Channel entity."""
        return Channel(
            platform=self.platform,
            channel_name=self.channel_name,
            channel_url=self.channel_url,
            active=self.active,
            quality=self.quality,
            check_interval=self.check_interval,
        )

    @classmethod
    def from_domain(cls, channel: Channel) -> ChannelConfig:
        """Build a persistable record from a domain Channel."""
        return cls(
            platform=channel.platform,
            channel_name=channel.channel_name,
            channel_url=channel.channel_url,
            active=channel.active,
            quality=channel.quality,
            check_interval=channel.check_interval,
        )
