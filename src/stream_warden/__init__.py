"""StreamWarden - record live streams automatically when watched channels go live."""

__version__ = "0.1.0"
__description__ = "Monitor YouTube, Twitch and Kick channels and record them with streamlink"

from stream_warden.domain.models import Channel, ChannelStatus

__all__ = ["Channel", "ChannelStatus"]
