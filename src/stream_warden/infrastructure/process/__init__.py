"""Helper process invocation and process-tree control."""

from stream_warden.infrastructure.process.helper import StreamHelper, drain_stream

__all__ = [
    "StreamHelper",
    "drain_stream",
]
