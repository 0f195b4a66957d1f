"""Domain-specific exceptions for the StreamWarden application."""

from typing import Optional, Sequence


class StreamWardenError(Exception):
    """Base exception for all StreamWarden errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigurationError(StreamWardenError):
    """Raised when there are configuration-related errors."""

    pass


class HelperError(StreamWardenError):
    """Raised when the stream-capture helper cannot be started."""

    def __init__(
        self,
        command: Sequence[str],
        cause: Optional[Exception] = None,
    ) -> None:
        message = f"Failed to start helper: {' '.join(command)}"
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(message, cause)
        self.command = list(command)


class ProcessTreeError(StreamWardenError):
    """Raised when the descendants of a process cannot be enumerated."""

    def __init__(self, pid: int, cause: Optional[Exception] = None) -> None:
        message = f"Unable to enumerate descendants of PID {pid}"
        super().__init__(message, cause)
        self.pid = pid
