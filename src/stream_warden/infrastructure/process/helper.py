"""Invocation of the external stream-capture helper (streamlink CLI)."""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import IO, Callable, Optional

from stream_warden.domain.exceptions import HelperError

logger = logging.getLogger(__name__)

PROBE_FLAG = "--json"
OUTPUT_FLAG = "-o"

# Keep helper consoles from popping up on Windows
_CREATION_FLAGS = subprocess.CREATE_NO_WINDOW if sys.platform == "win32" else 0


class StreamHelper:
    """
    Builds helper command lines and spawns the helper.

    The helper contract:

    - ``helper <url> --json`` exits 0 iff the channel is live.
    - ``helper <url> <qualityChain> -o <file>`` records until the stream
      ends and exits 0 on a clean end.
    """

    def __init__(self, helper_path: str) -> None:
        self.helper_path = helper_path

    def probe_command(self, channel_url: str) -> list[str]:
        """Command line of a liveness probe."""
        return [self.helper_path, channel_url, PROBE_FLAG]

    def record_command(self, channel_url: str, quality_chain: str, output_file: str) -> list[str]:
        """Command line of a recording."""
        return [self.helper_path, channel_url, quality_chain, OUTPUT_FLAG, output_file]

    def spawn(
        self,
        command: list[str],
        cwd: Optional[Path] = None,
        new_session: bool = False,
    ) -> subprocess.Popen[str]:
        """
        Start the helper with both output streams piped.

        With ``new_session`` the helper leads its own process group on POSIX,
        so whatever it leaves behind can be killed through the group.

        Raises:
            HelperError: If the executable cannot be started
        """
        try:
            return subprocess.Popen(
                command,
                cwd=str(cwd) if cwd is not None else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                creationflags=_CREATION_FLAGS,
                start_new_session=new_session and sys.platform != "win32",
            )
        except (OSError, ValueError) as e:
            raise HelperError(command, e) from e


def drain_stream(
    stream: Optional[IO[str]],
    name: str,
    on_line: Optional[Callable[[str], None]] = None,
) -> threading.Thread:
    """
    Read a child's output stream to EOF on a daemon thread.

    Draining both pipes on separate threads keeps a chatty helper from
    blocking on a full pipe buffer.

    Args:
        stream: The pipe to read; None yields a thread that returns at once
        name: Thread name
        on_line: Called with each line, trailing newline stripped
    """

    def _pump() -> None:
        if stream is None:
            return
        try:
            for line in stream:
                line = line.rstrip("\r\n")
                if on_line is not None:
                    on_line(line)
        except (OSError, ValueError) as e:
            # Pipe closed underneath us while the process was being killed
            logger.debug("Stopped reading %s: %s", name, e)
        finally:
            try:
                stream.close()
            except OSError:
                pass

    thread = threading.Thread(target=_pump, name=name, daemon=True)
    thread.start()
    return thread
