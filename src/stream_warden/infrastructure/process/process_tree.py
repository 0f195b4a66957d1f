"""Process-tree inspection and forced termination built on psutil."""

from __future__ import annotations

import logging
import os
import signal
import sys

import psutil

from stream_warden.domain.exceptions import ProcessTreeError

logger = logging.getLogger(__name__)


def descendants(pid: int) -> list[psutil.Process]:
    """
    List every live descendant of a process.

    Returns an empty list when the process has already exited.

    Raises:
        ProcessTreeError: If the process table cannot be read
    """
    try:
        return psutil.Process(pid).children(recursive=True)
    except psutil.NoSuchProcess:
        return []
    except psutil.Error as e:
        raise ProcessTreeError(pid, e) from e


def kill_processes(processes: list[psutil.Process]) -> list[psutil.Process]:
    """
    Send a forced kill to every process that is still running.

    ``is_running`` guards against PID reuse, since the list may have been
    taken some time before.

    Returns:
        The processes that were signalled
    """
    killed: list[psutil.Process] = []
    for proc in processes:
        try:
            if not proc.is_running():
                continue
            proc.kill()
            killed.append(proc)
        except psutil.NoSuchProcess:
            continue
        except psutil.Error as e:
            logger.warning("Unable to kill PID %s: %s", proc.pid, e)
    return killed


def wait_for_exit(processes: list[psutil.Process], timeout: float) -> list[psutil.Process]:
    """
    Wait for processes to exit.

    Zombies count as exited: their parent may be gone and nobody will reap them.

    Returns:
        Processes still alive after the timeout
    """
    if not processes:
        return []
    _, alive = psutil.wait_procs(processes, timeout=timeout)
    return [proc for proc in alive if is_alive(proc.pid)]


def is_alive(pid: int) -> bool:
    """Whether a PID refers to a running, non-zombie process."""
    try:
        proc = psutil.Process(pid)
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return False


def kill_group(pgid: int) -> list[psutil.Process]:
    """
    Force-kill every process left in a process group.

    Children that outlive the group leader are reparented and no longer show
    up as its descendants, but they stay in its group. Only POSIX has process
    groups; elsewhere nothing is killed.

    Returns:
        The group members that were signalled
    """
    if sys.platform == "win32":
        return []

    members: list[psutil.Process] = []
    for proc in psutil.process_iter():
        try:
            if os.getpgid(proc.pid) == pgid and proc.status() != psutil.STATUS_ZOMBIE:
                members.append(proc)
        except (OSError, psutil.Error):
            continue
    if not members:
        return []

    try:
        os.killpg(pgid, signal.SIGKILL)
    except ProcessLookupError:
        return []
    except PermissionError as e:
        logger.warning("Unable to kill process group %s: %s", pgid, e)
        return []
    return members
