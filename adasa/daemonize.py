"""Detach the current process from its terminal and run in the background."""

from __future__ import annotations

import contextlib
import os
import sys

from .errors import OtherError


def _fork_and_exit_parent(failure: str) -> None:
    for stream in (sys.stdout, sys.stderr):
        with contextlib.suppress(Exception):
            stream.flush()
    try:
        pid = os.fork()
    except OSError as exc:
        raise OtherError(f"{failure}: {exc}") from exc
    if pid > 0:
        os._exit(0)


def daemonize() -> None:
    """Double-fork into a session-less daemon with standard streams on /dev/null."""
    if os.name != "posix":
        raise OtherError("Daemonization is only supported on Unix systems")

    _fork_and_exit_parent("First fork failed")

    try:
        os.setsid()
    except OSError as exc:
        raise OtherError(f"setsid failed: {exc}") from exc

    # The second fork keeps the daemon from ever reacquiring a controlling terminal.
    _fork_and_exit_parent("Second fork failed")

    try:
        os.chdir("/")
    except OSError as exc:
        raise OtherError(f"Failed to change directory to /: {exc}") from exc

    try:
        devnull = os.open(os.devnull, os.O_RDWR)
    except OSError as exc:
        raise OtherError(f"Failed to open /dev/null: {exc}") from exc

    for fd in (0, 1, 2):
        with contextlib.suppress(OSError):
            os.dup2(devnull, fd)
    if devnull > 2:
        os.close(devnull)