"""Start, stop and inspect the background daemon through its PID file."""

from __future__ import annotations

import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path

from .errors import DaemonNotRunning, OtherError, StateError
from .pidfile import PidFile

_POLL_INTERVAL = 0.1
_KILL_GRACE = 1.0


@dataclass(frozen=True)
class DaemonStatus:
    running: bool
    pid: int | None
    pid_file: Path


def _send_signal(pid: int, signum: signal.Signals) -> None:
    try:
        os.kill(pid, signum)
    except OSError as exc:
        raise OtherError(f"Failed to send {signum.name}: {exc}") from exc


class DaemonManager:
    """Controls the daemon's lifecycle."""

    def __init__(self, pid_file: PidFile | None = None) -> None:
        self.pid_file = pid_file if pid_file is not None else PidFile()

    def is_running(self) -> bool:
        return self.pid_file.is_daemon_running()

    def get_pid(self) -> int | None:
        """PID of the running daemon, or None."""
        if not self.is_running():
            return None
        try:
            return self.pid_file.read()
        except StateError:
            return None

    def register_daemon(self) -> None:
        """Record the current process as the daemon."""
        if self.is_running():
            raise OtherError("Daemon is already running")
        if self.pid_file.exists():
            self.pid_file.remove()
        self.pid_file.write()

    def stop_daemon(self, timeout_secs: float = 10) -> None:
        """Send SIGTERM, wait up to the timeout, then fall back to SIGKILL."""
        if os.name != "posix":
            raise OtherError("Daemon stop is only supported on Unix systems")
        pid = self.get_pid()
        if pid is None:
            raise DaemonNotRunning()

        print(f"Stopping daemon (PID: {pid})...")
        _send_signal(pid, signal.SIGTERM)

        deadline = time.monotonic() + timeout_secs
        while time.monotonic() < deadline:
            if not self.is_running():
                print("Daemon stopped successfully")
                self.pid_file.remove()
                return
            time.sleep(_POLL_INTERVAL)

        if not self.is_running():
            return

        print("Daemon did not stop gracefully, sending SIGKILL...")
        _send_signal(pid, signal.SIGKILL)
        time.sleep(_KILL_GRACE)

        if not self.is_running():
            print("Daemon force-stopped")
            self.pid_file.remove()
            return
        raise OtherError("Failed to stop daemon even with SIGKILL")

    def unregister_daemon(self) -> None:
        self.pid_file.remove()

    def get_status(self) -> DaemonStatus:
        pid = self.get_pid()
        return DaemonStatus(running=pid is not None, pid=pid, pid_file=self.pid_file.path)