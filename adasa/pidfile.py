"""PID file handling for the daemon process."""

from __future__ import annotations

import os
import re
from pathlib import Path

from .errors import StateError

DEFAULT_PID_FILE = Path("/tmp/adasa.pid")

_PID_PATTERN = re.compile(r"\+?[0-9]+")
_MAX_PID = 2**32 - 1


def is_process_alive(pid: int) -> bool:
    """Tell whether a process with this PID exists."""
    if os.name != "posix":
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except (OSError, OverflowError, ValueError):
        return False
    return True


class PidFile:
    """A file holding the PID of the running daemon."""

    def __init__(self, path: str | os.PathLike[str] = DEFAULT_PID_FILE) -> None:
        self.path = Path(path)

    def write(self) -> None:
        """Write the current process's PID to the file."""
        try:
            self.path.write_text(str(os.getpid()))
        except OSError as exc:
            raise StateError(f"Failed to write PID file: {exc}") from exc

    def read(self) -> int:
        """Read the PID stored in the file."""
        try:
            content = self.path.read_text()
        except (OSError, UnicodeDecodeError) as exc:
            raise StateError(f"Failed to read PID file: {exc}") from exc
        text = content.strip()
        if not _PID_PATTERN.fullmatch(text) or int(text) > _MAX_PID:
            raise StateError(f"Invalid PID in file: {text!r}")
        return int(text)

    def exists(self) -> bool:
        return self.path.exists()

    def remove(self) -> None:
        """Delete the file if it is there."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise StateError(f"Failed to remove PID file: {exc}") from exc

    def is_daemon_running(self) -> bool:
        """True if the file names a live process."""
        if not self.exists():
            return False
        try:
            pid = self.read()
        except StateError:
            return False
        return is_process_alive(pid)