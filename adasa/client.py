"""Client side of the daemon's Unix socket protocol."""

from __future__ import annotations

import itertools
import os
import socket
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from .errors import (
    AdasaError,
    ConnectionError_,
    DaemonNotRunning,
    IpcError,
    ProtocolError,
)
from .protocol import Command, Request, Response

DEFAULT_SOCKET_PATH = Path("/tmp/adasa.sock")
MAX_RETRY_ATTEMPTS = 3
RETRY_DELAY = 0.1


@dataclass
class _Connection:
    sock: socket.socket
    reader: BinaryIO

    @classmethod
    def wrap(cls, sock: socket.socket) -> _Connection:
        return cls(sock=sock, reader=sock.makefile("rb"))

    def exchange(self, request: Request) -> Response:
        payload = (request.to_json() + "\n").encode()
        try:
            self.sock.sendall(payload)
        except OSError as exc:
            raise IpcError(f"Failed to write request: {exc}") from exc
        try:
            line = self.reader.readline()
        except OSError as exc:
            raise IpcError(f"Failed to read response: {exc}") from exc
        return Response.from_json(line)

    def close(self) -> None:
        for resource in (self.reader, self.sock):
            try:
                resource.close()
            except OSError:
                pass


class IpcClient:
    """Sends commands to the daemon, reusing a connection when it can."""

    def __init__(self, socket_path: str | os.PathLike[str] = DEFAULT_SOCKET_PATH) -> None:
        self.socket_path = Path(socket_path)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._cached: _Connection | None = None

    def send_command(self, command: Command) -> Response:
        """Send a command and wait for the daemon's response, retrying on failure."""
        with self._lock:
            request_id = next(self._ids)
        request = Request(request_id, command)

        last_error: AdasaError | None = None
        for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
            try:
                response = self._send_pooled(request)
            except AdasaError as exc:
                last_error = exc
                self.close()
                if attempt < MAX_RETRY_ATTEMPTS:
                    time.sleep(RETRY_DELAY)
                continue
            if response.id != request_id:
                raise ProtocolError(
                    f"Response ID mismatch: expected {request_id}, got {response.id}"
                )
            return response

        if last_error is None:
            raise ConnectionError_("Failed to connect after retries")
        raise last_error

    def _send_pooled(self, request: Request) -> Response:
        with self._lock:
            cached, self._cached = self._cached, None
            if cached is not None:
                try:
                    response = cached.exchange(request)
                except AdasaError:
                    cached.close()
                else:
                    self._cached = cached
                    return response

            connection = self._connect()
            try:
                response = connection.exchange(request)
            except AdasaError:
                connection.close()
                raise
            self._cached = connection
            return response

    def _connect(self) -> _Connection:
        if not self.socket_path.exists():
            raise DaemonNotRunning()
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(os.fspath(self.socket_path))
        except (ConnectionRefusedError, FileNotFoundError) as exc:
            sock.close()
            raise DaemonNotRunning() from exc
        except OSError as exc:
            sock.close()
            raise ConnectionError_(str(exc)) from exc
        return _Connection.wrap(sock)

    def close(self) -> None:
        """Drop the cached connection, if any."""
        cached, self._cached = self._cached, None
        if cached is not None:
            cached.close()

    def __enter__(self) -> IpcClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()