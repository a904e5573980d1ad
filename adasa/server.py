"""Daemon side of the Unix socket protocol."""

from __future__ import annotations

import asyncio
import os
import socket
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from .client import DEFAULT_SOCKET_PATH
from .errors import AdasaError, IpcError
from .protocol import Command, Request, Response

SyncHandler = Callable[[Command], Response]
AsyncHandler = Callable[[Command], Awaitable[Response]]

_BACKLOG = 128


def _answer(request: Request, response: Response | None, error: Exception | None) -> bytes:
    if error is not None:
        reply = Response.error(request.id, str(error))
    else:
        reply = Response(id=request.id, data=response.data, failure=response.failure)
    return (reply.to_json() + "\n").encode()


class IpcServer:
    """Listens on a Unix socket and answers one request per connection."""

    def __init__(self, socket_path: str | os.PathLike[str] = DEFAULT_SOCKET_PATH) -> None:
        self.socket_path = Path(socket_path)
        self._listener: socket.socket | None = None

    def start(self) -> None:
        """Bind the socket, replacing any stale file, and restrict it to the owner."""
        if self.socket_path.exists() or self.socket_path.is_symlink():
            try:
                self.socket_path.unlink()
            except OSError as exc:
                raise IpcError(f"Failed to remove existing socket: {exc}") from exc

        listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            listener.bind(os.fspath(self.socket_path))
            listener.listen(_BACKLOG)
        except OSError as exc:
            listener.close()
            raise IpcError(f"Failed to bind to socket: {exc}") from exc

        try:
            os.chmod(self.socket_path, 0o600)
        except OSError as exc:
            listener.close()
            raise IpcError(f"Failed to set socket permissions: {exc}") from exc

        self._listener = listener

    def _require_listener(self) -> socket.socket:
        if self._listener is None:
            raise IpcError("Server not started")
        return self._listener

    def accept(self) -> socket.socket:
        """Wait for one client and return its connection."""
        listener = self._require_listener()
        try:
            conn, _addr = listener.accept()
        except OSError as exc:
            raise IpcError(f"Failed to accept connection: {exc}") from exc
        return conn

    def handle_connection(self, conn: socket.socket, handler: SyncHandler) -> None:
        """Read one request from the connection, answer it and close the connection."""
        with conn, conn.makefile("rb") as reader:
            try:
                line = reader.readline()
            except OSError as exc:
                raise IpcError(f"Failed to read request: {exc}") from exc
            request = Request.from_json(line)

            response: Response | None = None
            error: Exception | None = None
            try:
                response = handler(request.command)
            except Exception as exc:  # any failure becomes an error response
                error = exc

            payload = _answer(request, response, error)
            try:
                conn.sendall(payload)
            except OSError as exc:
                raise IpcError(f"Failed to write response: {exc}") from exc

    async def run(self, handler: AsyncHandler) -> None:
        """Serve clients forever, each connection in its own task."""
        listener = self._require_listener()

        async def on_client(
            reader: asyncio.StreamReader, writer: asyncio.StreamWriter
        ) -> None:
            try:
                await self._handle_async(reader, writer, handler)
            except AdasaError as exc:
                print(f"Connection handler error: {exc}", file=sys.stderr)
            finally:
                writer.close()
                try:
                    await writer.wait_closed()
                except OSError:
                    pass

        try:
            server = await asyncio.start_unix_server(on_client, sock=listener)
        except OSError as exc:
            raise IpcError(f"Failed to convert listener: {exc}") from exc

        async with server:
            await server.serve_forever()

    @staticmethod
    async def _handle_async(
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        handler: AsyncHandler,
    ) -> None:
        try:
            line = await reader.readline()
        except OSError as exc:
            raise IpcError(f"Failed to read request: {exc}") from exc
        request = Request.from_json(line)

        response: Response | None = None
        error: Exception | None = None
        try:
            response = await handler(request.command)
        except Exception as exc:  # any failure becomes an error response
            error = exc

        payload = _answer(request, response, error)
        try:
            writer.write(payload)
            await writer.drain()
        except OSError as exc:
            raise IpcError(f"Failed to write response: {exc}") from exc

    def stop(self) -> None:
        """Close the listener and remove the socket file."""
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.close()
        if self.socket_path.exists() or self.socket_path.is_symlink():
            try:
                self.socket_path.unlink()
            except OSError as exc:
                raise IpcError(f"Failed to remove socket file: {exc}") from exc

    def __enter__(self) -> IpcServer:
        """Start the server if needed."""
        if self._listener is None:
            self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()