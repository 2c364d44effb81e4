from __future__ import annotations

import os
import socket
import threading

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from .cli_shared import FatalError, _rich_error, _say

PLACEHOLDER_TEXT = "Backend server is running!"


async def _placeholder(request: Request) -> PlainTextResponse:
    del request
    return PlainTextResponse(PLACEHOLDER_TEXT)


def build_placeholder_app() -> Starlette:
    return Starlette(routes=[Route("/{path:path}", _placeholder, methods=["GET", "HEAD", "POST"])])


class PlaceholderListener:
    """Placeholder backend HTTP server running on a daemon thread.

    The socket is bound in the calling thread so a bind failure surfaces as a
    FatalError before anything else starts. If the serving thread dies on its
    own, the whole process exits with status 1.
    """

    def __init__(self, host: str, port: int) -> None:
        self.host = host
        self.port = port
        self._sock: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None
        self._stopping = False

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def start(self) -> "PlaceholderListener":
        try:
            self._sock = socket.create_server((self.host, self.port))
        except OSError as e:
            raise FatalError(f"Failed to start backend server on {self.address}: {e}") from e
        # port 0 asks the OS for a free port
        self.port = self._sock.getsockname()[1]
        config = uvicorn.Config(build_placeholder_app(), log_level="warning", access_log=False, lifespan="off")
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(target=self._serve, name="maestro-backend", daemon=True)
        self._thread.start()
        _say(f"Backend server is running at http://{self.address}")
        return self

    def _serve(self) -> None:
        assert self._server is not None and self._sock is not None
        try:
            self._server.run(sockets=[self._sock])
        except (Exception, SystemExit) as e:
            if not self._stopping:
                _rich_error(f"Backend server failed: {e}")
                os._exit(1)
            return
        if not self._stopping:
            _rich_error("Backend server stopped unexpectedly")
            os._exit(1)

    def wait(self) -> None:
        if self._thread is not None:
            self._thread.join()

    def stop(self) -> None:
        self._stopping = True
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=5)
        if self._sock is not None:
            self._sock.close()


def start_placeholder_listener(host: str, port: int) -> PlaceholderListener:
    return PlaceholderListener(host, port).start()
