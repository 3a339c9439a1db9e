"""Health endpoint served on the local listen socket."""

import os
import socketserver
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler
from pathlib import Path
from urllib.parse import urlsplit
from types import TracebackType
from typing import Any, Literal

from ..common.exceptions import StartupError
from ..common.logging import get_logger
from .models import PING_PATH, PONG_BODY

logger = get_logger(__name__)


class _PingHandler(BaseHTTPRequestHandler):
    """Answers /ping with pong for any method and query, other paths with 404"""

    server_version = "autossh-wrapper"
    # Seconds a connection may stay silent before its thread gives up
    timeout = 5.0

    def _respond(self, include_body: bool = True) -> None:
        if urlsplit(self.path).path != PING_PATH:
            self.send_error(HTTPStatus.NOT_FOUND)
            return

        body = PONG_BODY.encode()
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if include_body:
            self.wfile.write(body)

    def do_GET(self) -> None:
        self._respond()

    def do_HEAD(self) -> None:
        self._respond(include_body=False)

    do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = do_GET

    def log_message(self, format: str, *args: Any) -> None:
        # Unix socket peers have no address, skip address_string()
        logger.debug("Health request", detail=format % args)


class _UnixHTTPServer(socketserver.ThreadingUnixStreamServer):
    daemon_threads = True


class HealthResponder:
    """Serves the liveness route on a Unix socket from a background thread.

    Bound once per run and shared by every restart cycle.
    """

    def __init__(self, listen_path: str | os.PathLike[str]):
        self.listen_path = Path(listen_path)
        self._server: _UnixHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def is_serving(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "HealthResponder":
        """Bind the listen socket and start serving

        Raises:
            StartupError: If the socket path cannot be bound
        """
        if self._server is not None:
            return self

        try:
            self._server = _UnixHTTPServer(str(self.listen_path), _PingHandler)
        except OSError as e:
            raise StartupError(
                f"Failed to bind health listener at {self.listen_path}: {e}"
            ) from e

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="health-responder",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Health responder listening", path=str(self.listen_path))
        return self

    def stop(self) -> None:
        """Stop serving and close the listener"""
        if self._server is None:
            return

        server, thread = self._server, self._thread
        self._server = self._thread = None

        server.shutdown()
        server.server_close()
        if thread is not None:
            thread.join()
        logger.debug("Health responder stopped", path=str(self.listen_path))

    def __enter__(self) -> "HealthResponder":
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        self.stop()
        return False
