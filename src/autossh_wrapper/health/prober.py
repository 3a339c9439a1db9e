"""Liveness probe dialed through the local send socket."""

import os
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from types import TracebackType
from typing import Literal

import httpx

from ..common.context import CancelContext
from ..common.logging import get_logger
from .models import PING_PATH, ProbeOutcome

logger = get_logger(__name__)

# The host part is ignored when dialing a Unix socket
PROBE_URL = f"http://unix{PING_PATH}"


class HealthProber:
    """HTTP client for the ping route behind the send socket.

    A probe that goes through the send socket has to travel through the ssh
    forwards to reach the HealthResponder, so success means the whole
    tunnel works end to end. Keep-alive is disabled: every probe dials a
    new connection.

    httpx timeouts bound each connect and read step on its own, so a peer
    trickling bytes could hold a request open indefinitely. The request
    therefore runs on a short-lived thread and the caller waits on it with
    the total deadline. A request that overruns is abandoned and its
    client closed, which unblocks the thread on its next socket call.
    """

    def __init__(self, send_path: str | os.PathLike[str], timeout: float = 0.1):
        if timeout <= 0:
            raise ValueError("Probe timeout must be positive")
        self.send_path = Path(send_path)
        self.timeout = timeout
        self._client: httpx.Client | None = None
        self._lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                transport = httpx.HTTPTransport(
                    uds=str(self.send_path),
                    limits=httpx.Limits(max_keepalive_connections=0),
                )
                # trust_env=False keeps proxy variables from rerouting the probe
                self._client = httpx.Client(
                    transport=transport,
                    timeout=httpx.Timeout(self.timeout),
                    trust_env=False,
                )
            return self._client

    def _abandon_client(self, client: httpx.Client) -> None:
        with self._lock:
            if self._client is client:
                self._client = None
        client.close()

    @staticmethod
    def _request(client: httpx.Client, future: "Future[tuple[int, bytes]]") -> None:
        try:
            with client.stream("GET", PROBE_URL) as response:
                # Drain the body so the connection is released cleanly
                body = response.read()
                future.set_result((response.status_code, body))
        except Exception as e:
            future.set_exception(e)

    def probe(self, ctx: CancelContext | None = None) -> ProbeOutcome:
        """Issue one ping request bounded by a single total deadline.

        Never raises for connection problems; they are reported in the
        outcome. Returns no later than the probe timeout, however slowly
        the peer answers.

        Args:
            ctx: Enclosing context; a cancelled context fails the probe
                without dialing

        Returns:
            ProbeOutcome with ok=True and the response body on success
        """
        if ctx is not None and ctx.is_cancelled:
            return ProbeOutcome.failure(f"cancelled: {ctx.reason}")

        client = self._get_client()
        future: Future[tuple[int, bytes]] = Future()
        started = time.monotonic()
        threading.Thread(
            target=self._request,
            args=(client, future),
            name="health-probe",
            daemon=True,
        ).start()

        try:
            status_code, body = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            elapsed = time.monotonic() - started
            self._abandon_client(client)
            logger.debug("Probe deadline exceeded", elapsed=round(elapsed, 3))
            return ProbeOutcome.failure(f"deadline exceeded after {elapsed:.3f}s", elapsed)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            elapsed = time.monotonic() - started
            logger.debug("Probe failed", error=str(e), elapsed=round(elapsed, 3))
            return ProbeOutcome.failure(f"{type(e).__name__}: {e}", elapsed)

        elapsed = time.monotonic() - started
        if status_code != httpx.codes.OK:
            return ProbeOutcome.failure(
                f"unexpected status {status_code}", elapsed, status_code=status_code
            )

        return ProbeOutcome.success(
            body.decode("utf-8", errors="replace"), status_code, elapsed
        )

    def close(self) -> None:
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()

    def __enter__(self) -> "HealthProber":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        self.close()
        return False
