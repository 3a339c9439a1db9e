"""Process management for the ssh binary."""

import os
import shutil
import subprocess
from collections.abc import Sequence
from types import TracebackType
from typing import Literal

from ..common.exceptions import BinaryNotFoundError, ProcessError
from ..common.logging import get_logger

logger = get_logger(__name__)


def resolve_binary(name: str) -> str:
    """Resolve an executable name or path

    Raises:
        BinaryNotFoundError: If the binary doesn't exist or isn't executable
    """
    if os.sep in name:
        if not os.path.isfile(name):
            raise BinaryNotFoundError(f"Binary not found: {name}")
        if not os.access(name, os.X_OK):
            raise BinaryNotFoundError(f"Binary is not executable: {name}")
        return name

    resolved = shutil.which(name)
    if resolved is None:
        raise BinaryNotFoundError(f"Binary not found on PATH: {name}")
    return resolved


class SSHProcess:
    """One invocation of the ssh binary.

    stdin, stdout and stderr are inherited so the session stays interactive.
    An instance is started once and never reused after it exits.
    """

    def __init__(self, command: Sequence[str], terminate_timeout: float = 5.0):
        """Initialize SSHProcess with the full command line

        Args:
            command: Executable followed by its arguments
            terminate_timeout: Seconds to wait after SIGTERM before SIGKILL

        Raises:
            BinaryNotFoundError: If the executable cannot be resolved
            ValueError: If command is empty
        """
        if not command:
            raise ValueError("Command cannot be empty")

        self.command = [resolve_binary(command[0]), *command[1:]]
        self.terminate_timeout = terminate_timeout
        self._process: subprocess.Popen[bytes] | None = None
        self._started = False

    def start(self) -> bool:
        """Start ssh

        Returns:
            True once the process is spawned

        Raises:
            ProcessError: If the process fails to start or was already used
        """
        if self._started:
            raise ProcessError("SSHProcess instances cannot be restarted")

        logger.debug("Starting ssh process", command=self.command)
        try:
            self._process = subprocess.Popen(self.command)
        except OSError as e:
            logger.error("Failed to start ssh process", error=str(e))
            raise ProcessError(f"Failed to start ssh process: {e}") from e

        self._started = True
        logger.info("ssh process started", pid=self._process.pid)
        return True

    def stop(self) -> bool:
        """Stop ssh and wait until it has exited

        Returns:
            True if the process is gone, False if it could not be reaped
        """
        if self._process is None or self._process.poll() is not None:
            return True

        pid = self._process.pid
        logger.debug("Stopping ssh process", pid=pid)
        try:
            self._process.terminate()
            try:
                self._process.wait(timeout=self.terminate_timeout)
            except subprocess.TimeoutExpired:
                logger.warning(
                    "ssh did not terminate gracefully, force killing", pid=pid
                )
                self._process.kill()
                self._process.wait(timeout=self.terminate_timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error("Error stopping ssh process", pid=pid, error=str(e))
            return False

        logger.debug("ssh process stopped", pid=pid, returncode=self._process.returncode)
        return True

    def wait(self, timeout: float | None = None) -> int | None:
        """Wait for exit and return the exit code, None on timeout"""
        if self._process is None:
            return None
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def is_running(self) -> bool:
        if self._process is None:
            return False
        return self._process.poll() is None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        if self._process is None:
            return None
        return self._process.poll()

    def __enter__(self) -> "SSHProcess":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        self.stop()
        return False
