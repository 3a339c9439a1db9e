"""Private socket paths shared by the health channel and the ssh forwards."""

import os
import shutil
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from .common.exceptions import StartupError
from .common.logging import get_logger

logger = get_logger(__name__)

SEND_SOCKET_NAME = "goautossh.send.socket"
LISTEN_SOCKET_NAME = "goautossh.listen.socket"
REMOTE_SOCKET_SUFFIX = "goautossh.remote.socket"


def current_uid() -> str:
    """Return the numeric id of the current user.

    Raises:
        StartupError: If the platform has no notion of a numeric uid
    """
    try:
        return str(os.getuid())
    except AttributeError as e:
        raise StartupError("Cannot resolve current user id on this platform") from e


def remote_socket_path(uid: str, directory: str = "/tmp") -> str:
    """Remote rendezvous socket, e.g. /tmp/1000.goautossh.remote.socket"""
    return f"{directory.rstrip('/')}/{uid}.{REMOTE_SOCKET_SUFFIX}"


class RendezvousPaths(BaseModel):
    """Socket paths of one run.

    send_path and listen_path live in a private local directory.
    remote_path only has meaning on the remote host, where ssh creates it.
    """

    model_config = ConfigDict(frozen=True)

    directory: Path
    send_path: Path
    listen_path: Path
    remote_path: str

    @model_validator(mode="after")
    def validate_distinct(self) -> "RendezvousPaths":
        if self.send_path == self.listen_path:
            raise ValueError("send_path and listen_path must be distinct")
        return self

    @classmethod
    def for_directory(
        cls, directory: str | os.PathLike[str], uid: str, remote_dir: str = "/tmp"
    ) -> "RendezvousPaths":
        directory = Path(directory)
        return cls(
            directory=directory,
            send_path=directory / SEND_SOCKET_NAME,
            listen_path=directory / LISTEN_SOCKET_NAME,
            remote_path=remote_socket_path(uid, remote_dir),
        )

    def forward_args(self) -> list[str]:
        """ssh forwarding directives: local send -> remote, remote -> local listen"""
        return [
            "-L",
            f"{self.send_path}:{self.remote_path}",
            "-R",
            f"{self.remote_path}:{self.listen_path}",
        ]

    def clear_send_endpoint(self) -> bool:
        """Remove a send socket left behind by a previous ssh process.

        ssh refuses to bind its -L socket over an existing file and does not
        unlink it on exit.

        Returns:
            True if a stale socket was removed
        """
        try:
            self.send_path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Removed stale send socket", path=str(self.send_path))
        return True


class RendezvousAllocator:
    """Allocates a fresh private directory for the run's local sockets.

    Use as a context manager: the directory and everything in it is removed
    on exit, whichever way the block is left.
    """

    def __init__(self, remote_dir: str = "/tmp", base_dir: str | None = None):
        self.remote_dir = remote_dir
        self.base_dir = base_dir
        self._paths: RendezvousPaths | None = None

    @property
    def paths(self) -> RendezvousPaths | None:
        return self._paths

    def allocate(self) -> RendezvousPaths:
        """Resolve the user and create the private directory

        Raises:
            StartupError: If the uid cannot be resolved or the directory
                cannot be created
        """
        if self._paths is not None:
            return self._paths

        uid = current_uid()
        try:
            # mkdtemp creates the directory with mode 0700
            directory = tempfile.mkdtemp(prefix="autossh-", dir=self.base_dir)
        except OSError as e:
            raise StartupError(f"Failed to create rendezvous directory: {e}") from e

        self._paths = RendezvousPaths.for_directory(directory, uid, self.remote_dir)
        logger.debug(
            "Rendezvous directory created",
            directory=directory,
            remote_path=self._paths.remote_path,
        )
        return self._paths

    def release(self) -> None:
        """Remove the private directory and its sockets"""
        if self._paths is None:
            return
        directory = self._paths.directory
        self._paths = None
        shutil.rmtree(directory, ignore_errors=True)
        logger.debug("Rendezvous directory removed", directory=str(directory))

    def __enter__(self) -> RendezvousPaths:
        return self.allocate()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        self.release()
        return False
