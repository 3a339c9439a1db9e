"""ssh process supervision and restart logic."""

from .process import SSHProcess, resolve_binary
from .restart import RestartLoop
from .tunnel import TunnelSupervisor, build_ssh_command

__all__ = [
    "RestartLoop",
    "SSHProcess",
    "TunnelSupervisor",
    "build_ssh_command",
    "resolve_binary",
]
