"""autossh wrapper - keeps an ssh session alive with an end-to-end health probe."""

from . import health, supervisor
from .api import run_autossh
from .common.context import CancelContext, interrupt_context
from .common.context_config import SupervisorConfig
from .common.exceptions import (
    AutosshWrapperError,
    BinaryNotFoundError,
    ConfigurationError,
    HealthCheckError,
    OperationCancelled,
    ProcessError,
    StartupError,
)
from .common.logging import get_logger, setup_logging
from .health import HealthProber, HealthResponder, ProbeOutcome
from .rendezvous import RendezvousAllocator, RendezvousPaths
from .supervisor import RestartLoop, SSHProcess, TunnelSupervisor

__version__ = "0.1.0"


__all__ = [
    # High-level API
    "run_autossh",
    # Supervision
    "RestartLoop",
    "TunnelSupervisor",
    "SSHProcess",
    # Health channel
    "HealthProber",
    "HealthResponder",
    "ProbeOutcome",
    # Rendezvous
    "RendezvousAllocator",
    "RendezvousPaths",
    # Context management
    "CancelContext",
    "interrupt_context",
    "SupervisorConfig",
    # Exceptions
    "AutosshWrapperError",
    "BinaryNotFoundError",
    "ConfigurationError",
    "HealthCheckError",
    "OperationCancelled",
    "ProcessError",
    "StartupError",
    # Utilities
    "get_logger",
    "setup_logging",
    "health",
    "supervisor",
]
