"""Custom exceptions for autossh wrapper."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..health.models import ProbeOutcome


class AutosshWrapperError(Exception):
    """Base exception for all autossh wrapper errors."""
    pass


class ConfigurationError(AutosshWrapperError):
    """Raised when configuration is invalid."""
    pass


class StartupError(AutosshWrapperError):
    """Raised when a fatal error happens before any ssh process is spawned."""
    pass


class BinaryNotFoundError(StartupError):
    """Raised when the ssh binary is not found or not executable."""
    pass


class ProcessError(AutosshWrapperError):
    """Raised when ssh process operations fail."""
    pass


class HealthCheckError(AutosshWrapperError):
    """Raised when the tunnel health probe fails."""

    def __init__(
        self,
        message: str,
        outcome: "ProbeOutcome | None" = None,
        was_healthy: bool = False,
    ):
        super().__init__(message)
        self.outcome = outcome
        self.was_healthy = was_healthy


class OperationCancelled(AutosshWrapperError):
    """Raised when the outer context is cancelled."""

    def __init__(self, reason: str = "operation was cancelled"):
        super().__init__(reason)
        self.reason = reason
