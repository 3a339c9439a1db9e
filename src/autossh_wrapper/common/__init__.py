"""Common utilities and shared functionality."""

from .context import CancelContext, interrupt_context
from .context_config import SupervisorConfig
from .exceptions import (
    AutosshWrapperError,
    BinaryNotFoundError,
    ConfigurationError,
    HealthCheckError,
    OperationCancelled,
    ProcessError,
    StartupError,
)
from .logging import get_logger, setup_logging
from .utils import Backoff, calculate_backoff

__all__ = [
    # Cancellation
    "CancelContext",
    "interrupt_context",
    # Configuration
    "SupervisorConfig",
    # Exceptions
    "AutosshWrapperError",
    "BinaryNotFoundError",
    "ConfigurationError",
    "HealthCheckError",
    "OperationCancelled",
    "ProcessError",
    "StartupError",
    # Logging
    "get_logger",
    "setup_logging",
    # Utils
    "Backoff",
    "calculate_backoff",
]
