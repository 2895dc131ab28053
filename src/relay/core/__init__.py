"""
Core primitives shared by every relay package: typed errors and logging.
"""

from relay.core.errors import (
    CommandFailure,
    ConfigError,
    DependencyError,
    ErrorCategory,
    ErrorContext,
    RelayError,
    RunCancelledError,
    TargetFileError,
    TargetNotFoundError,
)
from relay.core.logging import LogContext, configure_logging, get_logger

__all__ = [
    "CommandFailure",
    "ConfigError",
    "DependencyError",
    "ErrorCategory",
    "ErrorContext",
    "RelayError",
    "RunCancelledError",
    "TargetFileError",
    "TargetNotFoundError",
    "LogContext",
    "configure_logging",
    "get_logger",
]
