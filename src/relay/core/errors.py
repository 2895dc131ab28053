"""
Structured error types for relay.

Provides a small hierarchy of typed errors with the metadata the retry
engine and the CLI need: a category for routing, a context block for
logging and a chained cause. Whether a failure is retried is decided by
:mod:`relay.execution.classifier` from the captured output, never by the
exception type.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure domain
    - **Classification Elsewhere:** Errors carry facts, the classifier
      decides retryability
    - **Named Fields over Ad-hoc Attributes:** A failed command carries
      exit_code, stdout, stderr and command as real fields
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                       RelayError                          │
        │  (category, context, cause)                               │
        ├──────────────────────────────────────────────────────────┤
        │  CommandFailure      DependencyError    ConfigError       │
        │  (COMMAND)           (DEPENDENCY)       (CONFIG)          │
        │                                             │             │
        │  RunCancelledError                   TargetFileError      │
        │  (CANCELLED)                         TargetNotFoundError  │
        └──────────────────────────────────────────────────────────┘

Usage:
    from relay.core.errors import CommandFailure

    raise CommandFailure(
        exit_code=1,
        stdout="",
        stderr="Error: rate limit exceeded",
        command="shopify theme push --store a.example --theme 1",
    )

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    COMMAND = "COMMAND"  # External tool exited non-zero or could not start
    DEPENDENCY = "DEPENDENCY"  # External tool missing or broken
    CONFIG = "CONFIG"  # Invalid settings
    VALIDATION = "VALIDATION"  # Invalid targets file / target selection
    CANCELLED = "CANCELLED"  # Run interrupted
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error for logging.

    Only fields that are set end up in ``to_dict()``; anything that has no
    dedicated field goes into ``metadata``.

    Examples:
        >>> ctx = ErrorContext(run_id="a1b2c3", target="a.example")
        >>> ctx.to_dict()
        {'run_id': 'a1b2c3', 'target': 'a.example'}
    """

    run_id: str | None = None
    target: str | None = None
    path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["run_id", "target", "path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RelayError(Exception):
    """
    Base class for all relay errors.

    Subclasses set ``default_category``; callers may override it per
    instance.

    Examples:
        >>> error = RelayError("Something broke")
        >>> error.to_dict()["category"]
        'INTERNAL'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RelayError:
        """
        Add context to this error (fluent API).

        Usage:
            raise TargetFileError("Bad file").with_context(path="targets.json")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# COMMAND ERRORS
# =============================================================================


class CommandFailure(RelayError):
    """
    An external command exited non-zero or could not be started.

    ``exit_code`` is ``None`` when the process never ran (binary missing,
    permission denied on exec). Whether the failure is worth retrying is
    decided by the classifier from the captured output, not by this type.
    """

    default_category = ErrorCategory.COMMAND

    def __init__(
        self,
        *,
        exit_code: int | None,
        stdout: str = "",
        stderr: str = "",
        command: str = "",
        message: str | None = None,
        cause: Exception | None = None,
    ):
        if message is None:
            if exit_code is None:
                message = f"Command '{command}' could not be started"
            else:
                message = f"Command '{command}' failed with exit code {exit_code}"
        super().__init__(message, cause=cause)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.command = command

    @property
    def output(self) -> str:
        """Combined stderr + stdout, the text the classifier inspects."""
        return f"{self.stderr}{self.stdout}"

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["exit_code"] = self.exit_code
        result["command"] = self.command
        return result


class DependencyError(RelayError):
    """The external deployment tool is not installed or not usable."""

    default_category = ErrorCategory.DEPENDENCY


# =============================================================================
# CONFIGURATION / INPUT ERRORS
# =============================================================================


class ConfigError(RelayError):
    """Invalid configuration."""

    default_category = ErrorCategory.CONFIG


class TargetFileError(ConfigError):
    """The targets file is missing, unparsable, or has the wrong shape."""

    default_category = ErrorCategory.VALIDATION


class TargetNotFoundError(ConfigError):
    """A requested destination is not present in the targets file."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, destination: str):
        super().__init__(f"Target '{destination}' not found in configuration")
        self.destination = destination


# =============================================================================
# RUN CONTROL
# =============================================================================


class RunCancelledError(RelayError):
    """The run was interrupted before this piece of work finished."""

    default_category = ErrorCategory.CANCELLED

    def __init__(self, message: str = "Deployment cancelled"):
        super().__init__(message)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RelayError",
    "CommandFailure",
    "DependencyError",
    "ConfigError",
    "TargetFileError",
    "TargetNotFoundError",
    "RunCancelledError",
]
