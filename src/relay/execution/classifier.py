"""Failure classification for external deployment commands.

Maps the raw output of a failed command to an :class:`ErrorKind` with a
fixed message, a remediation suggestion and a retryable flag. The retry
engine uses the flag to decide between another attempt and giving up.

Rules are checked in a fixed priority order and the first substring match
wins, so authentication text beats generic network text even when both
appear in the same output.

Example:
    >>> from relay.execution.classifier import classify_text, ErrorKind
    >>> classify_text("Error: Too Many Requests").kind
    <ErrorKind.RATE_LIMIT: 'RATE_LIMIT'>
    >>> classify_text("not authenticated; network down").kind
    <ErrorKind.AUTHENTICATION: 'AUTHENTICATION'>
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict

from relay.core.errors import CommandFailure


class ErrorKind(str, Enum):
    """Classified kinds of deployment failure."""

    AUTHENTICATION = "AUTHENTICATION"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    DESTINATION_NOT_FOUND = "DESTINATION_NOT_FOUND"
    PERMISSION = "PERMISSION"
    RATE_LIMIT = "RATE_LIMIT"
    NETWORK = "NETWORK"
    GENERIC = "GENERIC"


# Unrecognised failures may be temporary, so GENERIC stays retryable.
RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.RATE_LIMIT, ErrorKind.NETWORK, ErrorKind.GENERIC}
)


class ClassifiedError(BaseModel):
    """Result of classifying one failure."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    suggestion: str
    retryable: bool


@dataclass(frozen=True)
class _Rule:
    kind: ErrorKind
    patterns: tuple[str, ...]
    message: str
    suggestion: str


# Order matters: first match wins.
RULES: tuple[_Rule, ...] = (
    _Rule(
        ErrorKind.AUTHENTICATION,
        ("authentication", "not authenticated"),
        "Authentication required. Log in to the destination with the deployment tool.",
        "Run the tool's login command for this destination and try again",
    ),
    _Rule(
        ErrorKind.RESOURCE_NOT_FOUND,
        ("theme not found", "theme does not exist", "resource not found", "resource does not exist"),
        "Resource not found. Please check the resource ID is correct.",
        "List the resources available on the destination and update the targets file",
    ),
    _Rule(
        ErrorKind.DESTINATION_NOT_FOUND,
        ("store not found", "shop not found", "destination not found"),
        "Destination not found. Please check the destination address is correct.",
        "Verify the destination address in the targets file",
    ),
    _Rule(
        ErrorKind.PERMISSION,
        ("permission", "access denied"),
        "Permission denied. You may not have access to this destination or resource.",
        "Check your permissions on the destination or re-authenticate",
    ),
    _Rule(
        ErrorKind.RATE_LIMIT,
        ("rate limit", "too many requests"),
        "Rate limit exceeded. Please wait before trying again.",
        "Wait a few minutes and retry the deployment",
    ),
    _Rule(
        ErrorKind.NETWORK,
        ("network", "connection"),
        "Network connection error. Please check your internet connection.",
        "Check your network connection and try again",
    ),
)

_GENERIC = _Rule(
    ErrorKind.GENERIC,
    (),
    "Deployment command failed",
    "Check the error details and verify your configuration",
)


def is_retryable(kind: ErrorKind) -> bool:
    """Return True if another attempt is permitted for ``kind``."""
    return kind in RETRYABLE_KINDS


def _build(rule: _Rule) -> ClassifiedError:
    return ClassifiedError(
        kind=rule.kind,
        message=rule.message,
        suggestion=rule.suggestion,
        retryable=is_retryable(rule.kind),
    )


def classify_text(text: str | None) -> ClassifiedError:
    """Classify raw failure text. Empty or missing text is GENERIC."""
    haystack = (text or "").lower()
    if haystack:
        for rule in RULES:
            if any(pattern in haystack for pattern in rule.patterns):
                return _build(rule)
    return _build(_GENERIC)


def classify(failure: BaseException | str | None) -> ClassifiedError:
    """Classify a failed attempt.

    Args:
        failure: A :class:`CommandFailure` (stderr + stdout are inspected),
            any other exception (its string form), raw text, or ``None``
            when nothing is known about the failure.

    Returns:
        The classified error. Never raises.
    """
    if isinstance(failure, CommandFailure):
        return classify_text(failure.output)
    if isinstance(failure, BaseException):
        return classify_text(str(failure))
    return classify_text(failure)


__all__ = [
    "ErrorKind",
    "ClassifiedError",
    "RETRYABLE_KINDS",
    "RULES",
    "classify",
    "classify_text",
    "is_retryable",
]
