"""Result models for relay deployments.

Pydantic v2 models capturing structured outcomes: one
:class:`DeploymentOutcome` per target rolls up into a :class:`Summary` for
the run. The summary is what the CLI prints, what ``--json`` serialises,
and what decides the process exit code.

Key Concepts:
    RunStatus: SUCCESS, PARTIAL, FATAL, CANCELLED. FATAL and PARTIAL carry
        the same counts; only the termination signal differs.
    DeploymentOutcome: Frozen, built exactly once per target.
    FailedTarget: ``{target, reason}`` plus the classified kind and
        suggestion when one exists.
    Summary: Counts, ordered outcomes, failed targets, timing.
        ``mark_complete()`` finalises timestamps and duration.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from relay.deploy.targets import Target
from relay.execution.classifier import ClassifiedError, ErrorKind

MISSING_FIELDS_REASON = "Missing required fields"
GENERIC_FAILURE_REASON = "Deployment failed"
UNEXPECTED_FAILURE_REASON = "Unexpected deployment error"
CANCELLED_REASON = "Deployment cancelled"


class RunStatus(str, Enum):
    """Overall result of a run, interpreted by the CLI boundary."""

    SUCCESS = "SUCCESS"  # Every target succeeded
    PARTIAL = "PARTIAL"  # Failures tolerated (continue-on-error or dry run)
    FATAL = "FATAL"  # Failures and continue-on-error is off
    CANCELLED = "CANCELLED"  # Interrupted before completion

    @property
    def exit_code(self) -> int:
        return {
            RunStatus.SUCCESS: 0,
            RunStatus.PARTIAL: 0,
            RunStatus.FATAL: 1,
            RunStatus.CANCELLED: 130,
        }[self]


class TargetState(str, Enum):
    """Per-target lifecycle, as reported in event log lines."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    FAILED_RETRYABLE = "FAILED_RETRYABLE"
    SUCCEEDED = "SUCCEEDED"
    FAILED_TERMINAL = "FAILED_TERMINAL"


class DeploymentOutcome(BaseModel):
    """Final outcome for one target."""

    model_config = ConfigDict(frozen=True)

    target: Target
    success: bool
    attempts_made: int = 0
    final_error: ClassifiedError | None = None
    backup_path: str | None = None
    dry_run: bool = False
    cancelled: bool = False
    reason: str | None = None

    @property
    def failure_reason(self) -> str:
        if self.reason:
            return self.reason
        if self.final_error is not None:
            return self.final_error.message
        return GENERIC_FAILURE_REASON


class FailedTarget(BaseModel):
    """A target that did not deploy, with the reason shown to the user."""

    target: str
    reason: str
    kind: ErrorKind | None = None
    suggestion: str | None = None


class Summary(BaseModel):
    """Aggregated result of one deployment run."""

    run_id: str
    dry_run: bool = False
    status: RunStatus = RunStatus.SUCCESS
    success_count: int = 0
    failure_count: int = 0
    backup_count: int = 0
    total_retry_attempts: int = 0
    total_targets: int = 0
    outcomes: list[DeploymentOutcome] = Field(default_factory=list)
    failed_targets: list[FailedTarget] = Field(default_factory=list)
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0

    @property
    def exit_code(self) -> int:
        return self.status.exit_code

    def mark_complete(self) -> None:
        """Stamp completion time and compute duration."""
        self.completed_at = datetime.now(UTC).isoformat()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.completed_at)
        self.duration_seconds = (end - start).total_seconds()


__all__ = [
    "CANCELLED_REASON",
    "GENERIC_FAILURE_REASON",
    "MISSING_FIELDS_REASON",
    "UNEXPECTED_FAILURE_REASON",
    "DeploymentOutcome",
    "FailedTarget",
    "RunStatus",
    "Summary",
    "TargetState",
]
