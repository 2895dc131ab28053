"""Retry with exponential backoff for one deployment target.

:class:`RetryExecutor` runs an operation against a target up to
``retry_count + 1`` times. Every failure is classified; terminal kinds stop
immediately, retryable kinds wait ``base_delay_ms × 2^attempt`` before the
next attempt. Whatever happens, the caller gets a
:class:`~relay.deploy.results.DeploymentOutcome` back; an operation failure
never escapes.

Example:
    >>> policy = RetryPolicy(retry_count=3, base_delay_ms=1000)
    >>> [policy.delay_before_ms(k) for k in range(1, 4)]
    [1000, 2000, 4000]

    >>> executor = RetryExecutor()
    >>> outcome = await executor.run(operation, target, policy, context=ctx)
    >>> outcome.success, outcome.attempts_made
    (True, 2)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from relay.core.errors import CommandFailure, RunCancelledError
from relay.core.logging import get_logger
from relay.deploy.results import DeploymentOutcome, TargetState
from relay.deploy.targets import Target
from relay.execution.classifier import ClassifiedError, classify
from relay.execution.context import RunContext

logger = get_logger(__name__)

Operation = Callable[[Target], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[None]]
Classifier = Callable[[BaseException | None], ClassifiedError]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff schedule.

    Attributes:
        retry_count: Retries after the first attempt (0 = single attempt)
        base_delay_ms: Delay before the first retry; doubles each retry
    """

    retry_count: int = 3
    base_delay_ms: int = 1000

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {self.retry_count}")
        if self.base_delay_ms < 0:
            raise ValueError(f"base_delay_ms must be >= 0, got {self.base_delay_ms}")

    @property
    def max_attempts(self) -> int:
        return self.retry_count + 1

    def delay_after_ms(self, attempt: int) -> int:
        """Delay to wait after failed attempt ``attempt`` (0-based)."""
        return self.base_delay_ms * (2**attempt)

    def delay_before_ms(self, attempt: int) -> int:
        """Delay preceding attempt ``attempt`` (0-based); 0 for the first."""
        if attempt <= 0:
            return 0
        return self.delay_after_ms(attempt - 1)

    @classmethod
    def from_config(cls, config: Any) -> RetryPolicy:
        """Build from anything with ``retry_count`` and ``retry_delay_ms``."""
        return cls(retry_count=config.retry_count, base_delay_ms=config.retry_delay_ms)


class AttemptStatus(str, Enum):
    SUCCEEDED = "SUCCEEDED"
    FAILED_RETRYABLE = "FAILED_RETRYABLE"
    FAILED_TERMINAL = "FAILED_TERMINAL"


@dataclass(frozen=True)
class AttemptRecord:
    """One attempt inside a single :meth:`RetryExecutor.run` call."""

    attempt_index: int
    delay_before_ms: int
    status: AttemptStatus


class RetryExecutor:
    """Runs an operation against one target with classified retries.

    Parameters
    ----------
    classifier
        Maps a failure to a :class:`ClassifiedError` (default: :func:`classify`).
    sleep
        Coroutine used for backoff waits, in seconds. Defaults to the run's
        cancel-aware :meth:`CancelToken.sleep`.
    """

    def __init__(
        self,
        classifier: Classifier = classify,
        sleep: Sleep | None = None,
    ) -> None:
        self._classify = classifier
        self._sleep = sleep

    async def run(
        self,
        operation: Operation,
        target: Target,
        policy: RetryPolicy,
        *,
        context: RunContext | None = None,
        backup_path: str | None = None,
    ) -> DeploymentOutcome:
        """Attempt ``operation(target)`` under ``policy``.

        Raises:
            RunCancelledError: The run was cancelled during an attempt or a
                backoff wait. This is not an operation failure.
        """
        ctx = context or RunContext()
        sleep = self._sleep or ctx.token.sleep
        label = target.label
        records: list[AttemptRecord] = []
        last_error: ClassifiedError | None = None

        for attempt in range(policy.max_attempts):
            delay_before = policy.delay_before_ms(attempt)
            ctx.emit(
                "ATTEMPT_STARTED",
                target=label,
                attempt=attempt + 1,
                max_attempts=policy.max_attempts,
                state=TargetState.IN_PROGRESS.value,
            )
            try:
                await ctx.token.guard(operation(target))
            except RunCancelledError:
                raise
            except Exception as e:
                last_error = self._classify(e)
                final = attempt == policy.max_attempts - 1
                status = (
                    AttemptStatus.FAILED_RETRYABLE
                    if last_error.retryable and not final
                    else AttemptStatus.FAILED_TERMINAL
                )
                records.append(AttemptRecord(attempt, delay_before, status))
                self._emit_failure(ctx, label, attempt, last_error, e)

                if final:
                    break
                if not last_error.retryable:
                    ctx.emit(
                        "NON_RETRYABLE",
                        target=label,
                        kind=last_error.kind.value,
                        state=TargetState.FAILED_TERMINAL.value,
                    )
                    break

                delay = policy.delay_after_ms(attempt)
                ctx.emit(
                    "RETRY_ATTEMPT",
                    target=label,
                    attempt=attempt + 1,
                    max_attempts=policy.max_attempts,
                    delay_ms=delay,
                    retryable=True,
                    reason=last_error.message,
                    state=TargetState.FAILED_RETRYABLE.value,
                )
                await sleep(delay / 1000)
                continue

            records.append(AttemptRecord(attempt, delay_before, AttemptStatus.SUCCEEDED))
            ctx.emit(
                "DEPLOY_SUCCESS",
                target=label,
                resource=target.resource,
                attempts=attempt + 1,
                state=TargetState.SUCCEEDED.value,
            )
            if attempt > 0:
                ctx.emit("RETRY_SUCCESS", target=label, attempts=attempt + 1)
            return DeploymentOutcome(
                target=target,
                success=True,
                attempts_made=attempt + 1,
                backup_path=backup_path,
            )

        ctx.emit(
            "RETRY_EXHAUSTED",
            target=label,
            attempts=len(records),
            kind=last_error.kind.value if last_error else None,
            state=TargetState.FAILED_TERMINAL.value,
        )
        logger.debug(
            "retry.finished",
            target=label,
            attempts=[(r.attempt_index, r.delay_before_ms, r.status.value) for r in records],
        )
        return DeploymentOutcome(
            target=target,
            success=False,
            attempts_made=len(records),
            final_error=last_error,
            backup_path=backup_path,
        )

    @staticmethod
    def _emit_failure(
        ctx: RunContext,
        label: str,
        attempt: int,
        error: ClassifiedError,
        exc: Exception,
    ) -> None:
        fields: dict[str, Any] = {
            "target": label,
            "attempt": attempt + 1,
            "kind": error.kind.value,
            "message": error.message,
            "suggestion": error.suggestion,
            "retryable": error.retryable,
        }
        if isinstance(exc, CommandFailure):
            fields.update(
                command=exc.command,
                exit_code=exc.exit_code,
                stderr=exc.stderr.strip() or None,
                stdout=exc.stdout.strip() or None,
            )
        else:
            fields["detail"] = str(exc) or type(exc).__name__
        ctx.emit("DEPLOY_FAILED", **fields)


__all__ = [
    "AttemptRecord",
    "AttemptStatus",
    "Operation",
    "RetryExecutor",
    "RetryPolicy",
]
