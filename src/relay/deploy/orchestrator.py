"""Deployment orchestrator: targets + config → Summary.

Coordinates the full run lifecycle: target validation → dry-run preview or
backup → retried deployment (sequential or bounded-parallel) → aggregation
→ run status.

Why This Matters:
    A rollout to a dozen targets involves dozens of subprocess calls,
    backoff waits and snapshot pulls. ``Orchestrator.deploy()`` folds all
    of that into one awaitable that returns a structured :class:`Summary`;
    the caller decides what to do with the status.

Key Concepts:
    Orchestrator: Wires a deploy operation, an optional backup manager and
        a :class:`RetryExecutor` together.
    summarize(): Pure aggregation of ordered outcomes into a Summary.
    resolve_status(): Maps failure count, cancellation and config onto a
        :class:`RunStatus`.
    build_orchestrator(): Factory from :class:`DeployConfig` and a shared
        :class:`CommandRunner`.

Architecture Decisions:
    - Never exits the process: FATAL is a status, the CLI picks the code.
    - Invalid targets are kept in the outcome list at their input position
      with ``attempts_made=0`` and never reach the classifier.
    - Sequential by default: one target at a time with a settle delay;
      ``parallel=True`` goes through :func:`run_bounded`.
    - Cancellation is cooperative: remaining targets are recorded as
      cancelled rather than dropped.

Related Modules:
    - :mod:`relay.execution.retry` — per-target retry loop
    - :mod:`relay.execution.concurrency` — bounded admission window
    - :mod:`relay.deploy.operations` — deploy and backup commands
    - :mod:`relay.deploy.results` — Summary and DeploymentOutcome
"""

from __future__ import annotations

import functools
from collections.abc import Sequence
from datetime import UTC, datetime

from relay.core.errors import RunCancelledError
from relay.core.logging import LogContext, get_logger
from relay.deploy.config import DeployConfig
from relay.deploy.operations import BackupManager, CommandOperation
from relay.deploy.results import (
    CANCELLED_REASON,
    MISSING_FIELDS_REASON,
    UNEXPECTED_FAILURE_REASON,
    DeploymentOutcome,
    FailedTarget,
    RunStatus,
    Summary,
    TargetState,
)
from relay.deploy.runner import CommandRunner
from relay.deploy.targets import Target
from relay.execution.concurrency import run_bounded
from relay.execution.context import RunContext
from relay.execution.retry import Operation, RetryExecutor, RetryPolicy, Sleep

logger = get_logger(__name__)


def summarize(
    run_id: str,
    outcomes: Sequence[DeploymentOutcome],
    *,
    dry_run: bool = False,
    started_at: str | None = None,
) -> Summary:
    """Aggregate ordered outcomes. Status is left at its default."""
    successes = [o for o in outcomes if o.success]
    failures = [o for o in outcomes if not o.success]
    summary = Summary(
        run_id=run_id,
        dry_run=dry_run,
        success_count=len(successes),
        failure_count=len(failures),
        backup_count=sum(1 for o in outcomes if o.backup_path),
        total_retry_attempts=sum(max(o.attempts_made - 1, 0) for o in successes),
        total_targets=len(outcomes),
        outcomes=list(outcomes),
        failed_targets=[
            FailedTarget(
                target=o.target.label,
                reason=o.failure_reason,
                kind=o.final_error.kind if o.final_error else None,
                suggestion=o.final_error.suggestion if o.final_error else None,
            )
            for o in failures
        ],
    )
    if started_at:
        summary.started_at = started_at
    return summary


def resolve_status(
    failure_count: int,
    *,
    cancelled: bool = False,
    continue_on_error: bool = False,
    dry_run: bool = False,
) -> RunStatus:
    if cancelled:
        return RunStatus.CANCELLED
    if failure_count == 0:
        return RunStatus.SUCCESS
    if continue_on_error or dry_run:
        return RunStatus.PARTIAL
    return RunStatus.FATAL


class Orchestrator:
    """Runs a deployment across many targets.

    Parameters
    ----------
    operation
        Async callable performing one deployment attempt for a target.
    backup
        Snapshot manager used when ``config.backup`` is set.
    retry
        Retry engine; defaults to a :class:`RetryExecutor` sharing ``sleep``.
    sleep
        Coroutine for waits, in seconds. Defaults to the run's cancel-aware
        :meth:`CancelToken.sleep`.
    """

    def __init__(
        self,
        operation: Operation,
        backup: BackupManager | None = None,
        retry: RetryExecutor | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.operation = operation
        self.backup = backup
        self.retry = retry or RetryExecutor(sleep=sleep)
        self._sleep = sleep

    async def deploy(
        self,
        targets: Sequence[Target],
        config: DeployConfig,
        context: RunContext | None = None,
    ) -> Summary:
        """Deploy to every target and return the aggregated summary."""
        ctx = context or RunContext(run_id=config.run_id)
        started_at = datetime.now(UTC).isoformat()

        async with LogContext(run_id=ctx.run_id):
            ctx.emit(
                "DEPLOY_START",
                targets=len(targets),
                mode=config.mode,
                max_concurrent=config.max_concurrent if config.parallel else None,
                retry_count=config.retry_count,
                backup=config.backup,
            )

            outcomes: list[DeploymentOutcome | None] = [None] * len(targets)
            pending: list[int] = []
            for i, target in enumerate(targets):
                if target.is_valid:
                    pending.append(i)
                    continue
                outcomes[i] = DeploymentOutcome(
                    target=target,
                    success=False,
                    reason=MISSING_FIELDS_REASON,
                    dry_run=config.dry_run,
                )
                ctx.emit(
                    "TARGET_INVALID",
                    target=target.label,
                    resource=target.resource,
                    reason=MISSING_FIELDS_REASON,
                    state=TargetState.FAILED_TERMINAL.value,
                )

            if config.dry_run:
                for i in pending:
                    outcomes[i] = self._preview(targets[i], ctx)
            elif config.parallel:
                await self._run_parallel(targets, pending, outcomes, config, ctx)
            else:
                await self._run_sequential(targets, pending, outcomes, config, ctx)

            final = [o for o in outcomes if o is not None]
            summary = summarize(
                ctx.run_id,
                final,
                dry_run=config.dry_run,
                started_at=started_at,
            )
            summary.status = resolve_status(
                summary.failure_count,
                cancelled=ctx.token.cancelled or any(o.cancelled for o in final),
                continue_on_error=config.continue_on_error,
                dry_run=config.dry_run,
            )
            summary.mark_complete()

            ctx.emit(
                "DEPLOY_COMPLETE",
                status=summary.status.value,
                success=summary.success_count,
                failed=summary.failure_count,
                backups=summary.backup_count,
                retries=summary.total_retry_attempts,
                duration_seconds=round(summary.duration_seconds, 3),
            )
            logger.info(
                "deploy.complete",
                status=summary.status.value,
                success=summary.success_count,
                failed=summary.failure_count,
            )
            return summary

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def _run_sequential(
        self,
        targets: Sequence[Target],
        pending: list[int],
        outcomes: list[DeploymentOutcome | None],
        config: DeployConfig,
        ctx: RunContext,
    ) -> None:
        sleep = self._sleep or ctx.token.sleep
        delay = config.inter_target_delay_ms / 1000
        for pos, i in enumerate(pending):
            try:
                outcomes[i] = await self._deploy_one(targets[i], config, ctx)
                if pos < len(pending) - 1 and delay > 0:
                    await sleep(delay)
            except RunCancelledError:
                for j in pending[pos:]:
                    if outcomes[j] is None:
                        outcomes[j] = self._cancelled(targets[j], ctx)
                return
            except Exception as e:
                outcomes[i] = self._unexpected(targets[i], e, ctx)

    async def _run_parallel(
        self,
        targets: Sequence[Target],
        pending: list[int],
        outcomes: list[DeploymentOutcome | None],
        config: DeployConfig,
        ctx: RunContext,
    ) -> None:
        tasks = [functools.partial(self._deploy_one, targets[i], config, ctx) for i in pending]
        settled = await run_bounded(tasks, config.max_concurrent, token=ctx.token)
        for result, i in zip(settled, pending, strict=True):
            if result.ok:
                outcomes[i] = result.value
            elif isinstance(result.error, RunCancelledError):
                outcomes[i] = self._cancelled(targets[i], ctx)
            else:
                outcomes[i] = self._unexpected(targets[i], result.error, ctx)

    async def _deploy_one(
        self,
        target: Target,
        config: DeployConfig,
        ctx: RunContext,
    ) -> DeploymentOutcome:
        ctx.token.raise_if_cancelled()
        backup_path = None
        if config.backup and self.backup is not None:
            backup_path = await self.backup.backup(target, config.backup_dir, ctx)
        return await self.retry.run(
            self.operation,
            target,
            RetryPolicy.from_config(config),
            context=ctx,
            backup_path=backup_path,
        )

    # ------------------------------------------------------------------
    # Outcome builders
    # ------------------------------------------------------------------

    @staticmethod
    def _preview(target: Target, ctx: RunContext) -> DeploymentOutcome:
        ctx.emit("DRY_RUN", target=target.label, resource=target.resource)
        return DeploymentOutcome(target=target, success=True, dry_run=True)

    @staticmethod
    def _cancelled(target: Target, ctx: RunContext) -> DeploymentOutcome:
        ctx.emit("DEPLOY_CANCELLED", target=target.label, reason=ctx.token.reason)
        return DeploymentOutcome(
            target=target,
            success=False,
            cancelled=True,
            reason=CANCELLED_REASON,
        )

    @staticmethod
    def _unexpected(target: Target, error: BaseException | None, ctx: RunContext) -> DeploymentOutcome:
        ctx.emit(
            "UNEXPECTED_ERROR",
            target=target.label,
            error=str(error) if error else None,
            state=TargetState.FAILED_TERMINAL.value,
        )
        logger.error("deploy.unexpected_error", target=target.label, error=str(error))
        return DeploymentOutcome(target=target, success=False, reason=UNEXPECTED_FAILURE_REASON)


def build_orchestrator(config: DeployConfig, runner: CommandRunner | None = None) -> Orchestrator:
    """Wire the command-based deploy operation and backup manager."""
    runner = runner or CommandRunner()
    backup = BackupManager(runner, config.backup_command) if config.backup else None
    return Orchestrator(
        operation=CommandOperation(runner, config.deploy_command),
        backup=backup,
    )


__all__ = ["Orchestrator", "build_orchestrator", "resolve_status", "summarize"]
