"""Deployment and backup collaborators built on :class:`CommandRunner`.

``CommandOperation`` performs one deployment attempt for one target and
``BackupManager`` takes a pre-deployment snapshot. Both render an argv
template from :class:`~relay.deploy.config.DeployConfig`::

    ["shopify", "theme", "push", "--store", "{destination}", "--theme", "{resource}"]
        → ["shopify", "theme", "push", "--store", "a.example", "--theme", "42"]

The operation raises :class:`~relay.core.errors.CommandFailure` on failure
so the retry engine can classify it. The backup never raises past its
boundary: a failed snapshot returns ``None`` and the deployment proceeds.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from relay.core.errors import CommandFailure, RelayError, RunCancelledError
from relay.deploy.runner import CommandRunner
from relay.deploy.targets import Target
from relay.execution.classifier import classify
from relay.execution.context import RunContext

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def render_command(template: Sequence[str], target: Target, **extra: str) -> list[str]:
    """Substitute ``{destination}``, ``{resource}`` and extras into ``template``."""
    values = {
        "destination": target.destination or "",
        "resource": target.resource or "",
        **extra,
    }
    try:
        return [part.format_map(values) for part in template]
    except KeyError as e:
        raise RelayError(f"Unknown placeholder {e} in command template {list(template)}") from e


class CommandOperation:
    """One deployment attempt: run the deploy command for a target.

    Instances are callables so they plug straight into
    :meth:`RetryExecutor.run`.
    """

    def __init__(self, runner: CommandRunner, template: Sequence[str]) -> None:
        self.runner = runner
        self.template = list(template)

    async def __call__(self, target: Target) -> str:
        argv = render_command(self.template, target)
        result = await self.runner.run(argv)
        return result.stdout


def backup_path_for(target: Target, backup_dir: Path, now: datetime | None = None) -> Path:
    """``{backup_dir}/{destination}-{resource}-{timestamp}`` with unsafe chars replaced."""
    stamp = (now or datetime.now(UTC)).strftime("%Y-%m-%dT%H-%M-%S")
    destination = _UNSAFE_CHARS.sub("-", target.destination or "unknown")
    resource = _UNSAFE_CHARS.sub("-", target.resource or "unknown")
    return Path(backup_dir) / f"{destination}-{resource}-{stamp}"


class BackupManager:
    """Pulls a snapshot of a target before it is overwritten."""

    def __init__(self, runner: CommandRunner, template: Sequence[str]) -> None:
        self.runner = runner
        self.template = list(template)

    async def backup(
        self,
        target: Target,
        backup_dir: Path,
        context: RunContext | None = None,
    ) -> str | None:
        """Snapshot ``target`` into a fresh directory under ``backup_dir``.

        Returns:
            The backup directory on success, ``None`` on any failure.
        """
        ctx = context or RunContext()
        path = backup_path_for(target, backup_dir)
        try:
            path.mkdir(parents=True, exist_ok=True)
            argv = render_command(self.template, target, path=str(path))
            await ctx.token.guard(self.runner.run(argv))
        except RunCancelledError:
            raise
        except Exception as e:
            error = classify(e)
            fields = {"target": target.label, "resource": target.resource, "error": error.message}
            if isinstance(e, CommandFailure):
                fields.update(command=e.command, stderr=e.stderr.strip() or None)
            ctx.emit("BACKUP_FAILED", **fields)
            return None

        ctx.emit("BACKUP_SUCCESS", target=target.label, resource=target.resource, path=str(path))
        return str(path)


__all__ = ["BackupManager", "CommandOperation", "backup_path_for", "render_command"]
