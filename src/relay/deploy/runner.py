"""Subprocess execution for the external deployment tool.

Runs commands via ``asyncio.create_subprocess_exec`` so many deployments
can wait on their subprocesses at once on a single event loop. A non-zero
exit becomes a :class:`~relay.core.errors.CommandFailure` carrying the exit
code, captured output and command line as named fields.

Key Concepts:
    CommandRunner: ``run(argv)`` → :class:`CommandResult`;
        ``check_available(argv)`` → raises :class:`DependencyError`.
    CommandResult: stdout / stderr / exit_code of a successful command.

Architecture Decisions:
    - subprocess, not a vendor SDK: works with any CLI that exits non-zero
      on failure and prints its errors.
    - Cancellation kills the child: if the awaiting task is cancelled the
      process is killed and reaped before the cancellation propagates.
    - Exec failures (binary missing) are reported as ``CommandFailure``
      with ``exit_code=None`` so the retry engine treats them uniformly.
"""

from __future__ import annotations

import asyncio
import os
import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from relay.core.errors import CommandFailure, DependencyError
from relay.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Output of a command that exited 0."""

    stdout: str
    stderr: str
    exit_code: int = 0


class CommandRunner:
    """Runs external commands and captures their output.

    Parameters
    ----------
    env
        Extra environment variables for every child process.
    cwd
        Working directory for every child process.
    """

    def __init__(self, env: Mapping[str, str] | None = None, cwd: Path | None = None) -> None:
        self.env = dict(env) if env else None
        self.cwd = cwd

    async def run(self, argv: Sequence[str]) -> CommandResult:
        """Run ``argv`` to completion.

        Raises:
            CommandFailure: The command exited non-zero or could not start.
        """
        command = shlex.join(argv)
        logger.debug("command.start", command=command)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._child_env(),
                cwd=self.cwd,
            )
        except OSError as e:
            raise CommandFailure(
                exit_code=None,
                stderr=str(e),
                command=command,
                cause=e,
            ) from e

        try:
            stdout_b, stderr_b = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            logger.debug("command.killed", command=command)
            raise

        stdout = stdout_b.decode("utf-8", errors="replace")
        stderr = stderr_b.decode("utf-8", errors="replace")
        logger.debug("command.exit", command=command, exit_code=proc.returncode)

        if proc.returncode != 0:
            raise CommandFailure(
                exit_code=proc.returncode,
                stdout=stdout,
                stderr=stderr,
                command=command,
            )
        return CommandResult(stdout=stdout, stderr=stderr, exit_code=0)

    async def check_available(self, argv: Sequence[str]) -> str:
        """Verify the external tool runs; returns its output (e.g. version).

        Raises:
            DependencyError: The tool is missing or exits non-zero.
        """
        try:
            result = await self.run(argv)
        except CommandFailure as e:
            raise DependencyError(
                f"'{argv[0]}' is not installed or not accessible: {e.message}",
                cause=e,
            ) from e
        return result.stdout.strip()

    def _child_env(self) -> dict[str, str] | None:
        if self.env is None:
            return None
        merged = dict(os.environ)
        merged.update(self.env)
        return merged


__all__ = ["CommandResult", "CommandRunner"]
