"""relay.deploy — Multi-target deployment through an external CLI.

Pushes the same artifact to many destinations by driving an external
command-line tool, one subprocess per attempt, with classified retries,
optional pre-deployment backups and a bounded parallel mode.

Key Concepts:
    DeployConfig: Pydantic model controlling run behaviour (parallelism,
        retries, backup, dry run) and the external command templates.
    Target: One destination/resource pair loaded from a targets file.
    Orchestrator: High-level runner — targets + config in, ``Summary`` out.
    CommandRunner: asyncio subprocess wrapper shared by deploy, backup and
        the dependency check.
    EventLog: Append-only logfmt file with one line per deployment event.

Related Modules:
    - :mod:`relay.deploy.config` — Configuration model
    - :mod:`relay.deploy.targets` — Target model and targets file I/O
    - :mod:`relay.deploy.results` — Outcome and summary models
    - :mod:`relay.deploy.runner` — Subprocess execution
    - :mod:`relay.deploy.operations` — Deploy and backup commands
    - :mod:`relay.deploy.event_log` — Persistent event log
    - :mod:`relay.deploy.orchestrator` — Run orchestration
    - :mod:`relay.cli.deploy` — CLI commands (``relay deploy``)

The orchestrator is loaded on first access because it depends on
:mod:`relay.execution.retry`, which in turn imports the result models here.
"""

from typing import Any

from relay.deploy.config import DeployConfig, default_log_file
from relay.deploy.event_log import EventLog
from relay.deploy.operations import BackupManager, CommandOperation, render_command
from relay.deploy.results import (
    DeploymentOutcome,
    FailedTarget,
    RunStatus,
    Summary,
    TargetState,
)
from relay.deploy.runner import CommandResult, CommandRunner
from relay.deploy.targets import Target, find_target, load_targets, write_example

_LAZY = {"Orchestrator", "build_orchestrator", "resolve_status", "summarize"}


def __getattr__(name: str) -> Any:
    if name in _LAZY:
        from relay.deploy import orchestrator

        return getattr(orchestrator, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Config
    "DeployConfig",
    "default_log_file",
    # Targets
    "Target",
    "find_target",
    "load_targets",
    "write_example",
    # Results
    "DeploymentOutcome",
    "FailedTarget",
    "RunStatus",
    "Summary",
    "TargetState",
    # Execution
    "BackupManager",
    "CommandOperation",
    "CommandResult",
    "CommandRunner",
    "EventLog",
    "render_command",
    # Orchestration
    "Orchestrator",
    "build_orchestrator",
    "resolve_status",
    "summarize",
]
