"""Configuration models for relay deployments.

Provides the Pydantic v2 configuration model consumed by the orchestrator.
Every field can be overridden via environment variables, making the model
suitable for both interactive and CI/CD usage.

Why This Matters:
    CI jobs set ``RELAY_PARALLEL=true`` and ``RELAY_MAX_CONCURRENT=5``
    without touching the command line; the CLI passes explicit flags as
    keyword overrides on top.

Key Concepts:
    DeployConfig: Run behaviour (parallelism, retries, backup, dry run) and
        the external command templates.
    Command templates: argv lists with ``{destination}``, ``{resource}``
        and ``{path}`` placeholders, rendered per target by
        :mod:`relay.deploy.operations`.

Architecture Decisions:
    - Pydantic v2 (not dataclass): field constraints reject a zero
      concurrency bound or negative retry count before the engine runs.
    - from_env() classmethod: explicit env-var parsing rather than
      ``pydantic-settings``, keeping the dependency surface small.
    - Override precedence: kwargs > env vars > field defaults.

Tags:
    config, settings, pydantic, deployment, environment
"""

from __future__ import annotations

import os
import shlex
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

DEFAULT_DEPLOY_COMMAND = [
    "shopify", "theme", "push",
    "--store", "{destination}",
    "--theme", "{resource}",
    "--force", "--json",
]
DEFAULT_BACKUP_COMMAND = [
    "shopify", "theme", "pull",
    "--store", "{destination}",
    "--theme", "{resource}",
    "--path", "{path}",
    "--force",
]
DEFAULT_CHECK_COMMAND = ["shopify", "version"]


def default_log_file() -> Path:
    """``deployment-<UTC timestamp>.log`` in the working directory."""
    stamp = datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S")
    return Path(f"deployment-{stamp}.log")


class DeployConfig(BaseModel):
    """Configuration for one deployment run.

    Example::

        config = DeployConfig(parallel=True, max_concurrent=5, backup=True)
    """

    # Failure policy
    continue_on_error: bool = Field(
        default=False,
        description="Finish the run and report partial failure instead of failing fatally",
    )
    dry_run: bool = Field(default=False, description="Preview the plan without deploying")
    verbose: bool = Field(default=False, description="Surface commands and captured output")

    # Scheduling
    parallel: bool = Field(default=False, description="Deploy to targets concurrently")
    max_concurrent: int = Field(default=3, ge=1, description="Concurrency bound in parallel mode")
    inter_target_delay_ms: int = Field(
        default=2000,
        ge=0,
        description="Settle delay between targets in sequential mode",
    )

    # Retry
    retry_count: int = Field(default=3, ge=0, description="Retries after the first attempt")
    retry_delay_ms: int = Field(default=1000, ge=0, description="Base backoff delay")

    # Backup
    backup: bool = Field(default=False, description="Snapshot each target before deploying")
    backup_dir: Path = Field(default=Path("./backups"), description="Where backups are written")

    # Files
    targets_file: Path = Field(default=Path("targets.json"), description="Targets file")
    log_file: Path | None = Field(default=None, description="Deployment event log (auto-named)")

    # External tool
    deploy_command: list[str] = Field(default_factory=lambda: list(DEFAULT_DEPLOY_COMMAND))
    backup_command: list[str] = Field(default_factory=lambda: list(DEFAULT_BACKUP_COMMAND))
    check_command: list[str] = Field(default_factory=lambda: list(DEFAULT_CHECK_COMMAND))

    # Internal
    run_id: str = Field(default="", description="Unique run identifier (auto-generated)")

    @model_validator(mode="after")
    def _set_defaults(self) -> DeployConfig:
        if not self.run_id:
            self.run_id = uuid.uuid4().hex[:12]
        if not self.deploy_command:
            raise ValueError("deploy_command must not be empty")
        return self

    @property
    def mode(self) -> str:
        if self.dry_run:
            return "dry-run"
        return "parallel" if self.parallel else "sequential"

    @classmethod
    def from_env(cls, **overrides: Any) -> DeployConfig:
        """Create config from RELAY_* environment variables."""
        env_map = {
            "continue_on_error": "RELAY_CONTINUE_ON_ERROR",
            "dry_run": "RELAY_DRY_RUN",
            "verbose": "RELAY_VERBOSE",
            "parallel": "RELAY_PARALLEL",
            "max_concurrent": "RELAY_MAX_CONCURRENT",
            "inter_target_delay_ms": "RELAY_INTER_TARGET_DELAY_MS",
            "retry_count": "RELAY_RETRY_COUNT",
            "retry_delay_ms": "RELAY_RETRY_DELAY_MS",
            "backup": "RELAY_BACKUP",
            "backup_dir": "RELAY_BACKUP_DIR",
            "targets_file": "RELAY_TARGETS_FILE",
            "log_file": "RELAY_LOG_FILE",
            "deploy_command": "RELAY_DEPLOY_COMMAND",
            "backup_command": "RELAY_BACKUP_COMMAND",
            "check_command": "RELAY_CHECK_COMMAND",
        }
        bool_fields = {"continue_on_error", "dry_run", "verbose", "parallel", "backup"}
        int_fields = {"max_concurrent", "inter_target_delay_ms", "retry_count", "retry_delay_ms"}
        command_fields = {"deploy_command", "backup_command", "check_command"}

        values: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is None:
                continue
            if field_name in bool_fields:
                values[field_name] = env_val.lower() in ("true", "1", "yes")
            elif field_name in int_fields:
                values[field_name] = int(env_val)
            elif field_name in command_fields:
                values[field_name] = shlex.split(env_val)
            else:
                values[field_name] = env_val
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


__all__ = [
    "DEFAULT_BACKUP_COMMAND",
    "DEFAULT_CHECK_COMMAND",
    "DEFAULT_DEPLOY_COMMAND",
    "DeployConfig",
    "default_log_file",
]
