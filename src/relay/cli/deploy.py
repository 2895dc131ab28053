"""
CLI: ``relay deploy`` — run a deployment across a targets file.

Usage::

    relay deploy run                               # sequential, all targets
    relay deploy run --parallel --max-concurrent 5
    relay deploy run --target shop.example.com     # single target
    relay deploy run --backup --retry 5 --continue-on-error
    relay deploy run --dry-run --json
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from relay.cli.utils import console, err_console, fail, fail_on, print_summary
from relay.core.errors import DependencyError, RelayError
from relay.core.logging import configure_logging, get_logger
from relay.deploy.config import DeployConfig, default_log_file
from relay.deploy.event_log import EventLog
from relay.deploy.results import Summary
from relay.deploy.runner import CommandRunner
from relay.deploy.targets import Target, find_target, load_targets
from relay.execution.context import RunContext

app = typer.Typer(no_args_is_help=True)
logger = get_logger(__name__)

INSTALL_HINT = "Install the deployment CLI first (e.g. npm install -g @shopify/cli) or set RELAY_CHECK_COMMAND."


# ── Progress ─────────────────────────────────────────────────────────────


class ProgressPrinter:
    """Run listener that prints one line per notable event."""

    def __init__(self, out: Console, verbose: bool = False) -> None:
        self.out = out
        self.verbose = verbose

    def __call__(self, event: str, fields: dict[str, Any]) -> None:
        handler = getattr(self, f"_on_{event.lower()}", None)
        if handler is not None:
            handler(fields)

    def _on_dry_run(self, f: dict[str, Any]) -> None:
        self.out.print(f"[cyan][DRY RUN][/] Would deploy to: {f['target']} (resource: {f.get('resource')})")

    def _on_target_invalid(self, f: dict[str, Any]) -> None:
        self.out.print(f"[yellow]⚠ Skipping {f['target']}: {f['reason']}[/]")

    def _on_backup_success(self, f: dict[str, Any]) -> None:
        self.out.print(f"[green]✓[/] Backup of {f['target']} saved to {f['path']}")

    def _on_backup_failed(self, f: dict[str, Any]) -> None:
        self.out.print(f"[yellow]⚠ Backup failed for {f['target']}: {escape(str(f['error']))} (continuing)[/]")
        if self.verbose and f.get("stderr"):
            self.out.print(f"  [dim]stderr:[/] {escape(f['stderr'])}")

    def _on_attempt_started(self, f: dict[str, Any]) -> None:
        if f["attempt"] == 1:
            self.out.print(f"→ Deploying to {f['target']}")
        elif self.verbose:
            self.out.print(f"  [dim]attempt {f['attempt']}/{f['max_attempts']}[/]")

    def _on_deploy_success(self, f: dict[str, Any]) -> None:
        suffix = f" after {f['attempts']} attempts" if f["attempts"] > 1 else ""
        self.out.print(f"[green]✓ Deployed to {f['target']}{suffix}[/]")

    def _on_deploy_failed(self, f: dict[str, Any]) -> None:
        self.out.print(f"[red]✗ {f['target']}[/] [{f['kind']}] {f['message']}")
        self.out.print(f"  [yellow]Suggestion:[/] {f['suggestion']}")
        if not self.verbose:
            return
        for key in ("command", "exit_code", "stderr", "stdout", "detail"):
            if f.get(key) is not None:
                self.out.print(f"  [dim]{key}:[/] {escape(str(f[key]))}")

    def _on_retry_attempt(self, f: dict[str, Any]) -> None:
        self.out.print(
            f"[yellow]↻ Retrying {f['target']} in {f['delay_ms'] / 1000:g}s "
            f"(attempt {f['attempt']}/{f['max_attempts']} failed)[/]"
        )

    def _on_non_retryable(self, f: dict[str, Any]) -> None:
        self.out.print(f"  [dim]{f['kind']} is not retryable; giving up on {f['target']}[/]")

    def _on_unexpected_error(self, f: dict[str, Any]) -> None:
        self.out.print(f"[red]✗ {f['target']}: unexpected error: {escape(str(f.get('error')))}[/]")

    def _on_deploy_cancelled(self, f: dict[str, Any]) -> None:
        self.out.print(f"[magenta]■ {f['target']} cancelled[/]")


# ── Run ──────────────────────────────────────────────────────────────────


async def _execute(
    targets: list[Target],
    config: DeployConfig,
    context: RunContext,
    runner: CommandRunner,
) -> Summary:
    from relay.deploy.orchestrator import build_orchestrator

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, context.token.cancel, sig.name)

    if not config.dry_run:
        version = await runner.check_available(config.check_command)
        context.emit("DEPENDENCY_OK", command=" ".join(config.check_command), version=version or None)

    orchestrator = build_orchestrator(config, runner)
    return await orchestrator.deploy(targets, config, context)


@app.command("run")
def deploy_run(
    file: Path | None = typer.Option(None, "--file", "-f", help="Targets file (JSON or YAML)."),
    target: str | None = typer.Option(None, "--target", "-t", help="Deploy to a single destination."),
    parallel: bool = typer.Option(False, "--parallel", "-p", help="Deploy to targets concurrently."),
    max_concurrent: int | None = typer.Option(None, "--max-concurrent", "-m", help="Concurrency bound.", min=1),
    retry: int | None = typer.Option(None, "--retry", "-r", help="Retries after the first attempt.", min=0),
    retry_delay: int | None = typer.Option(None, "--retry-delay", help="Base retry delay in ms.", min=0),
    backup: bool = typer.Option(False, "--backup", "-b", help="Back up each target before deploying."),
    backup_dir: Path | None = typer.Option(None, "--backup-dir", help="Backup directory."),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show what would be deployed."),
    continue_on_error: bool = typer.Option(
        False, "--continue-on-error", "-c", help="Report failures without failing the run.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show commands and captured output."),
    json_out: bool = typer.Option(False, "--json", help="Print the summary as JSON."),
    log_file: Path | None = typer.Option(None, "--log-file", "-l", help="Event log file."),
) -> None:
    """Deploy to every target in the targets file.

    Exits 0 on success or tolerated failure, 1 on fatal failure and 130
    when interrupted.
    """
    configure_logging(level="DEBUG" if verbose else "WARNING", service="relay")

    try:
        config = DeployConfig.from_env(
            targets_file=file,
            parallel=parallel or None,
            max_concurrent=max_concurrent,
            retry_count=retry,
            retry_delay_ms=retry_delay,
            backup=backup or None,
            backup_dir=backup_dir,
            dry_run=dry_run or None,
            continue_on_error=continue_on_error or None,
            verbose=verbose or None,
            log_file=log_file,
        )
    except (ValidationError, ValueError) as e:
        fail(f"Invalid configuration: {e}")

    try:
        targets = load_targets(config.targets_file)
        if target:
            targets = [find_target(targets, target)]
            # A single-target run has nothing to continue to.
            config = config.model_copy(update={"continue_on_error": False})
    except RelayError as e:
        fail_on(e)

    out = err_console if json_out else console
    out.print(f"[bold]relay deploy[/] — run_id: {config.run_id}")
    out.print(f"  targets: {len(targets)}  mode: {config.mode}  retries: {config.retry_count}")

    log_path = config.log_file or default_log_file()
    with EventLog(log_path) as event_log:
        context = RunContext(
            run_id=config.run_id,
            event_log=event_log,
            listener=ProgressPrinter(out, verbose=config.verbose),
        )
        try:
            summary = asyncio.run(_execute(targets, config, context, CommandRunner()))
        except DependencyError as e:
            event_log.record("DEPENDENCY_ERROR", error=e.message)
            fail_on(e, hint=INSTALL_HINT)
        except KeyboardInterrupt:
            event_log.record("DEPLOY_INTERRUPTED")
            fail("Deployment interrupted", code=130)
        summary_path = event_log.write_summary(summary)

    if json_out:
        typer.echo(summary.model_dump_json(indent=2))
    else:
        print_summary(summary)
        console.print(f"[dim]Log: {log_path}  Summary: {summary_path}[/dim]")

    logger.debug("cli.deploy.exit", status=summary.status.value, exit_code=summary.exit_code)
    if summary.exit_code:
        raise typer.Exit(code=summary.exit_code)
