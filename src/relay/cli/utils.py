"""
CLI utility helpers — consoles, error reporting and summary rendering.
"""

from __future__ import annotations

from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from relay.core.errors import RelayError
from relay.deploy.results import RunStatus, Summary

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLE = {
    RunStatus.SUCCESS: "bold green",
    RunStatus.PARTIAL: "bold yellow",
    RunStatus.FATAL: "bold red",
    RunStatus.CANCELLED: "bold magenta",
}


# ── Errors ───────────────────────────────────────────────────────────────


def fail(message: str, *, hint: str | None = None, code: int = 1) -> NoReturn:
    """Print an error (and optional hint) to stderr and exit."""
    err_console.print(f"[bold red]Error[/bold red]: {escape(message)}", soft_wrap=True)
    if hint:
        err_console.print(f"[yellow]{hint}[/yellow]", soft_wrap=True)
    raise typer.Exit(code=code)


def fail_on(error: RelayError, *, hint: str | None = None) -> NoReturn:
    """Report a :class:`RelayError` with its category."""
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}", soft_wrap=True)
    if error.context.path:
        err_console.print(f"  [dim]path:[/dim] {error.context.path}")
    if hint:
        err_console.print(f"[yellow]{hint}[/yellow]", soft_wrap=True)
    raise typer.Exit(code=1)


# ── Summary ──────────────────────────────────────────────────────────────


def print_summary(summary: Summary, *, out: Console | None = None) -> None:
    """Render a run summary: counts table followed by failed targets."""
    out = out or console
    style = _STATUS_STYLE.get(summary.status, "bold")
    title = "Dry Run Summary" if summary.dry_run else "Deployment Summary"

    table = Table(title=title, show_header=False, pad_edge=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Run", summary.run_id)
    table.add_row("Status", f"[{style}]{summary.status.value}[/]")
    table.add_row("Targets", str(summary.total_targets))
    table.add_row("Succeeded", f"[green]{summary.success_count}[/]")
    table.add_row("Failed", f"[red]{summary.failure_count}[/]" if summary.failure_count else "0")
    if summary.backup_count:
        table.add_row("Backups", str(summary.backup_count))
    if summary.total_retry_attempts:
        table.add_row("Retries", str(summary.total_retry_attempts))
    table.add_row("Duration", f"{summary.duration_seconds:.1f}s")
    out.print(table)

    if summary.failed_targets:
        failed = Table(title="Failed Targets", pad_edge=False)
        failed.add_column("Target", style="bold")
        failed.add_column("Reason")
        failed.add_column("Suggestion", style="dim")
        for item in summary.failed_targets:
            failed.add_row(item.target, item.reason, item.suggestion or "")
        out.print(failed)


def print_rows(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)
