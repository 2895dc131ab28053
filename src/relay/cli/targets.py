"""
CLI: ``relay targets`` — inspect and create targets files.

Usage::

    relay targets list                    # targets.json (or $RELAY_TARGETS_FILE)
    relay targets list --file prod.yaml --json
    relay targets init --file targets.yaml
    relay targets validate
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from relay.cli.utils import console, fail, fail_on, print_rows
from relay.core.errors import RelayError
from relay.deploy.config import DeployConfig
from relay.deploy.targets import Target, load_targets, write_example

app = typer.Typer(no_args_is_help=True)


def _resolve(file: Path | None) -> Path:
    return file or DeployConfig.from_env().targets_file


def _load(path: Path) -> list[Target]:
    try:
        return load_targets(path)
    except RelayError as e:
        fail_on(e)


@app.command("list")
def list_targets(
    file: Path | None = typer.Option(None, "--file", "-f", help="Targets file (JSON or YAML)."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List the targets in a targets file."""
    path = _resolve(file)
    targets = _load(path)

    if json_out:
        payload = [t.model_dump() | {"valid": t.is_valid} for t in targets]
        typer.echo(json.dumps(payload, indent=2))
        return

    rows = [
        {
            "#": i,
            "destination": t.destination or "—",
            "resource": t.resource or "—",
            "valid": "yes" if t.is_valid else "[red]no[/]",
        }
        for i, t in enumerate(targets, start=1)
    ]
    print_rows(rows, title=f"Targets ({path})")


@app.command("init")
def init_targets(
    file: Path | None = typer.Option(None, "--file", "-f", help="File to create (.json or .yaml)."),
) -> None:
    """Create an example targets file."""
    path = _resolve(file)
    try:
        write_example(path)
    except FileExistsError as e:
        fail(str(e))
    console.print(f"[green]✓ Created {path}[/]")
    console.print("[dim]Edit it with your destinations and resource IDs, then run 'relay deploy run'.[/dim]")


@app.command("validate")
def validate_targets(
    file: Path | None = typer.Option(None, "--file", "-f", help="Targets file (JSON or YAML)."),
) -> None:
    """Check a targets file; exits 1 if any target is incomplete."""
    path = _resolve(file)
    targets = _load(path)
    invalid = [(i, t) for i, t in enumerate(targets, start=1) if not t.is_valid]

    for i, t in invalid:
        console.print(f"[red]✗ #{i} {t.label}: missing destination or resource[/]")
    if invalid:
        console.print(f"[bold red]{len(invalid)} of {len(targets)} targets are incomplete[/]")
        raise typer.Exit(code=1)
    console.print(f"[green]✓ {len(targets)} targets OK[/] ({path})")
