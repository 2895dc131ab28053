"""
Root Typer application for the relay CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from relay.core.logging import configure_logging

app = Typer(
    name="relay",
    help="relay — deploy one artifact to many targets with retries and backups.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from relay import __version__

        typer.echo(f"relay {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """relay CLI — run deployments and manage targets files."""
    # WARNING and up, to stderr. `deploy run` reconfigures for --verbose.
    configure_logging(level="WARNING", service="relay")


# ── Sub-command registration ─────────────────────────────────────────────

from relay.cli.deploy import app as deploy_app  # noqa: E402
from relay.cli.targets import app as targets_app  # noqa: E402

app.add_typer(deploy_app, name="deploy", help="Run deployments.")
app.add_typer(targets_app, name="targets", help="Inspect and create targets files.")


if __name__ == "__main__":
    app()
