"""
CLI layer for relay.

Provides a Typer application whose commands delegate to ``relay.deploy``.
All deployment logic lives there; this package handles only terminal
transport: argument parsing, live progress, summary tables and the
process exit code.

Entry point::

    relay --help
"""

from relay.cli.app import app

__all__ = ["app"]
