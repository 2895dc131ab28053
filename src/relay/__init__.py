"""
Relay - fan-out deployment of one artifact to many remote targets.

Packages:
- relay.core: Error types and logging configuration
- relay.execution: Failure classification, retry, bounded concurrency
- relay.deploy: Targets, configuration, orchestration, result models
- relay.cli: Typer command-line interface
"""

__version__ = "0.3.0"
