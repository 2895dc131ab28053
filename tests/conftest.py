"""
Shared pytest fixtures and configuration for relay tests.

This module provides:
- Target lists covering valid and incomplete entries
- A recording sleep so backoff and settle delays are asserted, not waited
- A recording run listener and a RunContext wired to it
- A targets file on disk for loader and CLI tests

Usage:
    Fixtures are auto-discovered by pytest. Simply use them as function
    arguments (pytest injects them automatically).

    async def test_something(recording_sleep, run_context):
        ...
"""

import sys
from pathlib import Path

import pytest
import structlog

# Ensure relay package and test support are importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from _support import RecordingListener, RecordingSleep, make_targets
from relay.core.logging import clear_context
from relay.deploy.targets import Target
from relay.execution.context import RunContext


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_log_context():
    """Drop context vars and logging config left by a previous test."""
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


# =============================================================================
# Run plumbing
# =============================================================================


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def run_context(listener: RecordingListener) -> RunContext:
    return RunContext(run_id="test-run", listener=listener)


# =============================================================================
# Targets
# =============================================================================


@pytest.fixture
def five_targets() -> list[Target]:
    return make_targets(["a.example", "b.example", "c.example", "d.example", "e.example"])


@pytest.fixture
def mixed_targets() -> list[Target]:
    """Two valid targets around one with a missing resource."""
    return [
        Target(destination="a.example", resource="1"),
        Target(destination="broken.example"),
        Target(destination="c.example", resource="3"),
    ]


@pytest.fixture
def targets_file(tmp_path: Path) -> Path:
    path = tmp_path / "targets.json"
    path.write_text(
        '{"targets": ['
        '{"destination": "a.example", "resource": "1"},'
        '{"destination": "b.example", "resource": "2"}'
        "]}",
        encoding="utf-8",
    )
    return path
