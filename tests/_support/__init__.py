"""
Test support utilities for relay tests.

Test doubles and builders that don't fit as pytest fixtures but are
useful across multiple test files.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from relay.core.errors import CommandFailure
from relay.deploy.targets import Target


class RecordingSleep:
    """Async sleep stand-in that records requested delays (seconds)."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)

    @property
    def calls_ms(self) -> list[int]:
        return [round(s * 1000) for s in self.calls]


class FakeOperation:
    """Deploy operation driven by a per-destination script.

    Each script entry is either an exception to raise or a value to
    return; the last entry repeats once the script is exhausted.
    Destinations without a script succeed with ``"ok"``.
    """

    def __init__(self, scripts: dict[str, list[Any]] | None = None, delay: float = 0.0) -> None:
        self.scripts = {k: list(v) for k, v in (scripts or {}).items()}
        self.delay = delay
        self.calls: list[str | None] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, target: Target) -> Any:
        self.calls.append(target.destination)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            script = self.scripts.get(target.destination or "")
            if not script:
                return "ok"
            step = script.pop(0) if len(script) > 1 else script[0]
            if isinstance(step, BaseException):
                raise step
            return step
        finally:
            self.in_flight -= 1

    def attempts_for(self, destination: str) -> int:
        return self.calls.count(destination)


class RecordingListener:
    """Run listener collecting ``(event, fields)`` pairs."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, event: str, fields: dict[str, Any]) -> None:
        self.events.append((event, dict(fields)))

    def names(self) -> list[str]:
        return [e for e, _ in self.events]

    def of(self, event: str) -> list[dict[str, Any]]:
        return [f for e, f in self.events if e == event]


def failure(stderr: str, exit_code: int = 1, command: str = "shopify theme push") -> CommandFailure:
    """Build a CommandFailure as the runner would raise it."""
    return CommandFailure(exit_code=exit_code, stderr=stderr, command=command)


def make_targets(destinations: Iterable[str]) -> list[Target]:
    return [Target(destination=d, resource=str(100 + i)) for i, d in enumerate(destinations)]


__all__ = ["FakeOperation", "RecordingListener", "RecordingSleep", "failure", "make_targets"]
