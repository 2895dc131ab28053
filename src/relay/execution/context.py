"""Per-run context passed through the deployment engine.

One :class:`RunContext` exists per orchestration call. It replaces any
process-wide UI or logging state: the run id, the event sink, the
cancellation token and an optional progress listener all travel by
reference into the components that need them, and disappear with the run.

Architecture::

    RunContext
      ├── run_id      ─ correlates log lines and the summary
      ├── event_log   ─ EventSink, one timestamped line per event
      ├── token       ─ CancelToken for sleeps and in-flight work
      └── listener    ─ optional callback for live terminal progress

    ctx.emit("RETRY_ATTEMPT", target="a.example", attempt=1, delay_ms=1000)
      → event_log.record(...)   (persistent)
      → listener(event, fields) (terminal, if any)
      → structlog debug         (diagnostic)
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from relay.core.logging import get_logger
from relay.execution.cancel import CancelToken

logger = get_logger(__name__)

Listener = Callable[[str, dict[str, Any]], None]


class EventSink(Protocol):
    """Anything that can persist a discrete deployment event."""

    def record(self, event: str, **fields: Any) -> None: ...


class NullEventSink:
    """Event sink that drops everything (tests, library use without a log file)."""

    def record(self, event: str, **fields: Any) -> None:
        return None


@dataclass
class RunContext:
    """State scoped to a single deployment run."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    event_log: EventSink = field(default_factory=NullEventSink)
    token: CancelToken = field(default_factory=CancelToken)
    listener: Listener | None = None

    def emit(self, event: str, **fields: Any) -> None:
        """Record an event everywhere it needs to go.

        A failing listener must not break the run, so its errors are
        logged and dropped.
        """
        self.event_log.record(event, **fields)
        logger.debug(event.lower(), run_id=self.run_id, **fields)
        if self.listener is not None:
            try:
                self.listener(event, fields)
            except Exception as e:
                logger.warning("listener.failed", event_name=event, error=str(e))


__all__ = ["EventSink", "Listener", "NullEventSink", "RunContext"]
