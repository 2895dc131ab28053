"""Persistent deployment event log.

Every discrete event of a run (retry attempt, failure, backup, summary)
is appended to one file as a single logfmt line::

    timestamp=2024-05-01T10:00:00.000000Z event=RETRY_ATTEMPT target=a.example attempt=1 delay_ms=1000

The file is opened once in append mode and written under a lock, so lines
from concurrent targets never interleave. Rendering goes through a small
structlog processor chain rather than hand-built strings.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import IO, Any

import structlog

from relay.core.logging import get_logger
from relay.deploy.results import Summary

logger = get_logger(__name__)


class EventLog:
    """Append-only event sink backed by a file.

    Parameters
    ----------
    path
        Log file. Parent directories are created; existing content is kept.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._file: IO[str] | None = self.path.open("a", encoding="utf-8")
        self._log = structlog.wrap_logger(
            structlog.WriteLogger(self._file),
            processors=[
                structlog.processors.TimeStamper(fmt="iso", utc=True),
                structlog.processors.LogfmtRenderer(key_order=["timestamp", "event"]),
            ],
            wrapper_class=structlog.BoundLogger,
        )

    @property
    def closed(self) -> bool:
        return self._file is None

    def record(self, event: str, **fields: Any) -> None:
        """Append one line for ``event``. ``None`` fields are omitted."""
        values = {k: v for k, v in fields.items() if v is not None}
        with self._lock:
            if self._file is None:
                logger.debug("event_log.closed", event_name=event)
                return
            self._log.msg(event, **values)
            self._file.flush()

    def write_summary(self, summary: Summary) -> Path:
        """Save the run summary as JSON next to the log file."""
        path = self.path.with_suffix(".summary.json")
        path.write_text(summary.model_dump_json(indent=2), encoding="utf-8")
        return path

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def __enter__(self) -> EventLog:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


__all__ = ["EventLog"]
