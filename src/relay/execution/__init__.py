"""
Execution engine: failure classification, bounded concurrency, cancellation
and per-run context.

``relay.execution.retry`` is not re-exported here: it builds
``relay.deploy.results`` models, which themselves depend on the classifier.
Import it directly::

    from relay.execution.retry import RetryExecutor, RetryPolicy
"""

from relay.execution.classifier import (
    RETRYABLE_KINDS,
    ClassifiedError,
    ErrorKind,
    classify,
    classify_text,
    is_retryable,
)
from relay.execution.cancel import CancelToken
from relay.execution.concurrency import Settled, run_bounded
from relay.execution.context import EventSink, NullEventSink, RunContext

__all__ = [
    "RETRYABLE_KINDS",
    "ClassifiedError",
    "ErrorKind",
    "classify",
    "classify_text",
    "is_retryable",
    "CancelToken",
    "Settled",
    "run_bounded",
    "EventSink",
    "NullEventSink",
    "RunContext",
]
