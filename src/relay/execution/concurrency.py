"""Bounded concurrency for deployment tasks.

WHY
───
Deploying to fifty destinations at once floods the receiving API and the
local machine with subprocesses. ``run_bounded`` keeps at most
``max_concurrent`` tasks in flight while still overlapping as much work as
the bound allows, and hands results back in the order the tasks were given
so aggregation never depends on completion timing.

ARCHITECTURE
────────────
::

    run_bounded(tasks, max_concurrent=2)

      admit t0 ─┐
      admit t1 ─┤ window full → wait FIRST_COMPLETED
                │   t1 done   → slot freed
      admit t2 ─┤ window full → wait FIRST_COMPLETED
                │   ...
      drain  ───┘ wait ALL
      → [Settled(t0), Settled(t1), Settled(t2), ...]   (input order)

    Admission happens only when a slot frees from the in-flight set; the
    earliest-completing task frees it, not the earliest submitted.

BEST PRACTICES
──────────────
- Tasks are nullary coroutine functions, not coroutines: a task that is
  never admitted (cancelled run) is never started.
- A failing task becomes ``Settled(error=...)``; siblings keep running.

Example::

    results = await run_bounded(
        [functools.partial(deploy, t) for t in targets],
        max_concurrent=3,
    )
    for target, settled in zip(targets, results):
        if settled.ok:
            print(target, settled.value)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from relay.core.errors import RunCancelledError
from relay.execution.cancel import CancelToken

T = TypeVar("T")

Task = Callable[[], Awaitable[T]]


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one task: either a value or the exception it raised."""

    index: int
    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _settle(index: int, task: Task[T]) -> Settled[T]:
    try:
        value = await task()
    except Exception as e:
        return Settled(index=index, error=e)
    return Settled(index=index, value=value)


async def run_bounded(
    tasks: Sequence[Task[T]],
    max_concurrent: int,
    token: CancelToken | None = None,
) -> list[Settled[T]]:
    """Run ``tasks`` with at most ``max_concurrent`` in flight.

    Args:
        tasks: Ordered nullary async callables.
        max_concurrent: Concurrency bound (>= 1).
        token: Optional cancel token; once cancelled no further task is
            admitted and the unadmitted ones settle with
            :class:`RunCancelledError`.

    Returns:
        One :class:`Settled` per task, in input order.

    Raises:
        ValueError: If ``max_concurrent`` is less than 1.
    """
    if max_concurrent < 1:
        raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")

    results: list[Settled[T] | None] = [None] * len(tasks)
    in_flight: set[asyncio.Task[Settled[T]]] = set()

    def _collect(done: set[asyncio.Task[Settled[T]]]) -> None:
        for finished in done:
            in_flight.discard(finished)
            settled = finished.result()
            results[settled.index] = settled

    try:
        for index, task in enumerate(tasks):
            if token is not None and token.cancelled:
                break
            in_flight.add(asyncio.ensure_future(_settle(index, task)))
            if len(in_flight) >= max_concurrent:
                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                _collect(done)

        if in_flight:
            done, _ = await asyncio.wait(in_flight)
            _collect(done)
    except asyncio.CancelledError:
        for pending in in_flight:
            pending.cancel()
        raise

    return [
        settled if settled is not None else Settled(index=i, error=RunCancelledError())
        for i, settled in enumerate(results)
    ]


__all__ = ["Settled", "Task", "run_bounded"]
