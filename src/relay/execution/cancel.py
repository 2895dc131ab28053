"""Cooperative cancellation for a deployment run.

A :class:`CancelToken` is created once per run and handed to everything
that suspends: backoff sleeps go through :meth:`CancelToken.sleep` and
in-flight operations through :meth:`CancelToken.guard`. Cancelling the
token wakes every waiter, which raises :class:`RunCancelledError`.

Example::

    token = CancelToken()
    loop.add_signal_handler(signal.SIGINT, token.cancel)

    await token.sleep(2.0)                     # aborts early on cancel
    stdout = await token.guard(operation(t))   # in-flight work is cancelled
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable
from typing import TypeVar

from relay.core.errors import RunCancelledError

T = TypeVar("T")


class CancelToken:
    """One-shot cancellation flag shared by a single run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "interrupted") -> None:
        """Request cancellation. Safe to call more than once."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelledError()

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless the token is cancelled first."""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise RunCancelledError()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable``, cancelling it if the token fires first."""
        if self._event.is_set():
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise RunCancelledError()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        if work.done():
            return work.result()
        work.cancel()
        # Let the work unwind (e.g. kill its subprocess) before reporting.
        await asyncio.gather(work, return_exceptions=True)
        raise RunCancelledError()


__all__ = ["CancelToken"]
