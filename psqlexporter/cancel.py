"""Cancellation token threaded through every suspension point of a cycle."""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Awaitable, TypeVar

T = TypeVar("T")


class CycleCancelledError(RuntimeError):
    """Raised when work is abandoned because the token fired."""


class CancellationToken:
    """Manual cancel switch combined with an optional deadline."""

    def __init__(self, timeout: float | None = None) -> None:
        self._event = asyncio.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        """Fire the token; in-flight `run` calls return promptly."""

        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""

        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        On cancellation the inner task is cancelled and drained before
        `CycleCancelledError` is raised.
        """

        if self.cancelled:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise CycleCancelledError(self._reason())
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
            await asyncio.gather(waiter, return_exceptions=True)
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        if task.cancelled():
            raise CycleCancelledError(self._reason())
        return task.result()

    def _reason(self) -> str:
        if self._event.is_set():
            return "scrape cycle cancelled"
        return "scrape cycle deadline exceeded"


__all__ = ["CancellationToken", "CycleCancelledError"]
