"""Cancellable one-shot timer that runs a coroutine when it fires."""

import asyncio
import logging
from typing import Any, Awaitable, Callable


class DeferredTask:
    """Owns at most one pending timer.

    Scheduling always cancels the previous pending timer first. Once a timer has
    fired, its coroutine runs as an independent task: cancelling or rescheduling
    afterwards only affects the next timer, never the running work.
    """

    def __init__(self, name: str, logger: logging.Logger) -> None:
        self.name = name
        self.logging = logger
        self._handle: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Task] = set()

    def schedule(self, delay: float, callback: Callable[[], Awaitable[Any]]) -> None:
        """Fire ``callback`` after ``delay`` seconds, replacing any pending timer.

        Must be called from within a running event loop.
        """
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(max(delay, 0.0), self._fire, callback)
        self.logging.debug("Deferred task '%s' scheduled in %.1fs", self.name, max(delay, 0.0))

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def is_pending(self) -> bool:
        return self._handle is not None

    def get_delay(self) -> float | None:
        """Seconds until the pending timer fires, or None if nothing is pending."""
        if self._handle is None:
            return None
        return max(self._handle.when() - asyncio.get_running_loop().time(), 0.0)

    async def wait_running(self) -> None:
        """Wait until every already-fired callback has finished."""
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    def _fire(self, callback: Callable[[], Awaitable[Any]]) -> None:
        self._handle = None
        task = asyncio.ensure_future(callback())
        self._running.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logging.warning("Deferred task '%s' failed: %s", self.name, error)
