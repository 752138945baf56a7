"""Buffered, batched delivery of telemetry items."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from shared.exceptions.errors import AppError

T = TypeVar("T")


class BatchQueue(ABC, Generic[T]):
    """Accumulates items and sends them in batches.

    A flush is triggered when the buffer reaches ``batch_size`` or by the periodic
    loop every ``flush_interval`` seconds, whichever comes first. A flush takes the
    whole buffer synchronously and sends it in the background; when the send
    fails the batch is put back in front of anything queued since, keeping the
    original order. Delivery is at-least-once.
    """

    def __init__(self, name: str, logger: logging.Logger, batch_size: int, flush_interval: float) -> None:
        self.name = name
        self.logging = logger
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self._buffer: list[T] = []
        self._sending: set[asyncio.Task] = set()
        self._loop_task: asyncio.Task | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_buffer(self) -> list[T]:
        """A copy of the items waiting for the next flush."""
        return list(self._buffer)

    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    ##########################################
    ################ QUEUE ###################
    ##########################################

    def enqueue(self, item: T) -> None:
        self._buffer.append(item)
        if len(self._buffer) >= self.batch_size:
            self.flush()

    def flush(self) -> asyncio.Task | None:
        """Takes the current buffer and starts sending it.

        Must be called from within a running event loop.

        Returns:
            asyncio.Task | None: The send task, or None when the buffer was empty.
        """
        if not self._buffer:
            return None
        batch = self._buffer
        self._buffer = []
        task = asyncio.ensure_future(self._send_batch(batch))
        self._sending.add(task)
        task.add_done_callback(self._sending.discard)
        return task

    async def drain(self) -> None:
        """Waits for every send that is currently in flight."""
        while self._sending:
            await asyncio.gather(*self._sending, return_exceptions=True)

    async def _send_batch(self, batch: list[T]) -> bool:
        try:
            await self._do_send(batch)
        except AppError as e:
            self.logging.error("Failed to send %d %s items, re-queueing: %s", len(batch), self.name, e.message)
            self._buffer[:0] = batch
            return False
        self.logging.debug("Sent %d %s items", len(batch), self.name)
        return True

    @abstractmethod
    async def _do_send(self, batch: list[T]) -> None:
        """
        Delivers one batch.

        Raises:
            TransportError: If the batch was not accepted.
            AuthError: If the session ended while sending.
        """
        pass

    ##########################################
    ############# PERIODIC FLUSH #############
    ##########################################

    def start(self) -> None:
        """Starts the periodic flush loop. Must be called from within a running event loop."""
        if self.is_running():
            return
        self._loop_task = asyncio.ensure_future(self._run_periodic_flush())

    async def stop(self, flush: bool = True) -> None:
        """Stops the periodic loop and, by default, flushes and drains what is left."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        if flush:
            self.flush()
        await self.drain()

    async def _run_periodic_flush(self) -> None:
        while True:
            await asyncio.sleep(self.flush_interval)
            self.flush()
