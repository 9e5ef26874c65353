"""Shared state between upload workers."""
import asyncio
import logging

logger = logging.getLogger(__name__)


class CancellationSignal:
    """
    One-way cancellation flag for a batch.

    Once cancelled it stays cancelled. Workers check it before claiming a task
    and before sending each chunk.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Cancel; returns True only for the call that flipped the flag."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()


class PendingWriteCounter:
    """
    Counts in-flight log writes.

    Every increment must be matched by exactly one decrement. ``wait_drained``
    returns once the count drops back to zero.
    """

    def __init__(self):
        self._pending = 0
        self._enqueued = 0
        self._completed = 0
        self._drained = asyncio.Event()
        self._drained.set()

    @property
    def pending(self) -> int:
        return self._pending

    @property
    def enqueued(self) -> int:
        return self._enqueued

    @property
    def completed(self) -> int:
        return self._completed

    def increment(self) -> None:
        self._pending += 1
        self._enqueued += 1
        self._drained.clear()

    def decrement(self) -> None:
        if self._pending <= 0:
            raise RuntimeError("PendingWriteCounter decremented below zero")
        self._pending -= 1
        self._completed += 1
        if self._pending == 0:
            self._drained.set()

    async def wait_drained(self) -> None:
        """Suspend until no writes are pending; returns at once if none are."""
        if self._pending > 0:
            logger.debug(f"Waiting for {self._pending} pending log write(s)")
            await self._drained.wait()
