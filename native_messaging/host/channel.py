"""Bounded FIFO channel between the asyncio loop and a worker thread.

Channel state lives on the event loop. The loop side awaits
`send`/`recv`; a blocking worker thread uses `blocking_send`/
`blocking_recv`, which schedule the same coroutines on the loop
and wait for them. A full channel suspends (or blocks) senders,
so memory never grows past `capacity` items.

Either end can be dropped: `close()` drops the receiving end
(senders get False from then on), `finish()` drops the sending
end (receivers drain what is queued, then get None).
"""
from __future__ import annotations

import asyncio
import concurrent.futures
from collections import deque
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Coroutine

T = TypeVar("T")
R = TypeVar("R")

CHANNEL_CAPACITY = 32

_POLL_SECONDS = 0.25


class Channel(Generic[T]):
    """Bounded single-consumer queue bridging threads and asyncio."""

    def __init__(
        self,
        capacity: int = CHANNEL_CAPACITY,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if capacity < 1:
            msg = f"channel capacity must be at least 1, got {capacity}"
            raise ValueError(msg)
        self._loop = loop if loop is not None else asyncio.get_running_loop()
        self._capacity = capacity
        self._items: deque[T] = deque()
        self._changed = asyncio.Condition()
        self._rx_closed = False
        self._tx_finished = False
        self._worker: asyncio.Future[None] | None = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def worker(self) -> asyncio.Future[None] | None:
        """Completion future of the thread serving this channel."""
        return self._worker

    def bind_worker(self, worker: asyncio.Future[None]) -> None:
        """Attach the serving thread's future; allowed once."""
        if self._worker is not None:
            msg = "channel already has a worker"
            raise RuntimeError(msg)
        self._worker = worker

    @property
    def closed(self) -> bool:
        """True once the receiving end has been dropped."""
        return self._rx_closed

    @property
    def finished(self) -> bool:
        """True once the sending end has been dropped."""
        return self._tx_finished

    def __len__(self) -> int:
        return len(self._items)

    # -- event loop side --

    async def send(self, item: T) -> bool:
        """Queue an item, waiting while the channel is full.

        Returns False if the receiving end is gone (or the sending
        end was already finished); the item is then discarded.
        """
        async with self._changed:
            await self._changed.wait_for(
                lambda: self._rx_closed
                or self._tx_finished
                or len(self._items) < self._capacity,
            )
            if self._rx_closed or self._tx_finished:
                return False
            self._items.append(item)
            self._changed.notify_all()
            return True

    async def recv(self) -> T | None:
        """Take the next item in FIFO order.

        Returns None once the sending end is finished and every
        queued item has been taken, or after `close()`.
        """
        async with self._changed:
            await self._changed.wait_for(
                lambda: bool(self._items)
                or self._tx_finished
                or self._rx_closed,
            )
            if self._rx_closed or not self._items:
                return None
            item = self._items.popleft()
            self._changed.notify_all()
            return item

    async def close(self) -> None:
        """Drop the receiving end, discarding queued items."""
        async with self._changed:
            self._rx_closed = True
            self._items.clear()
            self._changed.notify_all()

    async def finish(self) -> None:
        """Drop the sending end; queued items stay receivable."""
        async with self._changed:
            self._tx_finished = True
            self._changed.notify_all()

    # -- worker thread side (never call from the loop thread) --

    def blocking_send(self, item: T) -> bool:
        """Thread-side `send`; blocks while the channel is full."""
        return self._run_threadsafe(self.send(item), default=False)

    def blocking_recv(self) -> T | None:
        """Thread-side `recv`; blocks until an item or the end."""
        return self._run_threadsafe(self.recv(), default=None)

    def close_threadsafe(self) -> None:
        """Thread-side `close`."""
        self._run_threadsafe(self.close(), default=None)

    def finish_threadsafe(self) -> None:
        """Thread-side `finish`."""
        self._run_threadsafe(self.finish(), default=None)

    def _run_threadsafe(
        self,
        coro: Coroutine[object, object, R],
        *,
        default: R,
    ) -> R:
        """Run `coro` on the loop and wait for it.

        Returns `default` when the loop is closed or the scheduled
        coroutine was cancelled (loop shutting down).
        """
        try:
            future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        except RuntimeError:
            coro.close()
            return default
        while True:
            try:
                return future.result(timeout=_POLL_SECONDS)
            except concurrent.futures.TimeoutError:
                if self._loop.is_closed():
                    future.cancel()
                    return default
            except concurrent.futures.CancelledError:
                return default
