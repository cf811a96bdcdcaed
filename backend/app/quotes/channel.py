"""Close-once asyncio channel used between feed transports and the coordinator."""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

T = TypeVar("T")

_CLOSED = object()


class TickerChannel(Generic[T]):
    """Unbounded single-loop channel with explicit close.

    Producers call put() without blocking. Consumers await get(), which returns
    None once the channel has been closed and everything queued before the
    close has been drained. close() takes effect exactly once.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, item: T) -> bool:
        """Queue an item. Returns False (and drops the item) if already closed."""
        if self._closed:
            return False
        self._queue.put_nowait(item)
        return True

    def close(self) -> bool:
        """Close the channel. Returns True only for the call that closed it."""
        if self._closed:
            return False
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        return True

    async def get(self) -> T | None:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker in place so every later get() also sees the close
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def __aiter__(self) -> TickerChannel[T]:
        return self

    async def __anext__(self) -> T:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item
