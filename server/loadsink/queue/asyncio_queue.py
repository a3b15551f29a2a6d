"""In-process asyncio queue implementation of RecordQueue."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loadsink.queue.base import QueueClosedError

if TYPE_CHECKING:
    from loadsink.core.models import Record


_CLOSED = object()


class AsyncioRecordQueue:
    """RecordQueue backed by asyncio.Queue. Zero dependencies.

    Closing enqueues a sentinel behind any pending records, so the
    consumer drains everything already accepted before it sees None.
    """

    def __init__(self, max_size: int = 10_000) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=max_size)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, record: Record) -> None:
        if self._closed:
            raise QueueClosedError("record queue is closed")
        await self._queue.put(record)

    async def get(self) -> Record | None:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the sentinel for any other waiting consumer.
            self._queue.put_nowait(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    def qsize(self) -> int:
        size = self._queue.qsize()
        if self._closed and size:
            size -= 1
        return size
