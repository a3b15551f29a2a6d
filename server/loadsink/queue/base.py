"""Queue interface (port) carrying records from the listener to the dispatcher."""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from loadsink.core.models import Record


class QueueClosedError(RuntimeError):
    """Raised by put() after close()."""


class RecordQueue(Protocol):
    """Port: accepts records and delivers them to one consumer.

    get() returns None once the queue has been closed and drained;
    put() after close() raises QueueClosedError.
    """

    async def put(self, record: Record) -> None: ...

    async def get(self) -> Record | None: ...

    async def close(self) -> None: ...

    def qsize(self) -> int: ...
