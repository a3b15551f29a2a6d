"""Result processor: validates incoming results and feeds the collectors.

This is the core business logic between the listener and the collectors.
It depends on the RecordQueue and Collector protocols, not concrete
implementations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

import structlog

from loadsink.core.errors import ProvisioningError, SinkError, WriteError
from loadsink.core.models import DestinationMapping
from loadsink.core.stats import PROVISIONING, WRITE

if TYPE_CHECKING:
    from loadsink.core.models import Record
    from loadsink.core.stats import SinkStats
    from loadsink.queue.base import RecordQueue

log = structlog.get_logger()


def _failure_kind(exc: SinkError) -> str:
    if isinstance(exc, ProvisioningError):
        return PROVISIONING
    if isinstance(exc, WriteError):
        return WRITE
    return ""


class Collector(Protocol):
    """Anything the dispatch loop can push mappings into.

    push() and flush() return the number of lines written.
    """

    name: str

    async def push(self, mapping: DestinationMapping) -> int: ...

    async def flush(self) -> int: ...

    @property
    def pending_count(self) -> int: ...


class ResultProcessor:
    """Enqueues complete records and dispatches them to every collector."""

    def __init__(
        self,
        queue: RecordQueue,
        collectors: Sequence[Collector],
        stats: SinkStats,
        destination: str,
    ) -> None:
        if not destination:
            raise ValueError("destination is required")
        self._queue = queue
        self._collectors = list(collectors)
        self._stats = stats
        self._destination = destination

    @property
    def collectors(self) -> list[Collector]:
        return list(self._collectors)

    async def submit(self, records: Sequence[Record], size_bytes: int) -> tuple[int, int]:
        """Enqueue records for dispatch. Returns (queued, rejected).

        Incomplete records are dropped here so they never occupy the queue.
        """
        queued = 0
        rejected = 0
        for record in records:
            if not record.is_complete():
                rejected += 1
                continue
            await self._queue.put(record)
            queued += 1

        if rejected:
            self._stats.record_rejected(rejected)
        if queued:
            self._stats.record_received(queued, size_bytes)
            log.info("results_enqueued", count=queued, rejected=rejected)

        self._stats.update_queue_depth(self._queue.qsize())
        return queued, rejected

    async def dispatch(self, record: Record) -> None:
        """Push one record into each collector in turn.

        A failing collector is logged and skipped; the others still get
        the record.
        """
        mapping = DestinationMapping(record=record, destination=self._destination)
        for collector in self._collectors:
            try:
                written = await collector.push(mapping)
            except SinkError as exc:
                log.error("collector_push_failed", collector=collector.name,
                          destination=mapping.destination,
                          error_kind=type(exc).__name__, error=str(exc),
                          pending=collector.pending_count)
                self._stats.record_push(collector.name, collector.pending_count,
                                        error=f"{type(exc).__name__}: {exc}",
                                        kind=_failure_kind(exc))
            except Exception as exc:
                log.error("collector_push_crashed", collector=collector.name,
                          destination=mapping.destination, exc_info=True)
                self._stats.record_push(collector.name, collector.pending_count,
                                        error=f"{type(exc).__name__}: {exc}")
            else:
                self._stats.record_push(collector.name, collector.pending_count,
                                        written=written)
        self._stats.record_dispatched()

    async def run_dispatch_loop(self) -> None:
        """Consume from the queue until it is closed. Runs as a background task."""
        log.info("dispatch_loop_started", collectors=[c.name for c in self._collectors])
        while True:
            record = await self._queue.get()
            if record is None:
                break
            await self.dispatch(record)
            self._stats.update_queue_depth(self._queue.qsize())
        log.info("dispatch_loop_stopped")

    async def flush_all(self) -> None:
        """Force every collector to write what it has buffered."""
        for collector in self._collectors:
            try:
                written = await collector.flush()
            except SinkError as exc:
                log.error("collector_flush_failed", collector=collector.name,
                          error=str(exc), pending=collector.pending_count)
                self._stats.record_push(collector.name, collector.pending_count,
                                        error=f"{type(exc).__name__}: {exc}",
                                        kind=_failure_kind(exc))
            else:
                if written:
                    self._stats.record_push(collector.name, collector.pending_count,
                                            written=written)
