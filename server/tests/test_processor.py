"""Tests for ResultProcessor: enqueueing and the dispatch loop."""

from __future__ import annotations

import asyncio

import pytest

from loadsink.core.collector import InfluxCollector
from loadsink.core.errors import BackendRejection
from loadsink.core.models import Record
from loadsink.core.processor import ResultProcessor
from loadsink.core.stats import SinkStats
from loadsink.queue.asyncio_queue import AsyncioRecordQueue
from loadsink.queue.base import QueueClosedError


class RecordingCollector:
    """Collector double that keeps every mapping it is given."""

    def __init__(self, name: str, error: Exception | None = None) -> None:
        self.name = name
        self.error = error
        self.mappings = []
        self.flushed = 0

    @property
    def pending_count(self) -> int:
        return len(self.mappings)

    async def push(self, mapping) -> int:
        self.mappings.append(mapping)
        if self.error is not None:
            raise self.error
        return 0

    async def flush(self) -> int:
        self.flushed += 1
        return 0


def _processor(collectors, max_size=100):
    stats = SinkStats()
    queue = AsyncioRecordQueue(max_size=max_size)
    return ResultProcessor(queue=queue, collectors=collectors, stats=stats, destination="loadtest"), queue, stats


@pytest.mark.asyncio
async def test_submit_drops_incomplete_records(record):
    processor, queue, stats = _processor([])

    queued, rejected = await processor.submit(
        [record, Record(url="", method="GET", status=200, timestamp=None)], 512,
    )

    assert (queued, rejected) == (1, 1)
    assert queue.qsize() == 1
    snap = stats.snapshot()
    assert snap["results_received"] == 1
    assert snap["results_rejected"] == 1
    assert snap["bytes_received"] == 512


@pytest.mark.asyncio
async def test_dispatch_loop_fans_out_and_survives_failures(record):
    broken = RecordingCollector("broken", error=BackendRejection("write batch: 500", status=500))
    healthy = RecordingCollector("healthy")
    processor, queue, stats = _processor([broken, healthy])

    await processor.submit([record, record], 100)
    await queue.close()
    await asyncio.wait_for(processor.run_dispatch_loop(), timeout=1)

    assert len(broken.mappings) == 2
    assert len(healthy.mappings) == 2
    assert all(m.destination == "loadtest" for m in healthy.mappings)

    snap = stats.snapshot()
    assert snap["records_dispatched"] == 2
    assert snap["push_errors"] == 2
    assert snap["collectors"]["broken"]["push_errors"] == 2
    assert snap["collectors"]["broken"]["last_error"].startswith("BackendRejection")
    assert snap["collectors"]["healthy"]["push_errors"] == 0


@pytest.mark.asyncio
async def test_dispatch_loop_survives_unexpected_errors(record):
    odd = RecordingCollector("odd", error=KeyError("boom"))
    processor, queue, stats = _processor([odd])

    await processor.submit([record], 10)
    await queue.close()
    await asyncio.wait_for(processor.run_dispatch_loop(), timeout=1)

    assert stats.snapshot()["collectors"]["odd"]["push_errors"] == 1


@pytest.mark.asyncio
async def test_dispatch_into_real_collector(fake_transport, record):
    transport = fake_transport()
    collector = InfluxCollector("http://influx.test", "t", transport=transport, threshold=2)
    processor, queue, stats = _processor([collector])

    await processor.submit([record, record, record], 300)
    await queue.close()
    await asyncio.wait_for(processor.run_dispatch_loop(), timeout=1)

    assert len(transport.post_calls) == 1
    assert collector.pending_count == 1
    assert stats.snapshot()["collectors"]["influxdb"]["pending"] == 1

    await processor.flush_all()
    assert len(transport.post_calls) == 2
    assert collector.pending_count == 0


@pytest.mark.asyncio
async def test_closed_queue_rejects_put(record):
    queue = AsyncioRecordQueue(max_size=2)
    await queue.put(record)
    await queue.close()

    with pytest.raises(QueueClosedError):
        await queue.put(record)
    assert queue.qsize() == 1
    assert await queue.get() is record
    assert await queue.get() is None
    assert await queue.get() is None
    assert queue.qsize() == 0


def test_processor_requires_destination():
    with pytest.raises(ValueError):
        ResultProcessor(queue=AsyncioRecordQueue(), collectors=[], stats=SinkStats(), destination="")


@pytest.mark.asyncio
async def test_stats_count_written_and_failed_batches(fake_transport, record):
    transport = fake_transport()
    collector = InfluxCollector("http://influx.test", "t", transport=transport, threshold=2)
    processor, queue, stats = _processor([collector])

    await processor.dispatch(record)
    await processor.dispatch(record)

    transport.status = 500
    await processor.dispatch(record)
    await processor.dispatch(record)

    snap = stats.snapshot()
    assert snap["records_written"] == 2
    assert snap["batches_written"] == 1
    assert snap["write_errors"] == 1
    assert snap["provisioning_errors"] == 0
    assert snap["push_errors"] == 1
    assert snap["collectors"]["influxdb"]["records_written"] == 2
    assert snap["collectors"]["influxdb"]["write_errors"] == 1
    assert snap["collectors"]["influxdb"]["pending"] == 2

    transport.status = 204
    await processor.flush_all()

    snap = stats.snapshot()
    assert snap["records_written"] == 4
    assert snap["batches_written"] == 2


@pytest.mark.asyncio
async def test_stats_count_provisioning_errors(fake_transport, record):
    collector = InfluxCollector("http://influx.test", "t", transport=fake_transport(fail=True), threshold=1)
    processor, queue, stats = _processor([collector])

    await processor.dispatch(record)

    snap = stats.snapshot()
    assert snap["provisioning_errors"] == 1
    assert snap["write_errors"] == 0
    assert snap["records_written"] == 0
    assert snap["collectors"]["influxdb"]["last_error"].startswith("ProvisioningError")
