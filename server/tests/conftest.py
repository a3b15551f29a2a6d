"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

import loadsink.main as main_module
from loadsink.config import AppConfig
from loadsink.core.collector import InfluxCollector
from loadsink.core.errors import TransportError
from loadsink.core.models import Record
from loadsink.core.processor import ResultProcessor
from loadsink.core.stats import SinkStats
from loadsink.queue.asyncio_queue import AsyncioRecordQueue
from loadsink.transport.base import BareResponse, EchoedResponse, RequestEcho


class FakeTransport:
    """Records what the collector sends and answers with a canned response.

    ``fail`` raises a TransportError instead of answering; ``drop_request``
    answers without the originating request attached.
    """

    def __init__(self, status: int = 200, fail: bool = False, drop_request: bool = False) -> None:
        self.status = status
        self.fail = fail
        self.drop_request = drop_request
        self.last_body = b""
        self.form_calls: list[tuple[str, dict]] = []
        self.post_calls: list[tuple[str, str, bytes, dict | None]] = []

    @property
    def calls(self) -> int:
        return len(self.form_calls) + len(self.post_calls)

    async def post_form(self, url, data):
        self.last_body = data.get("q", "").encode()
        self.form_calls.append((url, data))
        return self._respond(url)

    async def post(self, url, content_type, body, headers=None):
        self.last_body = body
        self.post_calls.append((url, content_type, body, headers))
        return self._respond(url)

    def _respond(self, url):
        if self.fail:
            raise TransportError("an error")
        if self.drop_request:
            return BareResponse(status=self.status, body="some message")
        return EchoedResponse(
            status=self.status,
            body="some message",
            request=RequestEcho(method="POST", url=url),
        )


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def record(now):
    return Record(
        url="example.com",
        method="DELETE",
        status=418,
        error=None,
        size=420 * 69,
        duration=1_000_000,
        timestamp=now,
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture(autouse=True)
def _init_server(transport):
    """Initialize server singletons for every test, backed by a fake transport."""
    config = AppConfig()
    config.logging.level = "warning"

    stats = SinkStats()
    queue = AsyncioRecordQueue(max_size=config.queue.max_size)
    collector = InfluxCollector(
        endpoint="http://influx.test:8086",
        auth_token="test",
        transport=transport,
        threshold=config.influx.batch_size,
    )
    processor = ResultProcessor(
        queue=queue,
        collectors=[collector],
        stats=stats,
        destination=config.influx.destination,
    )

    # Patch module-level singletons
    main_module._config = config
    main_module._stats = stats
    main_module._processor = processor

    yield

    # Cleanup
    main_module._config = None
    main_module._stats = None
    main_module._processor = None


@pytest.fixture
async def client():
    from loadsink.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
