"""loadsink main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, queue, transport, and API layers.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from loadsink.api.monitoring import router as monitoring_router
from loadsink.api.results import router as results_router
from loadsink.config import AppConfig, load_config
from loadsink.core.collector import InfluxCollector
from loadsink.core.processor import ResultProcessor
from loadsink.core.stats import SinkStats
from loadsink.queue.asyncio_queue import AsyncioRecordQueue
from loadsink.transport.httpx_transport import HttpxTransport

log = structlog.get_logger()

# Module-level singletons (set during startup)
_processor: ResultProcessor | None = None
_stats: SinkStats | None = None
_config: AppConfig | None = None


def get_processor() -> ResultProcessor:
    assert _processor is not None, "Server not initialized"
    return _processor


def get_stats() -> SinkStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _processor, _stats, _config

    _config = load_config()
    _setup_logging(_config)

    log.info("sink_starting",
             env=_config.server.env,
             influx_endpoint=_config.influx.endpoint,
             destination=_config.influx.destination,
             batch_size=_config.influx.batch_size,
             queue_max_size=_config.queue.max_size)

    # Create components
    _stats = SinkStats()
    queue = AsyncioRecordQueue(max_size=_config.queue.max_size)
    transport = HttpxTransport(timeout_seconds=_config.influx.request_timeout_seconds)
    collectors = [
        InfluxCollector(
            endpoint=_config.influx.endpoint,
            auth_token=_config.influx.auth_token,
            transport=transport,
            threshold=_config.influx.batch_size,
        ),
    ]
    _processor = ResultProcessor(
        queue=queue,
        collectors=collectors,
        stats=_stats,
        destination=_config.influx.destination,
    )

    # Start background dispatch loop
    dispatch_task = asyncio.create_task(_processor.run_dispatch_loop())

    log.info("sink_started",
             host=_config.server.host,
             port=_config.server.port)

    yield

    # Shutdown: closing the queue lets the loop drain what was accepted
    await queue.close()
    await dispatch_task
    if _config.influx.flush_on_shutdown:
        await _processor.flush_all()
    await transport.aclose()
    log.info("sink_stopped")


app = FastAPI(
    title="loadsink",
    description="Load-test result sink for InfluxDB",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(results_router)
app.include_router(monitoring_router)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    config = load_config()
    uvicorn.run("loadsink.main:app", host=config.server.host, port=config.server.port)
