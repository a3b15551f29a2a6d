"""Health check and monitoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from loadsink.main import get_config, get_processor, get_stats

    config = get_config()
    snapshot = get_stats().snapshot()
    collectors = [
        {"name": c.name, "pending": c.pending_count}
        for c in get_processor().collectors
    ]
    return {
        "status": "ok",
        "version": "0.1.0",
        "uptime_seconds": snapshot["uptime_seconds"],
        "queue_depth": snapshot["queue_depth"],
        "destination": config.influx.destination,
        "collectors": collectors,
    }


@router.get("/stats")
async def stats() -> dict:
    """Detailed sink statistics.

    The ``collectors`` section shows, per collector, how many records were
    pushed, how many pushes failed, the last error and the number of
    records still buffered.
    """
    from loadsink.main import get_stats

    return get_stats().snapshot()
