"""Load-test result API endpoints.

This is the thin FastAPI adapter. It parses HTTP requests, converts JSON
to internal records, and hands them to the processor.
"""

from __future__ import annotations

import json
from datetime import datetime

from fastapi import APIRouter, Request, Response

from loadsink.core.models import MAX_TIMESTAMP_NS, Record, datetime_to_ns
from loadsink.queue.base import QueueClosedError

router = APIRouter(prefix="/api/v1")


def _parse_timestamp(value: object) -> int | None:
    """Accept an RFC 3339 string or integer nanoseconds since the epoch.

    Returns nanoseconds, or None when the value is missing, unparseable or
    outside the positive int64 range.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        ns = value
    elif isinstance(value, str) and value:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            ns = datetime_to_ns(datetime.fromisoformat(value))
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if 0 < ns <= MAX_TIMESTAMP_NS:
        return ns
    return None


def _parse_int(data: dict, key: str) -> int:
    """Integers only: 418 and "418" pass, 418.9 and "teapot" do not."""
    value = data.get(key, 0)
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{key} must be an integer, got {value}")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer, got {value!r}") from exc


def _parse_json_result(data: dict) -> Record:
    """Parse one load-test result from JSON."""
    error = data.get("error")
    return Record(
        url=str(data.get("url") or ""),
        method=str(data.get("method") or ""),
        status=_parse_int(data, "status"),
        error=str(error) if error else None,
        size=_parse_int(data, "size"),
        duration=_parse_int(data, "duration"),
        timestamp=_parse_timestamp(data.get("timestamp")),
    )


def _parse_json_body(body: object) -> list[Record]:
    """A body is a single result object or {"results": [...]}."""
    if isinstance(body, dict) and "results" in body:
        items = body["results"]
        if not isinstance(items, list):
            raise ValueError("results must be a list")
    else:
        items = [body]

    records = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError("each result must be an object")
        records.append(_parse_json_result(item))
    return records


def _json_response(payload: dict, status_code: int) -> Response:
    return Response(
        content=json.dumps(payload),
        status_code=status_code,
        media_type="application/json",
    )


@router.post("/results")
async def receive_results(request: Request) -> Response:
    """Receive load-test results from the load generator.

    Accepts application/json: either one result or a batch under "results".
    """
    from loadsink.main import get_processor

    processor = get_processor()
    body_bytes = await request.body()

    try:
        body = json.loads(body_bytes)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _json_response({"accepted": False, "error": "invalid JSON"}, 400)

    try:
        records = _parse_json_body(body)
    except (ValueError, TypeError) as exc:
        return _json_response({"accepted": False, "error": str(exc)}, 400)

    try:
        queued, rejected = await processor.submit(records, len(body_bytes))
    except QueueClosedError:
        return _json_response({"accepted": False, "error": "sink is shutting down"}, 503)

    if queued == 0:
        return _json_response(
            {
                "accepted": False,
                "error": "url, method and timestamp are required",
                "queued": 0,
                "rejected": rejected,
            },
            422,
        )

    return _json_response({"accepted": True, "queued": queued, "rejected": rejected}, 200)
