"""Line protocol serialization for load-test records.

Each record becomes one point:

    request,url=<url>,method=<method>,status=<status>,error=<bool> size=<size>,duration=<duration> <ns>

The backend parses this positionally, so tag order and the absence of
extra whitespace matter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loadsink.core.models import DestinationMapping, Record

MEASUREMENT = "request"


def _escape_tag(value: str) -> str:
    return value.replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")


def record_to_line(record: Record) -> str:
    tags = ",".join((
        f"url={_escape_tag(record.url)}",
        f"method={_escape_tag(record.method)}",
        f"status={record.status}",
        f"error={'true' if record.has_error else 'false'}",
    ))
    fields = f"size={record.size},duration={record.duration}"
    return f"{MEASUREMENT},{tags} {fields} {record.timestamp_ns}"


def mapping_to_line(mapping: DestinationMapping) -> str:
    return record_to_line(mapping.record)


def encode_batch(mappings: Iterable[DestinationMapping]) -> bytes:
    """Newline-join the lines for a batch write. No trailing newline."""
    return "\n".join(mapping_to_line(m) for m in mappings).encode("utf-8")
