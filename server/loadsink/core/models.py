"""loadsink core internal data models.

These are plain dataclasses with no framework dependencies.
JSON payloads are converted to these at the API boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Line protocol timestamps are signed 64-bit nanoseconds.
MAX_TIMESTAMP_NS = 2**63 - 1


def _as_utc(ts: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def datetime_to_ns(ts: datetime) -> int:
    delta = _as_utc(ts) - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000


@dataclass(frozen=True)
class Record:
    """One observed load-test outcome.

    ``timestamp`` is either a datetime or integer nanoseconds since the
    Unix epoch. Integers are kept as given, so no precision is lost below
    the microsecond.
    """

    url: str
    method: str
    status: int
    timestamp: datetime | int | None
    error: str | None = None
    size: int = 0
    duration: int = 0  # nanoseconds

    def is_complete(self) -> bool:
        """A record is usable only with a url, a method and a non-zero timestamp."""
        if not self.url or not self.method:
            return False
        if self.timestamp is None:
            return False
        return self.timestamp_ns != 0

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def timestamp_ns(self) -> int:
        """Timestamp as integer nanoseconds since the Unix epoch."""
        if self.timestamp is None:
            return 0
        if isinstance(self.timestamp, int):
            return self.timestamp
        return datetime_to_ns(self.timestamp)


@dataclass(frozen=True)
class DestinationMapping:
    """A record paired with the database it should be written to."""

    record: Record
    destination: str

    def __post_init__(self) -> None:
        if not self.destination:
            raise ValueError("destination is required")
