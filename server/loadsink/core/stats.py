"""Sink statistics.

Tracks in-memory counters for the listener, the dispatch loop and each
collector. No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

# Failure kinds reported by the dispatch loop
PROVISIONING = "provisioning"
WRITE = "write"


@dataclass
class CollectorActivity:
    """Counters for a single collector."""
    pushes: int = 0
    push_errors: int = 0
    records_written: int = 0
    batches_written: int = 0
    write_errors: int = 0
    provisioning_errors: int = 0
    last_error: str = ""
    pending: int = 0


class SinkStats:
    """Thread-safe sink statistics.

    ``queue_depth`` is the depth of the record queue between the listener
    and the dispatch loop; each collector's own pending buffer is reported
    under ``collectors``. ``push_errors`` counts every failed push;
    ``write_errors`` and ``provisioning_errors`` split out the two backend
    failure kinds.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()

        # Counters
        self.results_received: int = 0
        self.results_rejected: int = 0
        self.bytes_received: int = 0
        self.records_dispatched: int = 0
        self.records_written: int = 0
        self.batches_written: int = 0
        self.push_errors: int = 0
        self.write_errors: int = 0
        self.provisioning_errors: int = 0
        self.queue_depth: int = 0
        self.queue_max_depth: int = 0

        # Collector tracking: collector name → CollectorActivity
        self._collectors: dict[str, CollectorActivity] = {}

    def record_received(self, count: int, size_bytes: int) -> None:
        """Record results accepted by the listener."""
        with self._lock:
            self.results_received += count
            self.bytes_received += size_bytes

    def record_rejected(self, count: int = 1) -> None:
        with self._lock:
            self.results_rejected += count

    def record_dispatched(self) -> None:
        with self._lock:
            self.records_dispatched += 1

    def record_push(
        self,
        collector: str,
        pending: int,
        *,
        written: int = 0,
        error: str = "",
        kind: str = "",
    ) -> None:
        """Record the outcome of one push (or forced flush) into a collector.

        ``written`` is the number of lines a flush wrote; ``kind`` is
        PROVISIONING or WRITE for backend failures and empty otherwise.
        """
        with self._lock:
            activity = self._collectors.setdefault(collector, CollectorActivity())
            activity.pushes += 1
            activity.pending = pending
            if written:
                activity.records_written += written
                activity.batches_written += 1
                self.records_written += written
                self.batches_written += 1
            if error:
                activity.push_errors += 1
                activity.last_error = error
                self.push_errors += 1
            if kind == PROVISIONING:
                activity.provisioning_errors += 1
                self.provisioning_errors += 1
            elif kind == WRITE:
                activity.write_errors += 1
                self.write_errors += 1

    def update_queue_depth(self, depth: int) -> None:
        with self._lock:
            self.queue_depth = depth
            if depth > self.queue_max_depth:
                self.queue_max_depth = depth

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        with self._lock:
            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "results_received": self.results_received,
                "results_rejected": self.results_rejected,
                "bytes_received": self.bytes_received,
                "records_dispatched": self.records_dispatched,
                "records_written": self.records_written,
                "batches_written": self.batches_written,
                "push_errors": self.push_errors,
                "write_errors": self.write_errors,
                "provisioning_errors": self.provisioning_errors,
                "queue_depth": self.queue_depth,
                "queue_max_depth_ever": self.queue_max_depth,
                "collectors": {
                    name: {
                        "pushes": act.pushes,
                        "push_errors": act.push_errors,
                        "records_written": act.records_written,
                        "batches_written": act.batches_written,
                        "write_errors": act.write_errors,
                        "provisioning_errors": act.provisioning_errors,
                        "last_error": act.last_error,
                        "pending": act.pending,
                    }
                    for name, act in self._collectors.items()
                },
            }
