"""InfluxDB batching collector.

Buffers destination mappings until the batch threshold is reached, makes
sure the target database exists, then writes every pending line in one
request. Depends only on the TransportClient protocol.

All destinations share one pending queue. A flush is addressed to the
destination of the mapping that triggered it, so mappings for other
destinations still pending are written there too.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlencode

import structlog

from loadsink.core.errors import (
    BackendRejection,
    CollectorConfigError,
    MalformedResponse,
    ProvisioningError,
    ValidationError,
    WriteError,
)
from loadsink.core.line_protocol import encode_batch
from loadsink.transport.base import BareResponse

if TYPE_CHECKING:
    from loadsink.core.models import DestinationMapping
    from loadsink.transport.base import TransportClient, TransportResponse

log = structlog.get_logger()

WRITE_CONTENT_TYPE = "text/plain; charset=utf-8"


def check_response(response: TransportResponse, action: str) -> None:
    """Raise the matching WriteError unless the response is an echoed 2xx.

    A response without its request is never counted as a success, even
    when its status claims one.
    """
    if isinstance(response, BareResponse):
        raise MalformedResponse(
            f"{action}: status {response.status} with no request attached: {response.body}",
            status=response.status,
        )
    if response.ok:
        return
    raise BackendRejection(
        f"{action}: {response.request.method} {response.request.url} "
        f"returned {response.status}: {response.body}",
        status=response.status,
    )


class InfluxCollector:
    """Batches records and writes them to an InfluxDB 1.x HTTP endpoint."""

    name = "influxdb"

    def __init__(
        self,
        endpoint: str,
        auth_token: str,
        transport: TransportClient,
        threshold: int = 100,
    ) -> None:
        if not endpoint:
            raise CollectorConfigError("endpoint is required")
        if not auth_token:
            raise CollectorConfigError("auth_token is required")
        if threshold < 1:
            raise CollectorConfigError(f"threshold must be >= 1, got {threshold}")

        self._endpoint = endpoint.rstrip("/")
        self._auth_token = auth_token
        self._transport = transport
        self._threshold = threshold
        self._pending: list[DestinationMapping] = []
        self._provisioned: set[str] = set()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def is_provisioned(self, destination: str) -> bool:
        return destination in self._provisioned

    async def ensure_provisioned(self, destination: str) -> None:
        """Issue CREATE DATABASE once per destination.

        This only remembers what this instance has created; it does not
        ask the backend whether the database exists.
        """
        if destination in self._provisioned:
            return

        url = f"{self._endpoint}/query"
        try:
            response = await self._transport.post_form(url, {"q": f"CREATE DATABASE {destination}"})
            check_response(response, "create database")
        except WriteError as exc:
            log.warning("destination_provisioning_failed", destination=destination,
                        error=str(exc), status=exc.status)
            raise ProvisioningError(destination, str(exc)) from exc

        self._provisioned.add(destination)
        log.info("destination_provisioned", destination=destination)

    async def push(self, mapping: DestinationMapping) -> int:
        """Buffer a mapping and flush once the threshold is reached.

        Returns the number of lines written, 0 when the mapping was only
        buffered. Raises ValidationError for incomplete records,
        ProvisioningError if the destination cannot be created and
        WriteError if the batch write fails. On any failure the pending
        queue keeps its records.
        """
        if not mapping.record.is_complete():
            raise ValidationError(
                f"incomplete record for {mapping.destination!r}: url, method and timestamp are required"
            )

        self._pending.append(mapping)
        if len(self._pending) < self._threshold:
            return 0

        return await self._flush_to(mapping.destination)

    async def flush(self) -> int:
        """Write whatever is pending, regardless of the threshold."""
        if not self._pending:
            return 0
        return await self._flush_to(self._pending[-1].destination)

    async def _flush_to(self, destination: str) -> int:
        await self.ensure_provisioned(destination)

        count = len(self._pending)
        body = encode_batch(self._pending)
        url = f"{self._endpoint}/write?{urlencode({'db': destination, 'precision': 'ns'})}"
        try:
            response = await self._transport.post(
                url,
                WRITE_CONTENT_TYPE,
                body,
                headers={"Authorization": f"Token {self._auth_token}"},
            )
            check_response(response, "write batch")
        except WriteError as exc:
            log.warning("batch_write_failed", destination=destination,
                        lines=count, error=str(exc), status=exc.status)
            raise

        del self._pending[:count]
        log.info("batch_written", destination=destination, lines=count,
                 bytes=len(body))
        return count
