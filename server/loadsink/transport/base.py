"""Transport interface (port) used by collectors to reach the backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union


@dataclass(frozen=True)
class RequestEcho:
    """The request a response was produced for, kept for diagnostics."""
    method: str
    url: str


@dataclass(frozen=True)
class EchoedResponse:
    status: int
    body: str
    request: RequestEcho

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass(frozen=True)
class BareResponse:
    """A response the transport could not attach its request to."""
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


TransportResponse = Union[EchoedResponse, BareResponse]


class TransportClient(Protocol):
    """Port: the two HTTP calls a collector needs.

    Network failures raise loadsink.core.errors.TransportError; any
    response that does arrive is returned, whatever its status.
    """

    async def post_form(self, url: str, data: dict[str, str]) -> TransportResponse: ...

    async def post(
        self,
        url: str,
        content_type: str,
        body: bytes,
        headers: dict[str, str] | None = None,
    ) -> TransportResponse: ...
