"""httpx-based implementation of TransportClient."""

from __future__ import annotations

import httpx
import structlog

from loadsink.core.errors import TransportError
from loadsink.transport.base import BareResponse, EchoedResponse, RequestEcho, TransportResponse

log = structlog.get_logger()


def to_transport_response(response: httpx.Response) -> TransportResponse:
    """Convert an httpx response, tolerating one with no request attached."""
    try:
        request = response.request
    except RuntimeError:
        log.warning("response_without_request", status=response.status_code)
        return BareResponse(status=response.status_code, body=response.text)
    return EchoedResponse(
        status=response.status_code,
        body=response.text,
        request=RequestEcho(method=request.method, url=str(request.url)),
    )


class HttpxTransport:
    """TransportClient backed by a shared httpx.AsyncClient."""

    def __init__(
        self,
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def post_form(self, url: str, data: dict[str, str]) -> TransportResponse:
        try:
            response = await self._client.post(url, data=data)
        except httpx.HTTPError as exc:
            raise TransportError(f"POST {url} failed: {exc}") from exc
        return to_transport_response(response)

    async def post(
        self,
        url: str,
        content_type: str,
        body: bytes,
        headers: dict[str, str] | None = None,
    ) -> TransportResponse:
        request_headers = {"content-type": content_type}
        if headers:
            request_headers.update(headers)
        try:
            response = await self._client.post(url, content=body, headers=request_headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"POST {url} failed: {exc}") from exc
        return to_transport_response(response)

    async def aclose(self) -> None:
        await self._client.aclose()
