"""Streamable HTTP/2 transport: one multiplexed stream per envelope."""

from typing import Any

import httpx
from httpx_sse import EventSource

from mcp_inspector.types import LogLevel, TransportKind

from .http_base import HTTPTransportBase


class StreamableHTTP2Transport(HTTPTransportBase):
    """Upstream reached over HTTP/2.

    Every send opens its own stream on the shared connection; responses
    are JSON or an SSE stream. Once the server assigns an
    ``Mcp-Session-Id`` a standalone GET stream is opened for
    server-initiated messages, if the server offers one.

    Reachability is first exercised by the initialize request, so an
    unreachable server surfaces as a closed transport during the handshake.
    """

    kind = TransportKind.HTTP2
    http2 = True

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._push_started = False

    async def open(self) -> None:
        self._client = self._create_client()
        self._opened = True
        self._start_writer()
        self._log(LogLevel.DEBUG, f"HTTP/2 client ready for {self.post_url}")

    async def _dispatch(self, envelope: dict[str, Any]) -> None:
        # Tasks start in creation order so streams are opened in send order
        self._spawn(self._exchange(envelope))

    async def _exchange(self, envelope: dict[str, Any]) -> None:
        try:
            response = await self._open_exchange(envelope)
        except httpx.HTTPError as e:
            self._fail(f"POST {self.post_url} failed: {e}")
            return

        if self.session_id and not self._push_started and response.status_code < 400:
            self._push_started = True
            self._spawn(self._read_push())

        await self._consume_response(envelope, response)

    async def _read_push(self) -> None:
        assert self._client is not None
        try:
            async with self._client.stream(
                "GET",
                self.post_url,
                headers=self._request_headers("text/event-stream"),
            ) as response:
                content_type = response.headers.get("content-type", "")
                if response.status_code >= 400 or "text/event-stream" not in content_type:
                    self._log(
                        LogLevel.DEBUG,
                        f"No server push stream (HTTP {response.status_code})",
                    )
                    return
                await self._consume_event_stream(EventSource(response))
        except httpx.HTTPError as e:
            self._log(LogLevel.DEBUG, f"Server push stream ended: {e}")
