"""HTTP transport: POST for requests, Server-Sent-Events for server pushes."""

import asyncio
from contextlib import AsyncExitStack
from typing import Any

import httpx
from httpx_sse import EventSource, aconnect_sse

from mcp_inspector.errors import create_error
from mcp_inspector.types import LogLevel, TransportKind

from .http_base import HTTPTransportBase


def events_url_for(address: str) -> str:
    """Derive the push stream URL from the configured address."""
    url = address.rstrip("/")
    if url.endswith("/sse") or url.endswith("/events"):
        return url
    return f"{url}/events"


class SSETransport(HTTPTransportBase):
    """Upstream reached over HTTP/1.1 with an SSE push channel.

    Legacy MCP servers (address ending in ``/sse``) announce their POST
    target with an ``endpoint`` event; open() waits for it.
    """

    kind = TransportKind.HTTP

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.events_url = events_url_for(self.address)
        url = self.address.rstrip("/")
        self.post_url = url[: -len("/events")] if url.endswith("/events") else url
        self._exit_stack: AsyncExitStack | None = None
        self._push_task: asyncio.Task[None] | None = None
        self._endpoint_ready = asyncio.Event()

    def _set_endpoint(self, data: str) -> None:
        super()._set_endpoint(data)
        self._endpoint_ready.set()

    async def open(self) -> None:
        """Open the push stream.

        Raises:
            InspectorError(CONNECT_FAILED): If the stream cannot be opened
        """
        self._client = self._create_client()
        self._exit_stack = AsyncExitStack()

        try:
            source = await self._exit_stack.enter_async_context(
                aconnect_sse(
                    self._client,
                    "GET",
                    self.events_url,
                    headers=self._request_headers("text/event-stream"),
                )
            )
            self._check_stream(source)
        except httpx.HTTPError as e:
            await self._abort_open()
            raise create_error(
                "CONNECT_FAILED",
                address=self.address,
                detail=f"Cannot open event stream {self.events_url}: {e}",
            ) from e
        except Exception:
            await self._abort_open()
            raise

        self._opened = True
        self._push_task = self._spawn(self._read_push(source))
        self._start_writer()

        if self.events_url.endswith("/sse"):
            try:
                await asyncio.wait_for(
                    self._endpoint_ready.wait(), timeout=self.config.connect_timeout
                )
            except TimeoutError as e:
                await self.close("no endpoint event")
                raise create_error(
                    "CONNECT_FAILED",
                    address=self.address,
                    detail="Server did not announce a POST endpoint",
                ) from e

        self._log(LogLevel.DEBUG, f"Event stream open at {self.events_url}")

    def _check_stream(self, source: EventSource) -> None:
        response = source.response
        if response.status_code >= 400:
            raise create_error(
                "CONNECT_FAILED",
                address=self.address,
                detail=f"Event stream rejected with HTTP {response.status_code}",
            )
        content_type = response.headers.get("content-type", "")
        if "text/event-stream" not in content_type:
            raise create_error(
                "CONNECT_FAILED",
                address=self.address,
                detail=f"Expected text/event-stream, got '{content_type or 'nothing'}'",
            )

    async def _abort_open(self) -> None:
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _read_push(self, source: EventSource) -> None:
        try:
            await self._consume_event_stream(source)
        except httpx.HTTPError as e:
            self._fail(f"Event stream failed: {e}")
            return
        self._fail("Event stream ended")

    async def _dispatch(self, envelope: dict[str, Any]) -> None:
        # Requests go out one at a time; only the body read is concurrent
        response = await self._open_exchange(envelope)
        self._spawn(self._consume_response(envelope, response))

    async def _shutdown(self) -> None:
        push = self._push_task
        if push is not None and not push.done() and push is not asyncio.current_task():
            push.cancel()
            await asyncio.wait({push})
        if self._exit_stack is not None:
            try:
                await self._exit_stack.aclose()
            except httpx.HTTPError as e:
                self._log(LogLevel.DEBUG, f"Error closing event stream: {e}")
            self._exit_stack = None
        await super()._shutdown()
