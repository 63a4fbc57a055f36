"""Shared plumbing for the HTTP-based transports."""

import asyncio
import json
from abc import abstractmethod
from typing import Any

import httpx
from httpx_sse import EventSource

from mcp_inspector.mcp.protocol import INTERNAL_ERROR, JSONRPCMessage
from mcp_inspector.types import LogLevel

from .base import TransportAdapter

SESSION_HEADER = "Mcp-Session-Id"


class HTTPTransportBase(TransportAdapter):
    """Common HTTP machinery: ordered writer, response decoding, session header.

    send() only enqueues; a single writer task drains the outbox in order
    and hands each envelope to _dispatch().
    """

    http2: bool = False

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._client: httpx.AsyncClient | None = None
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._writer_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self.post_url: str = self.address
        self.session_id: str | None = None

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            http2=self.http2,
            headers=self.config.headers,
            timeout=httpx.Timeout(self.config.connect_timeout, read=None),
            follow_redirects=True,
        )

    def _request_headers(self, accept: str) -> dict[str, str]:
        headers = {"Accept": accept}
        if self.session_id:
            headers[SESSION_HEADER] = self.session_id
        return headers

    def _start_writer(self) -> None:
        self._writer_task = asyncio.create_task(self._writer())

    def _spawn(self, coro: Any) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def send(self, envelope: dict[str, Any]) -> None:
        self._ensure_open()
        self._outbox.put_nowait(envelope)

    async def _writer(self) -> None:
        while True:
            envelope = await self._outbox.get()
            try:
                await self._dispatch(envelope)
            except httpx.HTTPError as e:
                self._fail(f"POST {self.post_url} failed: {e}")
                return

    @abstractmethod
    async def _dispatch(self, envelope: dict[str, Any]) -> None:
        """Deliver one envelope to the peer, preserving writer order."""

    async def _open_exchange(self, envelope: dict[str, Any]) -> httpx.Response:
        """POST one envelope and return the response with its body unread."""
        assert self._client is not None
        request = self._client.build_request(
            "POST",
            self.post_url,
            content=JSONRPCMessage.dumps(envelope).encode("utf-8"),
            headers={
                **self._request_headers("application/json, text/event-stream"),
                "Content-Type": "application/json",
            },
        )
        response = await self._client.send(request, stream=True)

        session_id = response.headers.get(SESSION_HEADER)
        if session_id and session_id != self.session_id:
            self.session_id = session_id
            self._log(LogLevel.DEBUG, "Upstream assigned session", mcp_session_id=session_id)
        return response

    async def _consume_response(self, envelope: dict[str, Any], response: httpx.Response) -> None:
        """Feed a POST response body into the receive queue."""
        try:
            if response.status_code >= 400:
                body = (await response.aread()).decode("utf-8", errors="replace")
                self._reject(envelope, response.status_code, body)
                return

            content_type = response.headers.get("content-type", "")
            if "text/event-stream" in content_type:
                await self._consume_event_stream(EventSource(response))
            elif "json" in content_type:
                body = await response.aread()
                if body.strip():
                    self._deliver_payload(json.loads(body))
            else:
                # 202 Accepted and friends: the answer arrives on the push stream
                await response.aread()
        except ValueError as e:
            self._log(LogLevel.WARN, f"Malformed response body: {e}")
        except httpx.HTTPError as e:
            self._fail(f"Response stream from {self.post_url} failed: {e}")
        finally:
            await response.aclose()

    async def _consume_event_stream(self, source: EventSource) -> None:
        async for sse in source.aiter_sse():
            if sse.event == "endpoint":
                self._set_endpoint(sse.data)
                continue
            if sse.event not in ("message", "") or not sse.data:
                continue
            try:
                self._deliver_payload(json.loads(sse.data))
            except ValueError:
                self._log(LogLevel.DEBUG, f"Ignoring non-JSON event: {sse.data[:200]!r}")

    def _set_endpoint(self, data: str) -> None:
        self.post_url = str(httpx.URL(self.address).join(data.strip()))
        self._log(LogLevel.DEBUG, f"POST endpoint set to {self.post_url}")

    def _deliver_payload(self, payload: Any) -> None:
        # JSON-RPC batches arrive as arrays
        items = payload if isinstance(payload, list) else [payload]
        for item in items:
            if isinstance(item, dict):
                self._deliver(item)

    def _reject(self, envelope: dict[str, Any], status: int, body: str) -> None:
        """Turn an HTTP-level rejection into an error response for the request."""
        self._log(LogLevel.WARN, f"Upstream rejected POST with HTTP {status}")
        if JSONRPCMessage.is_request(envelope):
            self._deliver(
                JSONRPCMessage.error_response(
                    envelope["id"],
                    INTERNAL_ERROR,
                    f"HTTP {status}: {body[:500]}".rstrip(": "),
                )
            )

    async def _shutdown(self) -> None:
        current = asyncio.current_task()
        tasks = [t for t in (self._writer_task, *self._tasks) if t is not None]
        for task in tasks:
            if task is not current and not task.done():
                task.cancel()
        if self._client is not None:
            await self._client.aclose()
