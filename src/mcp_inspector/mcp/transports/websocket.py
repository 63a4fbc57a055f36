"""WebSocket transport - one JSON envelope per text frame."""

import asyncio
import json
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from mcp_inspector.errors import create_error
from mcp_inspector.mcp.protocol import JSONRPCMessage
from mcp_inspector.types import LogLevel, TransportKind

from .base import TransportAdapter, TransportClosed


class WebSocketTransport(TransportAdapter):
    """Upstream reached over a WebSocket."""

    kind = TransportKind.WEBSOCKET

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._ws: ClientConnection | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._write_lock = asyncio.Lock()

    async def open(self) -> None:
        """Perform the WebSocket opening handshake.

        Raises:
            InspectorError(CONNECT_FAILED): If the handshake fails or times out
        """
        try:
            self._ws = await connect(
                self.address,
                subprotocols=["mcp"],
                additional_headers=self.config.headers or None,
                open_timeout=self.config.connect_timeout,
                close_timeout=self.config.close_timeout,
                max_size=None,
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            raise create_error(
                "CONNECT_FAILED",
                address=self.address,
                detail=f"WebSocket handshake failed: {e}",
            ) from e

        self._opened = True
        self._reader_task = asyncio.create_task(self._read_frames())
        self._log(LogLevel.DEBUG, f"WebSocket open (subprotocol={self._ws.subprotocol})")

    async def send(self, envelope: dict[str, Any]) -> None:
        self._ensure_open()
        assert self._ws is not None

        async with self._write_lock:
            try:
                await self._ws.send(JSONRPCMessage.dumps(envelope))
            except ConnectionClosed as e:
                self._fail(f"WebSocket closed: {e}")
                raise TransportClosed(str(e)) from e

    async def _read_frames(self) -> None:
        assert self._ws is not None
        try:
            async for frame in self._ws:
                if isinstance(frame, bytes):
                    frame = frame.decode("utf-8", errors="replace")
                try:
                    self._deliver(JSONRPCMessage.parse(frame))
                except (ValueError, json.JSONDecodeError):
                    self._log(LogLevel.DEBUG, f"Ignoring malformed frame: {frame[:200]!r}")
        except ConnectionClosed as e:
            self._fail(f"WebSocket closed: {e}")
            return
        self._fail("WebSocket closed by peer")

    async def _shutdown(self) -> None:
        if self._ws is not None:
            await self._ws.close()
        task = self._reader_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
