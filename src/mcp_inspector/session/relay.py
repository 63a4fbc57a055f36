"""Notification relay - ordered delivery of session events to the browser."""

import asyncio
from collections.abc import Callable
from typing import Any, Protocol

from mcp_inspector.logging.logger import InspectorLogger
from mcp_inspector.types import LogLevel

from .events import ConnectionStatus, NotificationEnvelope


class EventChannel(Protocol):
    """Anything that can push JSON to the browser (e.g. a FastAPI WebSocket)."""

    async def send_json(self, data: Any) -> None: ...


class NotificationRelay:
    """Delivers events to the one channel attached to a session.

    Events go through a bounded FIFO drained by a single sender task, so
    they reach the browser in publish order. With no channel attached,
    events are dropped; when the FIFO is full the newest event is dropped.
    """

    def __init__(
        self,
        session_id: str,
        status_provider: Callable[[], ConnectionStatus],
        buffer_size: int = 256,
        logger: InspectorLogger | None = None,
    ):
        """Initialize relay.

        Args:
            session_id: Owning session
            status_provider: Returns the session's current ConnectionStatus
            buffer_size: Maximum events buffered for a slow channel
            logger: Optional logger
        """
        self.session_id = session_id
        self._status_provider = status_provider
        self.buffer_size = buffer_size
        self._logger = logger
        self._channel: EventChannel | None = None
        self._queue: asyncio.Queue[NotificationEnvelope] | None = None
        self._sender: asyncio.Task[None] | None = None
        self.published = 0
        self.delivered = 0
        self.dropped = 0

    def _log(self, level: LogLevel, message: str, **context: Any) -> None:
        if self._logger:
            self._logger.log(level, "relay", message, {"session_id": self.session_id, **context})

    @property
    def channel(self) -> EventChannel | None:
        return self._channel

    @property
    def attached(self) -> bool:
        return self._channel is not None

    async def attach(self, channel: EventChannel) -> None:
        """Make channel the session's event channel, replacing any other.

        The current ConnectionStatus is queued first so the browser starts
        from a known state.
        """
        if self._channel is not None:
            self._log(LogLevel.DEBUG, "Replacing attached event channel")
            await self._stop()

        self._channel = channel
        self._queue = asyncio.Queue(maxsize=self.buffer_size)
        self._queue.put_nowait(self._status_provider())
        self._sender = asyncio.create_task(self._send_loop(channel, self._queue))
        self._log(LogLevel.DEBUG, "Event channel attached")

    async def detach(self, channel: EventChannel) -> None:
        """Detach channel if it is the one currently attached."""
        if self._channel is not channel:
            return
        await self._stop()
        self._log(LogLevel.DEBUG, "Event channel detached")

    async def close(self) -> None:
        if self._channel is not None:
            await self._stop()

    async def _stop(self) -> None:
        sender = self._sender
        queue = self._queue
        self._channel = None
        self._queue = None
        self._sender = None
        if sender is not None and sender is not asyncio.current_task() and not sender.done():
            sender.cancel()
            await asyncio.wait({sender})
        if queue is not None:
            _discard(queue)

    def publish(self, event: NotificationEnvelope) -> bool:
        """Queue an event for the attached channel.

        Returns:
            True if queued, False if dropped
        """
        self.published += 1
        if self._queue is None:
            self.dropped += 1
            return False

        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            self._log(
                LogLevel.WARN,
                f"Event buffer full ({self.buffer_size}), dropping {event.type}",
            )
            return False
        return True

    async def flush(self) -> None:
        """Wait until every queued event has been handed to the channel."""
        queue = self._queue
        if queue is not None:
            await queue.join()

    async def _send_loop(
        self,
        channel: EventChannel,
        queue: asyncio.Queue[NotificationEnvelope],
    ) -> None:
        while True:
            event = await queue.get()
            try:
                await channel.send_json(event.model_dump(mode="json"))
                self.delivered += 1
            except Exception as e:
                self._log(LogLevel.DEBUG, f"Event channel send failed: {e}")
                if self._channel is channel:
                    self._channel = None
                    self._queue = None
                    self._sender = None
                _discard(queue)
                return
            finally:
                queue.task_done()


def _discard(queue: asyncio.Queue[Any]) -> None:
    """Drop everything still queued, releasing flush() waiters."""
    while not queue.empty():
        queue.get_nowait()
        queue.task_done()
