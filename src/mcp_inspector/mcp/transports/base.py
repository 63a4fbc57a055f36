"""Transport adapter contract shared by every upstream wire transport."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from mcp_inspector.logging.logger import InspectorLogger
from mcp_inspector.types import LogLevel, TransportKind

# Marks the end of the receive sequence
_CLOSED = object()


class TransportClosed(Exception):
    """Raised by send() once the adapter has been closed."""


@dataclass
class TransportConfig:
    """Settings shared by all adapters."""

    connect_timeout: float = 10.0
    close_timeout: float = 5.0
    headers: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)  # stdio only


class TransportAdapter(ABC):
    """Uniform duplex message channel to one upstream peer.

    Guarantees, identical for every variant:
    - envelopes passed to send() reach the peer in send order
    - receive() yields envelopes in upstream arrival order
    - close() is idempotent and ends any pending receive() iteration
    - open() raises InspectorError(CONNECT_FAILED) and never retries
    """

    kind: TransportKind

    def __init__(
        self,
        address: str,
        config: TransportConfig | None = None,
        logger: InspectorLogger | None = None,
    ):
        self.address = address
        self.config = config or TransportConfig()
        self._logger = logger
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._receiving = False
        self._opened = False
        self._closed = False
        self.close_reason: str | None = None

    def _log(self, level: LogLevel, message: str, **context: Any) -> None:
        if self._logger:
            self._logger.log(level, f"transport.{self.kind.value}", message, context or None)

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    @abstractmethod
    async def open(self) -> None:
        """Open the upstream link."""

    @abstractmethod
    async def send(self, envelope: dict[str, Any]) -> None:
        """Queue one envelope for delivery to the peer.

        Raises:
            TransportClosed: If the adapter is closed
        """

    @abstractmethod
    async def _shutdown(self) -> None:
        """Release variant-specific resources. Called once by close()."""

    async def receive(self) -> AsyncIterator[dict[str, Any]]:
        """Yield envelopes from the peer until the adapter closes.

        The sequence can be consumed once.
        """
        if self._receiving:
            raise RuntimeError("receive() may only be consumed once")
        self._receiving = True

        while True:
            item = await self._inbox.get()
            if item is _CLOSED:
                return
            yield item

    async def close(self, reason: str = "closed") -> None:
        """Close the adapter. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self.close_reason is None:
            self.close_reason = reason
        try:
            await self._shutdown()
        finally:
            self._inbox.put_nowait(_CLOSED)
            self._log(LogLevel.DEBUG, f"Transport closed ({self.close_reason})")

    def _deliver(self, envelope: dict[str, Any]) -> None:
        """Hand one received envelope to the consumer."""
        if not self._closed:
            self._inbox.put_nowait(envelope)

    def _ensure_open(self) -> None:
        if not self.is_open:
            raise TransportClosed(self.close_reason or "transport is not open")

    def _fail(self, reason: str) -> None:
        """Schedule close after an unrecoverable reader/writer error."""
        if self._closed:
            return
        if self.close_reason is None:
            self.close_reason = reason
        self._log(LogLevel.WARN, f"Transport failed: {reason}")
        asyncio.get_running_loop().create_task(self.close(reason))
