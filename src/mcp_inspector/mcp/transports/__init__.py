"""Upstream transport adapters."""

from collections.abc import Callable

from mcp_inspector.errors import create_error
from mcp_inspector.logging.logger import InspectorLogger
from mcp_inspector.types import TransportKind

from .base import TransportAdapter, TransportClosed, TransportConfig
from .http2 import StreamableHTTP2Transport
from .sse import SSETransport, events_url_for
from .stdio import StdioTransport
from .websocket import WebSocketTransport

TransportFactory = Callable[[str, TransportConfig, InspectorLogger | None], TransportAdapter]

TRANSPORTS: dict[TransportKind, TransportFactory] = {
    TransportKind.STDIO: StdioTransport,
    TransportKind.HTTP: SSETransport,
    TransportKind.HTTP2: StreamableHTTP2Transport,
    TransportKind.WEBSOCKET: WebSocketTransport,
}


def register_transport(kind: TransportKind, factory: TransportFactory) -> None:
    """Register or replace the adapter used for a transport kind."""
    TRANSPORTS[kind] = factory


def create_transport(
    kind: TransportKind | str,
    address: str,
    config: TransportConfig | None = None,
    logger: InspectorLogger | None = None,
) -> TransportAdapter:
    """Create an unopened adapter for the given transport kind.

    Raises:
        InspectorError(INVALID_TRANSPORT): If the kind is unknown
    """
    try:
        kind = TransportKind(kind)
    except ValueError as e:
        raise create_error("INVALID_TRANSPORT", transport=kind) from e

    factory = TRANSPORTS.get(kind)
    if factory is None:
        raise create_error("INVALID_TRANSPORT", transport=kind.value)
    return factory(address, config or TransportConfig(), logger)


__all__ = [
    "TransportAdapter",
    "TransportClosed",
    "TransportConfig",
    "StdioTransport",
    "SSETransport",
    "StreamableHTTP2Transport",
    "WebSocketTransport",
    "TRANSPORTS",
    "create_transport",
    "register_transport",
    "events_url_for",
]
