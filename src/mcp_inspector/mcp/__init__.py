"""MCP client side: wire protocol, transports, correlation and connections."""

from .connection import NotificationListener, StatusListener, UpstreamConnection
from .correlator import RequestCorrelator, content_text
from .protocol import JSONRPCMessage
from .transports import (
    TransportAdapter,
    TransportClosed,
    TransportConfig,
    create_transport,
    register_transport,
)
from .types import ConnectionInfo, InvocationResult, PendingRequest, ServerInfo, Tool

__all__ = [
    "UpstreamConnection",
    "StatusListener",
    "NotificationListener",
    "RequestCorrelator",
    "content_text",
    "JSONRPCMessage",
    "TransportAdapter",
    "TransportClosed",
    "TransportConfig",
    "create_transport",
    "register_transport",
    "ConnectionInfo",
    "InvocationResult",
    "PendingRequest",
    "ServerInfo",
    "Tool",
]
