"""Shared enumerations for the inspector bridge."""

from enum import Enum


class LogLevel(str, Enum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output format."""

    COLORED = "colored"
    JSON = "json"


class TransportKind(str, Enum):
    """Upstream wire transport."""

    STDIO = "stdio"
    HTTP = "http"
    HTTP2 = "http2"
    WEBSOCKET = "websocket"


class ConnectionState(str, Enum):
    """Upstream connection lifecycle state."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class InvocationOutcome(str, Enum):
    """How a tool invocation was resolved."""

    SUCCESS = "success"
    UPSTREAM_ERROR = "upstream_error"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    CONNECTION_LOST = "connection_lost"
