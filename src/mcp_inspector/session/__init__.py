"""Browser sessions: connection ownership, event relay and metrics."""

from .events import (
    ConnectionStatus,
    ErrorEvent,
    MetricsUpdate,
    NotificationEnvelope,
    ToolResponse,
    envelope_adapter,
    events_from_upstream,
)
from .manager import DEFAULT_SESSION_ID, BrowserSession, SessionManager
from .metrics import SessionMetrics
from .relay import EventChannel, NotificationRelay

__all__ = [
    "DEFAULT_SESSION_ID",
    "BrowserSession",
    "SessionManager",
    "SessionMetrics",
    "EventChannel",
    "NotificationRelay",
    "NotificationEnvelope",
    "ConnectionStatus",
    "ToolResponse",
    "MetricsUpdate",
    "ErrorEvent",
    "envelope_adapter",
    "events_from_upstream",
]
