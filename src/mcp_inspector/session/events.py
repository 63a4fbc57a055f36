"""Events pushed to the browser over the event channel."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from mcp_inspector.mcp.types import ConnectionInfo
from mcp_inspector.types import ConnectionState, TransportKind


class ConnectionStatus(BaseModel):
    """Connection lifecycle snapshot."""

    type: Literal["ConnectionStatus"] = "ConnectionStatus"
    connected: bool
    state: ConnectionState = ConnectionState.DISCONNECTED
    url: str | None = None
    transport: TransportKind | None = None
    server_name: str | None = None
    tool_count: int = 0
    error: str | None = None

    @classmethod
    def from_info(cls, info: ConnectionInfo | None) -> "ConnectionStatus":
        if info is None:
            return cls(connected=False)
        return cls(
            connected=info.connected,
            state=info.state,
            url=info.url,
            transport=info.transport,
            server_name=info.server_name,
            tool_count=info.tool_count,
            error=info.error,
        )


class ToolResponse(BaseModel):
    """An unsolicited upstream message (notification or server request)."""

    type: Literal["ToolResponse"] = "ToolResponse"
    method: str
    params: dict[str, Any] | None = None
    tool: str | None = None
    id: int | str | None = None  # set for server-initiated requests


class MetricsUpdate(BaseModel):
    """Rolling invocation metrics for the session."""

    type: Literal["MetricsUpdate"] = "MetricsUpdate"
    requests_per_second: float
    average_latency_ms: float
    error_rate: float
    total_requests: int


class ErrorEvent(BaseModel):
    """An error worth surfacing in the browser."""

    type: Literal["Error"] = "Error"
    message: str
    code: str | None = None


NotificationEnvelope = Annotated[
    ConnectionStatus | ToolResponse | MetricsUpdate | ErrorEvent,
    Field(discriminator="type"),
]

envelope_adapter: TypeAdapter[NotificationEnvelope] = TypeAdapter(NotificationEnvelope)

# notifications/message levels at or above "error" (RFC 5424 names)
_ERROR_LEVELS = {"error", "critical", "alert", "emergency"}


def events_from_upstream(envelope: dict[str, Any], tool_name: str | None = None) -> list[NotificationEnvelope]:
    """Translate one upstream message into browser events.

    Every message becomes a ToolResponse; log messages at error level or
    higher additionally produce an Error event.
    """
    request_id = envelope.get("id")
    params = envelope.get("params")
    if not isinstance(params, dict):
        params = None

    events: list[NotificationEnvelope] = [
        ToolResponse(
            method=str(envelope.get("method", "")),
            params=params,
            tool=tool_name,
            id=request_id if isinstance(request_id, int | str) else None,
        )
    ]

    if envelope.get("method") == "notifications/message" and params:
        level = str(params.get("level", "")).lower()
        if level in _ERROR_LEVELS:
            data = params.get("data")
            message = data if isinstance(data, str) else str(data)
            if params.get("logger"):
                message = f"[{params['logger']}] {message}"
            events.append(ErrorEvent(message=message, code="UPSTREAM_LOG"))

    return events
