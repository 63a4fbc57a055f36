"""Connection REST API models."""

from datetime import datetime

from pydantic import BaseModel, Field

from mcp_inspector.mcp.types import ConnectionInfo
from mcp_inspector.types import ConnectionState, TransportKind


class ConnectRequest(BaseModel):
    """Connect to an upstream MCP server."""

    url: str = Field(min_length=1, description="Command line (stdio) or URL")
    transport: str = Field(default=TransportKind.HTTP.value)


class ConnectionInfoModel(BaseModel):
    """Connection snapshot."""

    url: str
    transport: TransportKind
    state: ConnectionState
    connected: bool
    server_name: str | None = None
    server_version: str | None = None
    protocol_version: str | None = None
    tool_count: int = 0
    created_at: datetime | None = None
    error: str | None = None

    @classmethod
    def from_info(cls, info: ConnectionInfo) -> "ConnectionInfoModel":
        return cls(
            url=info.url,
            transport=info.transport,
            state=info.state,
            connected=info.connected,
            server_name=info.server_name,
            server_version=info.server_version,
            protocol_version=info.protocol_version,
            tool_count=info.tool_count,
            created_at=info.created_at,
            error=info.error,
        )


class ConnectResponse(BaseModel):
    """Connect outcome; failures are reported in the body."""

    success: bool
    message: str | None = None
    error_code: str | None = None
    connection_info: ConnectionInfoModel | None = None


class DisconnectResponse(BaseModel):
    success: bool
    message: str


class StatusResponse(BaseModel):
    """Session connection status."""

    session_id: str
    connected: bool
    state: ConnectionState
    connection_info: ConnectionInfoModel | None = None
