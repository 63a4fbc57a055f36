"""Connection router."""

from fastapi import APIRouter, Depends

from mcp_inspector.api.deps import get_manager, get_session_id
from mcp_inspector.api.models import (
    ConnectionInfoModel,
    ConnectRequest,
    ConnectResponse,
    DisconnectResponse,
    StatusResponse,
)
from mcp_inspector.errors import InspectorError
from mcp_inspector.session import SessionManager
from mcp_inspector.types import ConnectionState

connect_router = APIRouter(tags=["Connection"])


@connect_router.post("/connect", response_model=ConnectResponse)
async def connect(
    body: ConnectRequest,
    session_id: str = Depends(get_session_id),
    manager: SessionManager = Depends(get_manager),
) -> ConnectResponse:
    """Connect the session to an upstream MCP server.

    Always answers 200; a failed connect is reported with success=false.
    """
    try:
        info = await manager.connect(session_id, body.url, body.transport)
    except InspectorError as e:
        message = f"{e.message}: {e.detail}" if e.detail else e.message
        return ConnectResponse(success=False, message=message, error_code=e.code)

    return ConnectResponse(
        success=True,
        message=f"Connected to {body.url}",
        connection_info=ConnectionInfoModel.from_info(info),
    )


@connect_router.post("/disconnect", response_model=DisconnectResponse)
async def disconnect(
    session_id: str = Depends(get_session_id),
    manager: SessionManager = Depends(get_manager),
) -> DisconnectResponse:
    """Disconnect the session from its upstream server."""
    manager.get_or_create(session_id)
    if await manager.disconnect(session_id):
        return DisconnectResponse(success=True, message="Disconnected")
    return DisconnectResponse(success=False, message="Not connected")


@connect_router.get("/status", response_model=StatusResponse)
async def status(
    session_id: str = Depends(get_session_id),
    manager: SessionManager = Depends(get_manager),
) -> StatusResponse:
    """Current connection status of the session."""
    manager.get_or_create(session_id)
    info = manager.status(session_id)
    if info is None:
        return StatusResponse(
            session_id=session_id,
            connected=False,
            state=ConnectionState.DISCONNECTED,
        )
    return StatusResponse(
        session_id=session_id,
        connected=info.connected,
        state=info.state,
        connection_info=ConnectionInfoModel.from_info(info),
    )
