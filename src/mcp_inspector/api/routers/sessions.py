"""Saved session router."""

from fastapi import APIRouter, Depends, Path, Response, status

from mcp_inspector.api.deps import get_manager, get_session_id
from mcp_inspector.api.models import (
    SavedSessionDetail,
    SavedSessionSummary,
    SaveSessionRequest,
)
from mcp_inspector.session import SessionManager

session_router = APIRouter(prefix="/sessions", tags=["Sessions"])


@session_router.get("", response_model=list[SavedSessionSummary])
async def list_saved_sessions(
    manager: SessionManager = Depends(get_manager),
) -> list[SavedSessionSummary]:
    return [SavedSessionSummary.from_saved(s) for s in await manager.list_saved_sessions()]


@session_router.post("", response_model=SavedSessionDetail, status_code=status.HTTP_201_CREATED)
async def save_session(
    body: SaveSessionRequest,
    session_id: str = Depends(get_session_id),
    manager: SessionManager = Depends(get_manager),
) -> SavedSessionDetail:
    """Save the current connection parameters under a name."""
    manager.get_or_create(session_id)
    saved = await manager.save_session(session_id, body.name, body.description)
    return SavedSessionDetail.from_saved(saved)


@session_router.get("/{saved_session_id}", response_model=SavedSessionDetail)
async def get_saved_session(
    saved_session_id: str = Path(...),
    manager: SessionManager = Depends(get_manager),
) -> SavedSessionDetail:
    return SavedSessionDetail.from_saved(await manager.load_saved_session(saved_session_id))


@session_router.delete("/{saved_session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_saved_session(
    saved_session_id: str = Path(...),
    manager: SessionManager = Depends(get_manager),
) -> Response:
    await manager.delete_saved_session(saved_session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
