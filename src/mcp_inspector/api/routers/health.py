"""Health router."""

from fastapi import APIRouter, Depends

from mcp_inspector import __version__
from mcp_inspector.api.deps import get_manager
from mcp_inspector.api.models import HealthResponse
from mcp_inspector.session import SessionManager

health_router = APIRouter(tags=["Health"])


@health_router.get("/health", response_model=HealthResponse)
async def health_check(manager: SessionManager = Depends(get_manager)) -> HealthResponse:
    """Liveness probe with the number of live browser sessions."""
    return HealthResponse(status="ok", sessions=manager.session_count, version=__version__)
