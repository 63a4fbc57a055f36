"""Request dependencies shared by the routers."""

from fastapi import Header, Request

from mcp_inspector.session import DEFAULT_SESSION_ID, SessionManager

SESSION_HEADER = "X-Inspector-Session"


def get_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_session_id(
    x_inspector_session: str | None = Header(default=None, alias=SESSION_HEADER),
) -> str:
    """Browser session from the X-Inspector-Session header."""
    return x_inspector_session or DEFAULT_SESSION_ID
