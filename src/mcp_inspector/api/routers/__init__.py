"""REST API routers."""

from .connect import connect_router
from .events import events_router
from .health import health_router
from .sessions import session_router
from .tools import tool_router

__all__ = [
    "connect_router",
    "events_router",
    "health_router",
    "session_router",
    "tool_router",
]
