"""Browser-facing REST API and event channel."""

from .app import API_PREFIX, create_app
from .deps import SESSION_HEADER

__all__ = ["API_PREFIX", "SESSION_HEADER", "create_app"]
