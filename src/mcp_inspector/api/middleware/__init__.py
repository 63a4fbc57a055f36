"""REST API middleware."""

from .context import REQUEST_ID_HEADER, RequestContextMiddleware, get_request_id

__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware", "get_request_id"]
