"""Per-request context: request id and browser session echo."""

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from mcp_inspector.api.deps import SESSION_HEADER

REQUEST_ID_HEADER = "X-Request-ID"

logger = logging.getLogger(__name__)

_request_id: ContextVar[str | None] = ContextVar("inspector_request_id", default=None)


def get_request_id() -> str | None:
    """Request id of the HTTP request being handled, if any."""
    return _request_id.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request id and echoes it, with the session header, on the response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = _request_id.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            _request_id.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        session_id = request.headers.get(SESSION_HEADER)
        if session_id:
            response.headers[SESSION_HEADER] = session_id
        logger.debug(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response
