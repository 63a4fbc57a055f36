"""Exception handlers mapping bridge failures to the ``{"error": ...}`` envelope."""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mcp_inspector.api.middleware import get_request_id
from mcp_inspector.errors import InspectorError

logger = logging.getLogger(__name__)


def _envelope(
    code: str,
    category: str,
    message: str,
    detail: str | None = None,
) -> dict[str, Any]:
    return {
        "error": {
            "code": code,
            "category": category,
            "message": message,
            "detail": detail,
            "suggestion": None,
            "retryable": False,
            "request_id": get_request_id(),
        }
    }


def setup_error_handlers(app: FastAPI) -> None:
    """Install the bridge's exception handlers on app."""

    @app.exception_handler(InspectorError)
    async def inspector_error_handler(request: Request, exc: InspectorError) -> JSONResponse:
        if exc.is_transport_failure:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.http_status,
            content={"error": exc.to_dict(request_id=get_request_id())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(f"HTTP_{exc.status_code}", "SYSTEM", str(exc.detail)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "Invalid request")
        return JSONResponse(
            status_code=422,
            content=_envelope(
                "VALIDATION_ERROR",
                "VALIDATION",
                f"{location}: {message}" if location else message,
                detail=str(errors),
            ),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error in %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_envelope(
                "INTERNAL_ERROR",
                "SYSTEM",
                "An unexpected error occurred",
                detail=str(exc) if app.debug else None,
            ),
        )
