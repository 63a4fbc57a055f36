"""Bridge error type shared by the transports, sessions and the REST layer."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Where a failure originated."""

    TRANSPORT = "TRANSPORT"
    SESSION = "SESSION"
    UPSTREAM = "UPSTREAM"
    STORE = "STORE"
    VALIDATION = "VALIDATION"
    SYSTEM = "SYSTEM"


@dataclass
class InspectorError(Exception):
    """Structured bridge failure.

    Built from a registered template by ``create_error``; the REST layer
    renders it with ``to_dict`` and answers with ``http_status``.
    """

    code: str
    category: ErrorCategory
    message: str
    detail: str | None = None
    suggestion: str | None = None
    retryable: bool = False
    http_status: int = 500

    session_id: str | None = None
    tool_name: str | None = None
    # JSON-RPC error object, when the peer sent one
    data: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def is_transport_failure(self) -> bool:
        return self.category == ErrorCategory.TRANSPORT

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Body of the ``{"error": ...}`` envelope."""
        body: dict[str, Any] = {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "detail": self.detail,
            "suggestion": self.suggestion,
            "retryable": self.retryable,
            "request_id": request_id,
        }
        if self.session_id:
            body["session_id"] = self.session_id
        if self.tool_name:
            body["tool_name"] = self.tool_name
        return body
