"""Error templates keyed by code, and the helpers that instantiate them."""

from dataclasses import dataclass
from typing import Any

from .errors import ErrorCategory, InspectorError


@dataclass
class ErrorTemplate:
    """Message templates and defaults for one error code."""

    code: str
    category: ErrorCategory
    message_template: str
    detail_template: str | None = None
    suggestion_template: str | None = None
    default_retryable: bool = False
    default_http_status: int = 500


class ErrorRegistry:
    """Maps error codes to templates; starts with every bridge error."""

    def __init__(self) -> None:
        self._templates: dict[str, ErrorTemplate] = {}
        self._load_builtin_templates()

    def list_codes(self) -> list[str]:
        """List all registered error codes."""
        return list(self._templates.keys())

    def register(self, template: ErrorTemplate) -> None:
        """Register or replace a template."""
        self._templates[template.code] = template

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
    ) -> InspectorError:
        """Instantiate the template for code.

        Raises:
            ValueError: If the code is not registered
        """
        template = self._templates.get(code)
        if template is None:
            raise ValueError(f"Unknown error code: {code}")

        context = context or {}
        # An explicit detail in the context wins over the template's generic one
        detail = context.get("detail") or _fill(template.detail_template, context)
        return InspectorError(
            code=template.code,
            category=template.category,
            message=_fill(template.message_template, context) or code,
            detail=detail,
            suggestion=_fill(template.suggestion_template, context),
            retryable=template.default_retryable,
            http_status=template.default_http_status,
            session_id=context.get("session_id"),
            tool_name=context.get("tool_name"),
            data=context.get("data"),
        )

    def _load_builtin_templates(self) -> None:
        # TRANSPORT errors
        self._templates["CONNECT_FAILED"] = ErrorTemplate(
            code="CONNECT_FAILED",
            category=ErrorCategory.TRANSPORT,
            message_template="Failed to connect to '{address}'",
            detail_template="The upstream server could not be reached or rejected the handshake",
            suggestion_template="Check the address and transport kind, then connect again",
            default_retryable=True,
            default_http_status=502,
        )

        self._templates["DEADLINE_EXCEEDED"] = ErrorTemplate(
            code="DEADLINE_EXCEEDED",
            category=ErrorCategory.TRANSPORT,
            message_template="Request '{method}' timed out after {timeout_seconds}s",
            detail_template="The upstream server did not respond within the deadline",
            suggestion_template="Increase the timeout or check whether the tool is stuck",
            default_retryable=True,
            default_http_status=504,
        )

        self._templates["CONNECTION_LOST"] = ErrorTemplate(
            code="CONNECTION_LOST",
            category=ErrorCategory.TRANSPORT,
            message_template="Connection lost while request was outstanding",
            detail_template="The upstream connection was closed before a response arrived",
            suggestion_template="Reconnect and retry the request",
            default_retryable=True,
            default_http_status=502,
        )

        # UPSTREAM errors
        self._templates["UPSTREAM_ERROR"] = ErrorTemplate(
            code="UPSTREAM_ERROR",
            category=ErrorCategory.UPSTREAM,
            message_template="Upstream returned an error: {upstream_message}",
            detail_template="The upstream server answered with an application-level failure",
            suggestion_template="Check the request arguments against the tool's input schema",
            default_retryable=False,
            default_http_status=502,
        )

        # SESSION errors
        self._templates["SESSION_NOT_FOUND"] = ErrorTemplate(
            code="SESSION_NOT_FOUND",
            category=ErrorCategory.SESSION,
            message_template="Session '{session_id}' not found",
            suggestion_template="Connect first to create the session",
            default_http_status=404,
        )

        self._templates["NOT_CONNECTED"] = ErrorTemplate(
            code="NOT_CONNECTED",
            category=ErrorCategory.SESSION,
            message_template="Session '{session_id}' is not connected",
            detail_template="This operation requires an active upstream connection",
            suggestion_template="Connect to an MCP server first",
            default_retryable=False,
            default_http_status=503,
        )

        self._templates["TOOL_NOT_FOUND"] = ErrorTemplate(
            code="TOOL_NOT_FOUND",
            category=ErrorCategory.SESSION,
            message_template="Tool '{tool_name}' not found",
            suggestion_template="List the tools to see what the server exposes",
            default_http_status=404,
        )

        # STORE errors
        self._templates["SAVED_SESSION_NOT_FOUND"] = ErrorTemplate(
            code="SAVED_SESSION_NOT_FOUND",
            category=ErrorCategory.STORE,
            message_template="Saved session '{saved_session_id}' not found",
            default_http_status=404,
        )

        # VALIDATION errors
        self._templates["INVALID_TRANSPORT"] = ErrorTemplate(
            code="INVALID_TRANSPORT",
            category=ErrorCategory.VALIDATION,
            message_template="Unknown transport '{transport}'",
            suggestion_template="Use one of: stdio, http, http2, websocket",
            default_http_status=400,
        )

        # SYSTEM errors
        self._templates["CONFIG_INVALID"] = ErrorTemplate(
            code="CONFIG_INVALID",
            category=ErrorCategory.SYSTEM,
            message_template="Configuration is invalid",
            suggestion_template="Check the configuration file and environment variables",
            default_http_status=500,
        )


def _fill(template: str | None, context: dict[str, Any]) -> str | None:
    # Missing context variables leave the template untouched
    if template is None:
        return None
    try:
        return template.format(**context)
    except (KeyError, IndexError):
        return template


_default_registry: ErrorRegistry | None = None


def get_registry() -> ErrorRegistry:
    """Process-wide registry used by ``create_error``."""
    global _default_registry  # noqa: PLW0603
    if _default_registry is None:
        _default_registry = ErrorRegistry()
    return _default_registry


def create_error(code: str, **context: Any) -> InspectorError:
    """Build an InspectorError from the registered template for ``code``.

    ``detail``, ``session_id``, ``tool_name`` and ``data`` in the context
    are copied onto the error; everything is available to the templates.
    """
    return get_registry().create(code, context)
