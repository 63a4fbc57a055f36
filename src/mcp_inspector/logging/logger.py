"""Inspector logger - component-scoped colored or JSON line logging.

Components are the bridge's layers: ``connection``, ``invocation``,
``session``, ``relay`` and ``transport``. Transport adapters log under a
dotted name (``transport.stdio``) that the ``transport`` switch controls.
"""

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TextIO

from mcp_inspector.logging.colors import COMPONENT_COLORS, LEVEL_COLORS, LIGHT_BLUE, RESET, paint
from mcp_inspector.types import LogFormat, LogLevel

COMPONENTS = ("connection", "invocation", "session", "relay", "transport")

_LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARN: 2,
    LogLevel.ERROR: 3,
}


@dataclass
class LogConfig:
    """Logger configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_params: bool = True
    show_results: bool = True
    truncate_at: int = 200
    components: dict[str, bool] = field(default_factory=dict)
    output: TextIO = field(default=sys.stdout)

    def __post_init__(self) -> None:
        for name in COMPONENTS:
            self.components.setdefault(name, True)


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class InspectorLogger:
    """Writes log lines for every bridge component.

    Component loggers (``ConnectionLogger``, ``InvocationLogger``) add
    the session and upstream address to each record.
    """

    def __init__(self, config: LogConfig | None = None):
        self.config = config or LogConfig()

    def connection(self, session_id: str, address: str, transport: str) -> "ConnectionLogger":
        """Logger scoped to one upstream connection."""
        return ConnectionLogger(self, session_id, address, transport)

    def enabled(self, level: LogLevel, component: str) -> bool:
        """Whether a record at level from component would be written."""
        if _LEVEL_ORDER.get(level, 0) < _LEVEL_ORDER.get(self.config.level, 1):
            return False
        root = component.split(".", 1)[0]
        return self.config.components.get(root, True)

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Write one record.

        Args:
            level: Record level
            component: Component name, optionally dotted
            message: Human-readable message
            context: Extra fields (JSON keys, or a trailing dict when colored)
        """
        if not self.enabled(level, component):
            return
        if self.config.format == LogFormat.JSON:
            line = self._format_json(level, component, message, context)
        else:
            line = self._format_colored(level, component, message, context)
        print(line, file=self.config.output)

    def _format_json(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None,
    ) -> str:
        record: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": level.value,
            "component": component,
            "message": message,
        }
        if context:
            record.update(context)
        return json.dumps(record, default=str)

    def _format_colored(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None,
    ) -> str:
        tag_color = COMPONENT_COLORS.get(component.split(".", 1)[0], RESET)
        line = f"{paint(f'[{component.upper()}]', tag_color)} {paint(message, LEVEL_COLORS.get(level, RESET))}"
        if context and self.config.show_params:
            line += " " + paint(_truncate(str(context), self.config.truncate_at), LIGHT_BLUE)
        return line


class ConnectionLogger:
    """Lifecycle records for one upstream connection."""

    def __init__(self, parent: InspectorLogger, session_id: str, address: str, transport: str):
        self.parent = parent
        self.session_id = session_id
        self.address = address
        self.transport = transport

    def _context(self, event: str, **extra: Any) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "address": self.address,
            "transport": self.transport,
            "event": event,
            **extra,
        }

    def connecting(self) -> None:
        self.parent.log(
            LogLevel.INFO,
            "connection",
            f"Connecting to '{self.address}' over {self.transport}",
            self._context("connecting"),
        )

    def connected(self, tool_count: int, server_name: str | None = None) -> None:
        label = f" ({server_name})" if server_name else ""
        self.parent.log(
            LogLevel.INFO,
            "connection",
            f"Connected to '{self.address}'{label}, {tool_count} tools ✓",
            self._context("connected", tool_count=tool_count, server_name=server_name),
        )

    def failed(self, error: str) -> None:
        self.parent.log(
            LogLevel.ERROR,
            "connection",
            f"Connection to '{self.address}' failed: {error}",
            self._context("failed", error=error),
        )

    def disconnected(self, reason: str, released: int = 0) -> None:
        """Log the end of a connection.

        Args:
            reason: Why the connection ended
            released: Pending requests released with CONNECTION_LOST
        """
        message = f"Disconnected from '{self.address}' ({reason})"
        if released:
            message += f", released {released} pending requests"
        self.parent.log(
            LogLevel.INFO,
            "connection",
            message,
            self._context("disconnected", reason=reason, released=released),
        )

    def invocation(self) -> "InvocationLogger":
        return InvocationLogger(self)


class InvocationLogger:
    """Records for tool calls made over one connection."""

    def __init__(self, parent: ConnectionLogger):
        self.parent = parent

    @property
    def _root(self) -> InspectorLogger:
        return self.parent.parent

    def _emit(self, level: LogLevel, message: str, event: str, **extra: Any) -> None:
        self._root.log(level, "invocation", message, self.parent._context(event, **extra))

    def calling(self, tool_name: str, request_id: int, arguments: dict[str, Any] | None = None) -> None:
        extra: dict[str, Any] = {"tool_name": tool_name, "request_id": request_id}
        if arguments and self._root.config.show_params:
            extra["arguments"] = arguments
        self._emit(LogLevel.DEBUG, f"Calling tool '{tool_name}' (id={request_id})", "invocation_calling", **extra)

    def result(self, tool_name: str, result: Any, duration_ms: int) -> None:
        extra: dict[str, Any] = {"tool_name": tool_name, "duration_ms": duration_ms}
        if self._root.config.show_results:
            extra["result"] = _truncate(str(result), self._root.config.truncate_at)
        self._emit(
            LogLevel.INFO,
            f"Tool '{tool_name}' completed ({duration_ms / 1000:.2f}s) ✓",
            "invocation_result",
            **extra,
        )

    def error(self, tool_name: str, code: str, error: str, duration_ms: int) -> None:
        # Tool-level failures are expected traffic; transport failures are not
        level = LogLevel.WARN if code == "UPSTREAM_ERROR" else LogLevel.ERROR
        self._emit(
            level,
            f"Tool '{tool_name}' failed with {code} ({duration_ms / 1000:.2f}s): {error}",
            "invocation_error",
            tool_name=tool_name,
            code=code,
            error=error,
            duration_ms=duration_ms,
        )

    def late_response(self, request_id: Any) -> None:
        """Log a response whose request is no longer pending."""
        self._emit(
            LogLevel.DEBUG,
            f"Discarded response for unknown or expired request id={request_id}",
            "late_response",
            request_id=request_id,
        )
