"""JSON-RPC envelope helpers for MCP communication."""

import json
from typing import Any

JSONRPC_VERSION = "2.0"

# JSON-RPC 2.0 error codes
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class JSONRPCMessage:
    """JSON-RPC 2.0 envelope builder and classifier."""

    @staticmethod
    def request(method: str, params: dict[str, Any] | None = None, id: int = 1) -> dict[str, Any]:
        """Build a JSON-RPC request.

        Args:
            method: Method name (e.g., "initialize", "tools/list", "tools/call")
            params: Optional parameters
            id: Correlator id

        Returns:
            JSON-RPC request dict
        """
        msg: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "id": id,
            "method": method,
        }
        if params is not None:
            msg["params"] = params
        return msg

    @staticmethod
    def notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Build a JSON-RPC notification (no response expected)."""
        msg: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "method": method,
        }
        if params is not None:
            msg["params"] = params
        return msg

    @staticmethod
    def success_response(id: Any, result: Any) -> dict[str, Any]:
        """Build a JSON-RPC success response."""
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": id,
            "result": result,
        }

    @staticmethod
    def error_response(id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
        """Build a JSON-RPC error response."""
        error: dict[str, Any] = {
            "code": code,
            "message": message,
        }
        if data is not None:
            error["data"] = data

        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": id,
            "error": error,
        }

    @staticmethod
    def parse(message: str | bytes) -> dict[str, Any]:
        """Parse one JSON-RPC envelope.

        Raises:
            ValueError: If the message is not valid JSON or not a JSON object
        """
        if isinstance(message, bytes):
            message = message.decode("utf-8")
        parsed = json.loads(message)
        if not isinstance(parsed, dict):
            raise ValueError(f"Expected a JSON-RPC object, got {type(parsed).__name__}")
        return parsed

    @staticmethod
    def dumps(message: dict[str, Any]) -> str:
        """Serialize an envelope as compact single-line JSON."""
        return json.dumps(message, separators=(",", ":"), ensure_ascii=False)

    @staticmethod
    def is_response(message: dict[str, Any]) -> bool:
        """Check if message is a response (has 'result' or 'error' and no method)."""
        return "method" not in message and ("result" in message or "error" in message)

    @staticmethod
    def is_request(message: dict[str, Any]) -> bool:
        """Check if message is a peer-initiated request (method and id)."""
        return "method" in message and message.get("id") is not None

    @staticmethod
    def is_notification(message: dict[str, Any]) -> bool:
        """Check if message is a notification (method, no id)."""
        return "method" in message and message.get("id") is None

    @staticmethod
    def is_error(message: dict[str, Any]) -> bool:
        """Check if message is an error response."""
        return "error" in message

    @staticmethod
    def get_error(message: dict[str, Any]) -> dict[str, Any]:
        """Extract error from error response.

        Non-object error members are normalized to ``{"code", "message"}``.
        """
        error = message["error"]
        if isinstance(error, dict):
            return error
        return {"code": INTERNAL_ERROR, "message": str(error)}
