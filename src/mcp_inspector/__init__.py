"""MCP Inspector - browser bridge for inspecting MCP servers.

Connects a browser UI to an upstream MCP server over stdio, HTTP+SSE,
streamable HTTP/2 or WebSocket, and relays tool calls and server
notifications between them.
"""

__version__ = "0.1.0"

from mcp_inspector.application import InspectorApplication  # noqa: E402

__all__ = ["__version__", "InspectorApplication"]
