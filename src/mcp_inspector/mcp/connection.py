"""Upstream connection - one MCP server link owned by a browser session.

Drives the transport through the MCP lifecycle: open, ``initialize``
handshake, one ``tools/list`` catalog fetch, then request/response
traffic until the link ends. Each instance is single-use; reconnecting
means building a new instance.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from mcp_inspector.config.models import BridgeConfig
from mcp_inspector.errors import InspectorError, create_error
from mcp_inspector.logging.logger import ConnectionLogger, InspectorLogger
from mcp_inspector.types import ConnectionState, LogLevel, TransportKind

from .correlator import RequestCorrelator
from .protocol import METHOD_NOT_FOUND, JSONRPCMessage
from .transports import TransportAdapter, TransportClosed, TransportConfig, create_transport
from .types import ConnectionInfo, InvocationResult, ServerInfo, Tool

# Receives a snapshot after every state transition
StatusListener = Callable[[ConnectionInfo], None]
# Receives upstream notifications/requests and the tool they relate to, if known
NotificationListener = Callable[[dict[str, Any], str | None], None]
TransportFactory = Callable[..., TransportAdapter]

# Guards against servers that keep returning a cursor
MAX_CATALOG_PAGES = 100


class UpstreamConnection:
    """Single upstream MCP server connection."""

    def __init__(
        self,
        session_id: str,
        address: str,
        transport: TransportKind | str,
        config: BridgeConfig | None = None,
        logger: InspectorLogger | None = None,
        on_status: StatusListener | None = None,
        on_notification: NotificationListener | None = None,
        transport_factory: TransportFactory = create_transport,
        transport_config: TransportConfig | None = None,
        generation: int = 1,
    ):
        """Initialize connection.

        Args:
            session_id: Browser session that owns this connection
            address: Command line (stdio) or URL
            transport: Transport kind
            config: Bridge settings (timeouts, client identity)
            logger: Optional logger
            on_status: Called after every state transition
            on_notification: Called for every upstream notification
            transport_factory: Builds the adapter; replaceable in tests
            transport_config: Adapter settings; derived from config when omitted
            generation: Per-session connection counter

        Raises:
            InspectorError(INVALID_TRANSPORT): If the transport kind is unknown
        """
        try:
            self.transport_kind = TransportKind(transport)
        except ValueError as e:
            raise create_error("INVALID_TRANSPORT", transport=transport) from e

        self.session_id = session_id
        self.address = address
        self.generation = generation
        self.config = config or BridgeConfig()
        self._inspector_logger = logger
        self._logger: ConnectionLogger | None = (
            logger.connection(session_id, address, self.transport_kind.value) if logger else None
        )
        self._on_status = on_status
        self._on_notification = on_notification
        self._transport_factory = transport_factory
        self._transport_config = transport_config or TransportConfig(
            connect_timeout=self.config.connect_timeout,
            close_timeout=self.config.close_timeout,
        )

        self._state = ConnectionState.DISCONNECTED
        self._used = False
        self._closing = False
        self._abort_reason: str | None = None
        self._transport: TransportAdapter | None = None
        self._correlator: RequestCorrelator | None = None
        self._receive_task: asyncio.Task[None] | None = None
        self._tools: dict[str, Tool] = {}
        self.server_info = ServerInfo()
        self.created_at = datetime.now(UTC)
        self.last_error: str | None = None

    def _log(self, level: LogLevel, message: str, **context: Any) -> None:
        if self._inspector_logger:
            self._inspector_logger.log(
                level, "connection", message, {"session_id": self.session_id, **context}
            )

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def correlator(self) -> RequestCorrelator | None:
        return self._correlator

    def info(self) -> ConnectionInfo:
        """Snapshot of this connection for status reporting."""
        return ConnectionInfo(
            url=self.address,
            transport=self.transport_kind,
            state=self._state,
            connected=self.connected,
            server_name=self.server_info.name,
            server_version=self.server_info.version,
            protocol_version=self.server_info.protocol_version,
            tool_count=len(self._tools),
            created_at=self.created_at,
            error=self.last_error,
        )

    def list_tools(self) -> list[Tool]:
        """Catalog fetched at connect time, in server order."""
        return list(self._tools.values())

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        if self._on_status:
            try:
                self._on_status(self.info())
            except Exception as e:
                self._log(LogLevel.WARN, f"Error in status listener: {e}")

    async def connect(self) -> ConnectionInfo:
        """Open the transport, handshake and fetch the tool catalog.

        Returns:
            ConnectionInfo for the established connection

        Raises:
            InspectorError(CONNECT_FAILED): On any failure; the connection
                ends in FAILED with the transport closed
            RuntimeError: If this instance was already used
        """
        if self._used:
            raise RuntimeError("UpstreamConnection instances are single-use")
        self._used = True

        self._set_state(ConnectionState.CONNECTING)
        if self._logger:
            self._logger.connecting()

        try:
            async with asyncio.timeout(self.config.connect_timeout):
                await self._open_transport()
                self._raise_if_aborted()
                await self._handshake()
                await self._fetch_catalog()
                self._raise_if_aborted()
        except asyncio.CancelledError:
            await self._abort("connect cancelled")
            raise
        except Exception as e:
            reason = self._describe_failure(e)
            await self._abort(reason)
            if self._logger:
                self._logger.failed(reason)
            if isinstance(e, InspectorError) and e.code == "CONNECT_FAILED":
                raise
            raise create_error("CONNECT_FAILED", address=self.address, detail=reason) from e

        self._set_state(ConnectionState.CONNECTED)
        if self._logger:
            self._logger.connected(len(self._tools), self.server_info.name)
        return self.info()

    def _raise_if_aborted(self) -> None:
        # disconnect() ran while the handshake was in flight
        if self._closing:
            raise create_error(
                "CONNECT_FAILED",
                address=self.address,
                detail=f"aborted: {self._abort_reason or 'disconnected'}",
            )

    def _describe_failure(self, error: Exception) -> str:
        if isinstance(error, TimeoutError):
            return f"timed out after {self.config.connect_timeout}s"
        if isinstance(error, InspectorError):
            if error.code == "CONNECTION_LOST" and self._abort_reason:
                return f"aborted: {self._abort_reason}"
            if error.code == "CONNECTION_LOST" and self._transport and self._transport.close_reason:
                return self._transport.close_reason
            return error.detail or error.message
        return str(error) or type(error).__name__

    async def _open_transport(self) -> None:
        transport = self._transport_factory(
            self.transport_kind,
            self.address,
            self._transport_config,
            self._inspector_logger,
        )
        self._transport = transport
        await transport.open()

        invocation_logger = self._logger.invocation() if self._logger else None
        self._correlator = RequestCorrelator(
            transport.send,
            default_timeout=self.config.request_timeout,
            logger=invocation_logger,
        )
        self._receive_task = asyncio.create_task(self._receive_loop(transport))

    async def _handshake(self) -> None:
        assert self._correlator is not None and self._transport is not None

        result = await self._correlator.request(
            "initialize",
            {
                "protocolVersion": self.config.protocol_version,
                "capabilities": {},
                "clientInfo": {
                    "name": self.config.client_name,
                    "version": self.config.client_version,
                },
            },
            timeout=self.config.connect_timeout,
        )
        result = result if isinstance(result, dict) else {}
        server = result.get("serverInfo") or {}
        self.server_info = ServerInfo(
            name=server.get("name"),
            version=server.get("version"),
            protocol_version=result.get("protocolVersion"),
            capabilities=tuple(sorted((result.get("capabilities") or {}).keys())),
        )

        await self._transport.send(JSONRPCMessage.notification("notifications/initialized"))

    async def _fetch_catalog(self) -> None:
        assert self._correlator is not None

        tools: dict[str, Tool] = {}
        cursor: str | None = None
        for _ in range(MAX_CATALOG_PAGES):
            params = {"cursor": cursor} if cursor else None
            page = await self._correlator.request(
                "tools/list", params, timeout=self.config.connect_timeout
            )
            page = page if isinstance(page, dict) else {}
            for raw in page.get("tools") or []:
                if not isinstance(raw, dict) or not raw.get("name"):
                    continue
                tool = Tool(
                    name=raw["name"],
                    description=raw.get("description"),
                    input_schema=raw.get("inputSchema") or {"type": "object"},
                )
                tools[tool.name] = tool
            cursor = page.get("nextCursor")
            if not cursor:
                break
        else:
            self._log(LogLevel.WARN, f"Stopped catalog fetch after {MAX_CATALOG_PAGES} pages")

        self._tools = tools

    async def _receive_loop(self, transport: TransportAdapter) -> None:
        try:
            async for envelope in transport.receive():
                await self._route(envelope)
        finally:
            self._on_transport_closed(transport.close_reason or "transport closed")

    async def _route(self, envelope: dict[str, Any]) -> None:
        assert self._correlator is not None

        if JSONRPCMessage.is_response(envelope):
            self._correlator.resolve(envelope)
        elif JSONRPCMessage.is_request(envelope):
            await self._answer(envelope)
            self._notify(envelope, None)
        elif JSONRPCMessage.is_notification(envelope):
            tool_name = None
            if envelope.get("method") == "notifications/progress":
                params = envelope.get("params") or {}
                tool_name = self._correlator.find_tool_by_progress_token(params.get("progressToken"))
            self._notify(envelope, tool_name)
        else:
            self._log(LogLevel.DEBUG, "Ignoring unrecognized envelope", envelope=envelope)

    async def _answer(self, request: dict[str, Any]) -> None:
        """Reply to a server-initiated request."""
        assert self._transport is not None

        if request.get("method") == "ping":
            reply = JSONRPCMessage.success_response(request["id"], {})
        else:
            reply = JSONRPCMessage.error_response(
                request["id"],
                METHOD_NOT_FOUND,
                f"Method not supported by client: {request.get('method')}",
            )
        try:
            await self._transport.send(reply)
        except TransportClosed:
            self._log(LogLevel.DEBUG, "Transport closed before reply could be sent")

    def _notify(self, envelope: dict[str, Any], tool_name: str | None) -> None:
        if not self._on_notification:
            return
        try:
            self._on_notification(envelope, tool_name)
        except Exception as e:
            self._log(LogLevel.WARN, f"Error in notification listener: {e}")

    def _on_transport_closed(self, reason: str) -> None:
        released = self._correlator.fail_all(reason) if self._correlator else 0
        if self._closing or self._state != ConnectionState.CONNECTED:
            return

        self.last_error = reason
        if self._logger:
            self._logger.disconnected(reason, released)
        self._set_state(ConnectionState.DISCONNECTED)

    async def _abort(self, reason: str) -> None:
        """Tear down after a failed connect."""
        self._closing = True
        self.last_error = reason
        await self._close_transport(reason)
        self._tools = {}
        self._set_state(ConnectionState.FAILED)

    async def _close_transport(self, reason: str) -> int:
        released = self._correlator.fail_all(reason) if self._correlator else 0
        if self._transport is not None:
            await self._transport.close(reason)
        task = self._receive_task
        if task is not None and task is not asyncio.current_task():
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=self.config.close_timeout)
            except TimeoutError:
                task.cancel()
        return released

    async def disconnect(self, reason: str = "client request") -> None:
        """Close the connection, releasing every pending request.

        Safe to call in any state. On an instance that is still connecting
        the in-flight connect() is aborted and ends in FAILED.
        """
        if self._closing:
            return
        self._closing = True
        self._abort_reason = reason
        was_connected = self._state == ConnectionState.CONNECTED

        released = await self._close_transport(reason)

        if was_connected:
            if self._logger:
                self._logger.disconnected(reason, released)
            self._set_state(ConnectionState.DISCONNECTED)

    async def invoke(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> InvocationResult:
        """Call a tool on the upstream server.

        Raises:
            InspectorError(NOT_CONNECTED): If the connection is not established
        """
        if not self.connected or self._correlator is None:
            raise create_error("NOT_CONNECTED", session_id=self.session_id, tool_name=tool_name)
        return await self._correlator.invoke(tool_name, arguments, timeout)
