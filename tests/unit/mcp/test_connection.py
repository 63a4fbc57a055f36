"""Tests for UpstreamConnection against an in-process fake server."""

import asyncio
from typing import Any

import pytest

from mcp_inspector.config import BridgeConfig
from mcp_inspector.errors import InspectorError
from mcp_inspector.mcp.connection import UpstreamConnection
from mcp_inspector.mcp.protocol import METHOD_NOT_FOUND
from mcp_inspector.mcp.types import ConnectionInfo
from mcp_inspector.types import ConnectionState, InvocationOutcome
from tests.mocks import FakeServer, FakeTransport, fake_transport_factory


async def eventually(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


class Harness:
    """An UpstreamConnection wired to a FakeServer, recording callbacks."""

    def __init__(self, server: FakeServer | None = None, config: BridgeConfig | None = None):
        self.server = server or FakeServer()
        self.transports: list[FakeTransport] = []
        self.statuses: list[ConnectionInfo] = []
        self.notifications: list[tuple[dict[str, Any], str | None]] = []
        self.connection = UpstreamConnection(
            "session-1",
            "fake://server",
            "stdio",
            config=config or BridgeConfig(connect_timeout=1.0, request_timeout=1.0, close_timeout=0.5),
            on_status=self.statuses.append,
            on_notification=lambda envelope, tool: self.notifications.append((envelope, tool)),
            transport_factory=fake_transport_factory(self.server, self.transports),
        )

    @property
    def transport(self) -> FakeTransport:
        return self.transports[-1]

    @property
    def states(self) -> list[ConnectionState]:
        return [s.state for s in self.statuses]


@pytest.fixture
def harness() -> Harness:
    return Harness()


class TestConnect:
    """Handshake and catalog fetch."""

    @pytest.mark.asyncio
    async def test_connect_success(self, harness: Harness):
        info = await harness.connection.connect()

        assert info.connected is True
        assert info.state == ConnectionState.CONNECTED
        assert info.server_name == "fake-server"
        assert info.server_version == "1.0.0"
        assert info.protocol_version == "2025-03-26"
        assert info.tool_count == 5
        assert harness.states == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_handshake_sequence(self, harness: Harness):
        await harness.connection.connect()

        methods = [e["method"] for e in harness.transport.sent]
        assert methods == ["initialize", "notifications/initialized", "tools/list"]

        initialize = harness.transport.sent[0]
        assert initialize["id"] == 1
        assert initialize["params"]["clientInfo"]["name"] == "mcp-inspector"
        assert "id" not in harness.transport.sent[1]

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_catalog_in_server_order(self, harness: Harness):
        await harness.connection.connect()

        names = [t.name for t in harness.connection.list_tools()]
        assert names == ["echo", "add", "fail", "boom", "slow"]
        echo = harness.connection.get_tool("echo")
        assert echo is not None
        assert echo.input_schema["required"] == ["message"]
        assert harness.connection.get_tool("missing") is None

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_catalog_pagination(self):
        harness = Harness(FakeServer(page_size=2))
        await harness.connection.connect()

        list_calls = [e for e in harness.transport.sent if e["method"] == "tools/list"]
        assert len(list_calls) == 3
        assert "params" not in list_calls[0]
        assert list_calls[1]["params"] == {"cursor": "2"}
        assert list_calls[2]["params"] == {"cursor": "4"}
        assert len(harness.connection.list_tools()) == 5

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_tool_without_schema_gets_object_schema(self):
        harness = Harness(FakeServer(tools=[{"name": "bare"}, {"description": "no name"}]))
        await harness.connection.connect()

        tools = harness.connection.list_tools()
        assert [t.name for t in tools] == ["bare"]
        assert tools[0].input_schema == {"type": "object"}

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_single_use(self, harness: Harness):
        await harness.connection.connect()
        with pytest.raises(RuntimeError):
            await harness.connection.connect()
        await harness.connection.disconnect()

    def test_invalid_transport(self):
        with pytest.raises(InspectorError) as exc_info:
            UpstreamConnection("s", "x", "carrier-pigeon")
        assert exc_info.value.code == "INVALID_TRANSPORT"


class TestConnectFailure:
    """Every failure ends in FAILED with the transport closed."""

    @pytest.mark.asyncio
    async def test_refused(self):
        harness = Harness(FakeServer(refuse_connect=True))

        with pytest.raises(InspectorError) as exc_info:
            await harness.connection.connect()

        assert exc_info.value.code == "CONNECT_FAILED"
        assert harness.connection.state == ConnectionState.FAILED
        assert harness.states[-1] == ConnectionState.FAILED
        assert harness.connection.info().error

    @pytest.mark.asyncio
    async def test_initialize_rejected(self):
        harness = Harness(FakeServer(fail_initialize=True))

        with pytest.raises(InspectorError) as exc_info:
            await harness.connection.connect()

        assert exc_info.value.code == "CONNECT_FAILED"
        assert harness.connection.state == ConnectionState.FAILED
        assert harness.transport.shutdown_called
        assert harness.connection.list_tools() == []

    @pytest.mark.asyncio
    async def test_handshake_timeout(self):
        config = BridgeConfig(connect_timeout=0.1, close_timeout=0.1)
        harness = Harness(FakeServer(silent_initialize=True), config=config)

        with pytest.raises(InspectorError) as exc_info:
            await harness.connection.connect()

        assert exc_info.value.code == "CONNECT_FAILED"
        assert harness.connection.state == ConnectionState.FAILED
        assert not harness.transport.is_open


class TestServerMessages:
    """Requests and notifications initiated by the upstream server."""

    @pytest.mark.asyncio
    async def test_ping_is_answered(self, harness: Harness):
        await harness.connection.connect()
        harness.transport.push({"jsonrpc": "2.0", "id": "srv-1", "method": "ping"})

        await eventually(lambda: any(e.get("id") == "srv-1" for e in harness.transport.sent))
        reply = next(e for e in harness.transport.sent if e.get("id") == "srv-1")
        assert reply["result"] == {}

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_unsupported_request_gets_method_not_found(self, harness: Harness):
        await harness.connection.connect()
        harness.transport.push({"jsonrpc": "2.0", "id": 77, "method": "sampling/createMessage", "params": {}})

        await eventually(lambda: any(e.get("id") == 77 for e in harness.transport.sent))
        reply = next(e for e in harness.transport.sent if e.get("id") == 77)
        assert reply["error"]["code"] == METHOD_NOT_FOUND
        await eventually(lambda: len(harness.notifications) == 1)
        assert harness.notifications[0][0]["method"] == "sampling/createMessage"

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_notification_forwarded(self, harness: Harness):
        await harness.connection.connect()
        harness.transport.push(
            {"jsonrpc": "2.0", "method": "notifications/message", "params": {"level": "info", "data": "hi"}}
        )

        await eventually(lambda: len(harness.notifications) == 1)
        envelope, tool = harness.notifications[0]
        assert envelope["method"] == "notifications/message"
        assert tool is None

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_progress_mapped_to_tool(self, harness: Harness):
        await harness.connection.connect()
        call = asyncio.create_task(harness.connection.invoke("slow", {}, timeout=1.0))
        await eventually(lambda: any(e.get("method") == "tools/call" for e in harness.transport.sent))

        sent = next(e for e in harness.transport.sent if e.get("method") == "tools/call")
        token = sent["params"]["_meta"]["progressToken"]
        harness.transport.push(
            {
                "jsonrpc": "2.0",
                "method": "notifications/progress",
                "params": {"progressToken": token, "progress": 1, "total": 2},
            }
        )

        await eventually(lambda: len(harness.notifications) == 1)
        assert harness.notifications[0][1] == "slow"

        await harness.connection.disconnect()
        result = await call
        assert result.outcome == InvocationOutcome.CONNECTION_LOST

    @pytest.mark.asyncio
    async def test_listener_errors_do_not_break_receive_loop(self):
        harness = Harness()
        harness.connection._on_notification = lambda envelope, tool: 1 / 0
        await harness.connection.connect()

        harness.transport.push({"jsonrpc": "2.0", "method": "notifications/tools/list_changed"})
        result = await harness.connection.invoke("echo", {"message": "still alive"})
        assert result.success

        await harness.connection.disconnect()


class TestInvoke:
    @pytest.mark.asyncio
    async def test_invoke_success(self, harness: Harness):
        await harness.connection.connect()

        result = await harness.connection.invoke("add", {"a": 2, "b": 3})
        assert result.success
        assert result.result["content"][0]["text"] == "5"

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_unknown_tool_passes_through(self, harness: Harness):
        await harness.connection.connect()

        result = await harness.connection.invoke("not-in-catalog")
        assert result.outcome == InvocationOutcome.UPSTREAM_ERROR
        assert any(
            e.get("params", {}).get("name") == "not-in-catalog"
            for e in harness.transport.sent
            if e.get("method") == "tools/call"
        )

        await harness.connection.disconnect()

    @pytest.mark.asyncio
    async def test_invoke_before_connect(self, harness: Harness):
        with pytest.raises(InspectorError) as exc_info:
            await harness.connection.invoke("echo")
        assert exc_info.value.code == "NOT_CONNECTED"


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect(self, harness: Harness):
        await harness.connection.connect()
        await harness.connection.disconnect()

        assert harness.connection.state == ConnectionState.DISCONNECTED
        assert harness.transport.shutdown_called
        assert harness.states[-1] == ConnectionState.DISCONNECTED

        with pytest.raises(InspectorError) as exc_info:
            await harness.connection.invoke("echo")
        assert exc_info.value.code == "NOT_CONNECTED"

    @pytest.mark.asyncio
    async def test_disconnect_idempotent(self, harness: Harness):
        await harness.connection.connect()
        await harness.connection.disconnect()
        count = len(harness.statuses)
        await harness.connection.disconnect()
        assert len(harness.statuses) == count

    @pytest.mark.asyncio
    async def test_disconnect_never_connected(self, harness: Harness):
        await harness.connection.disconnect()
        assert harness.connection.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect_while_connecting(self):
        """Test that disconnect aborts a handshake instead of waiting it out."""
        config = BridgeConfig(connect_timeout=5.0, close_timeout=0.5)
        harness = Harness(FakeServer(silent_initialize=True), config=config)
        connecting = asyncio.create_task(harness.connection.connect())
        await eventually(lambda: harness.connection.correlator is not None)

        loop = asyncio.get_running_loop()
        started = loop.time()
        await harness.connection.disconnect()
        with pytest.raises(InspectorError) as exc_info:
            await connecting

        assert loop.time() - started < 1.0
        assert exc_info.value.code == "CONNECT_FAILED"
        assert "aborted: client request" in exc_info.value.detail
        assert harness.connection.state == ConnectionState.FAILED
        assert harness.states == [ConnectionState.CONNECTING, ConnectionState.FAILED]
        assert not harness.transport.is_open

    @pytest.mark.asyncio
    async def test_upstream_drop(self, harness: Harness):
        await harness.connection.connect()
        calls = [asyncio.create_task(harness.connection.invoke("slow", timeout=5.0)) for _ in range(2)]
        await eventually(lambda: harness.connection.correlator.pending_count == 2)

        harness.transport.drop("process exited with code 1")
        results = await asyncio.gather(*calls)

        assert [r.outcome for r in results] == [InvocationOutcome.CONNECTION_LOST] * 2
        await eventually(lambda: harness.connection.state == ConnectionState.DISCONNECTED)
        assert harness.connection.info().error == "process exited with code 1"
        assert harness.states[-1] == ConnectionState.DISCONNECTED
