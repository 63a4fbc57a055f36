"""Tests for SessionManager with fake upstream connections."""

import asyncio
import time

import pytest

from mcp_inspector.config import BridgeConfig
from mcp_inspector.errors import InspectorError
from mcp_inspector.session import DEFAULT_SESSION_ID, SessionManager
from mcp_inspector.store import InMemorySavedSessionStore
from mcp_inspector.types import ConnectionState, InvocationOutcome, TransportKind
from tests.mocks import FakeConnectionFactory, FakeServer, RecordingChannel

ADDRESS = "fake://server"
SILENT = "fake://silent"


async def eventually(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


@pytest.fixture
def silent_factory() -> FakeConnectionFactory:
    """SILENT never answers initialize; other addresses behave normally."""
    return FakeConnectionFactory({SILENT: FakeServer(silent_initialize=True)})


@pytest.fixture
def silent_manager(silent_factory: FakeConnectionFactory) -> SessionManager:
    config = BridgeConfig(connect_timeout=5.0, request_timeout=2.0, close_timeout=0.5)
    return SessionManager(config, connection_factory=silent_factory)


class TestSessions:
    def test_lazy_creation(self, session_manager: SessionManager):
        assert session_manager.session_count == 0
        session = session_manager.get_or_create()
        assert session.id == DEFAULT_SESSION_ID
        assert session_manager.get_or_create() is session
        assert session_manager.session_count == 1

    def test_get_unknown(self, session_manager: SessionManager):
        with pytest.raises(InspectorError) as exc_info:
            session_manager.get("nobody")
        assert exc_info.value.code == "SESSION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, session_manager: SessionManager):
        await session_manager.connect("a", ADDRESS, "stdio")
        session_manager.get_or_create("b")

        assert len(session_manager.list_tools("a")) == 5
        with pytest.raises(InspectorError) as exc_info:
            session_manager.list_tools("b")
        assert exc_info.value.code == "NOT_CONNECTED"
        await session_manager.shutdown()

    @pytest.mark.asyncio
    async def test_close_session(self, session_manager, connection_factory):
        await session_manager.connect("a", ADDRESS, "stdio")
        await session_manager.close_session("a")

        assert session_manager.session_count == 0
        assert connection_factory.connections[0].state == ConnectionState.DISCONNECTED
        with pytest.raises(InspectorError):
            await session_manager.close_session("a")


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect(self, session_manager: SessionManager):
        info = await session_manager.connect("s", ADDRESS, "stdio")

        assert info.connected
        assert info.transport == TransportKind.STDIO
        assert session_manager.status("s").server_name == "fake-server"
        assert session_manager.get_tool("s", "echo").name == "echo"
        await session_manager.shutdown()

    @pytest.mark.asyncio
    async def test_invalid_transport(self, session_manager: SessionManager):
        with pytest.raises(InspectorError) as exc_info:
            await session_manager.connect("s", ADDRESS, "pigeon")
        assert exc_info.value.code == "INVALID_TRANSPORT"

    @pytest.mark.asyncio
    async def test_failed_connect_binds_nothing(self, bridge_config):
        factory = FakeConnectionFactory({"fake://down": FakeServer(refuse_connect=True)})
        manager = SessionManager(bridge_config, connection_factory=factory)
        channel = RecordingChannel()
        await manager.attach_channel("s", channel)

        with pytest.raises(InspectorError) as exc_info:
            await manager.connect("s", "fake://down", "stdio")

        assert exc_info.value.code == "CONNECT_FAILED"
        assert manager.status("s") is None
        await manager.get("s").relay.flush()
        assert channel.of_type("ConnectionStatus")[-1]["state"] == "failed"
        await manager.shutdown()

    @pytest.mark.asyncio
    async def test_reconnect_replaces_connection(self, session_manager, connection_factory):
        await session_manager.connect("s", ADDRESS, "stdio")
        first = connection_factory.connections[0]
        await session_manager.connect("s", ADDRESS, "stdio")

        assert first.state == ConnectionState.DISCONNECTED
        assert session_manager.get("s").generation == 2
        assert session_manager.status("s").connected
        await session_manager.shutdown()

    @pytest.mark.asyncio
    async def test_stale_connection_events_ignored(self, session_manager, connection_factory):
        channel = RecordingChannel()
        await session_manager.attach_channel("s", channel)
        await session_manager.connect("s", ADDRESS, "stdio")
        stale = connection_factory.connections[0]
        await session_manager.connect("s", ADDRESS, "stdio")
        session = session_manager.get("s")
        await session.relay.flush()
        before = len(channel.frames)

        stale._on_status(stale.info())
        stale._on_notification({"jsonrpc": "2.0", "method": "notifications/message"}, None)
        await session.relay.flush()

        assert len(channel.frames) == before
        assert channel.of_type("ConnectionStatus")[-1]["state"] == "connected"
        await session_manager.shutdown()

    @pytest.mark.asyncio
    async def test_disconnect(self, session_manager: SessionManager):
        await session_manager.connect("s", ADDRESS, "stdio")
        assert await session_manager.disconnect("s") is True
        assert await session_manager.disconnect("s") is False
        assert session_manager.status("s") is None


class TestConnectInFlight:
    """Session operations while a handshake is still outstanding."""

    @staticmethod
    async def start_connect(manager: SessionManager, factory: FakeConnectionFactory) -> asyncio.Task:
        manager.get_or_create("s")
        task = asyncio.create_task(manager.connect("s", SILENT, "stdio"))
        await eventually(lambda: bool(factory.connections) and factory.connections[0].correlator is not None)
        return task

    @pytest.mark.asyncio
    async def test_status_reports_connecting(self, silent_manager, silent_factory):
        connecting = await self.start_connect(silent_manager, silent_factory)

        status = silent_manager.status("s")
        assert status.state == ConnectionState.CONNECTING
        assert status.url == SILENT
        assert silent_manager.get("s").status().state == ConnectionState.CONNECTING

        await silent_manager.disconnect("s")
        with pytest.raises(InspectorError):
            await connecting

    @pytest.mark.asyncio
    async def test_attach_replays_connecting(self, silent_manager, silent_factory):
        connecting = await self.start_connect(silent_manager, silent_factory)
        channel = RecordingChannel()
        await silent_manager.attach_channel("s", channel)
        await silent_manager.get("s").relay.flush()

        first = channel.of_type("ConnectionStatus")[0]
        assert first["state"] == "connecting"
        assert first["url"] == SILENT

        await silent_manager.disconnect("s")
        with pytest.raises(InspectorError):
            await connecting

    @pytest.mark.asyncio
    async def test_disconnect_aborts_connect(self, silent_manager, silent_factory):
        connecting = await self.start_connect(silent_manager, silent_factory)

        started = time.monotonic()
        assert await silent_manager.disconnect("s") is True
        assert time.monotonic() - started < 1.0

        with pytest.raises(InspectorError) as exc_info:
            await connecting
        assert exc_info.value.code == "CONNECT_FAILED"
        assert silent_manager.status("s") is None
        assert silent_factory.connections[0].state == ConnectionState.FAILED
        assert await silent_manager.disconnect("s") is False

    @pytest.mark.asyncio
    async def test_disconnect_publishes_disconnected(self, silent_manager, silent_factory):
        channel = RecordingChannel()
        await silent_manager.attach_channel("s", channel)
        connecting = await self.start_connect(silent_manager, silent_factory)

        await silent_manager.disconnect("s")
        with pytest.raises(InspectorError):
            await connecting
        await silent_manager.get("s").relay.flush()

        # The aborted connection's own FAILED status belongs to a released generation
        states = [s["state"] for s in channel.of_type("ConnectionStatus")]
        assert states == ["disconnected", "connecting", "disconnected"]

    @pytest.mark.asyncio
    async def test_connect_replaces_inflight_connect(self, silent_manager, silent_factory):
        stuck = await self.start_connect(silent_manager, silent_factory)

        started = time.monotonic()
        info = await silent_manager.connect("s", ADDRESS, "stdio")
        assert time.monotonic() - started < 1.0

        with pytest.raises(InspectorError) as exc_info:
            await stuck
        assert exc_info.value.code == "CONNECT_FAILED"
        assert info.connected
        assert silent_manager.status("s").url == ADDRESS
        assert silent_manager.get("s").connection is silent_factory.connections[1]
        await silent_manager.shutdown()


class TestInvoke:
    @pytest.mark.asyncio
    async def test_invoke_publishes_metrics(self, session_manager: SessionManager):
        channel = RecordingChannel()
        await session_manager.attach_channel("s", channel)
        await session_manager.connect("s", ADDRESS, "stdio")

        ok = await session_manager.invoke("s", "echo", {"message": "hi"})
        failed = await session_manager.invoke("s", "fail")
        await session_manager.get("s").relay.flush()

        assert ok.success
        assert failed.outcome == InvocationOutcome.UPSTREAM_ERROR
        updates = channel.of_type("MetricsUpdate")
        assert [u["total_requests"] for u in updates] == [1, 2]
        assert updates[-1]["error_rate"] == 0.5
        await session_manager.shutdown()

    @pytest.mark.asyncio
    async def test_invoke_deadline(self, session_manager: SessionManager):
        await session_manager.connect("s", ADDRESS, "stdio")
        result = await session_manager.invoke("s", "slow", timeout=0.05)
        assert result.outcome == InvocationOutcome.DEADLINE_EXCEEDED
        await session_manager.shutdown()

    @pytest.mark.asyncio
    async def test_request_ids_restart_per_connection(self, session_manager, fake_server):
        await session_manager.connect("s", ADDRESS, "stdio")
        await session_manager.invoke("s", "echo", {"message": "a"})
        await session_manager.invoke("s", "echo", {"message": "b"})
        await session_manager.connect("s", ADDRESS, "stdio")
        await session_manager.invoke("s", "echo", {"message": "c"})

        ids = [e["id"] for e in fake_server.received if "method" in e and "id" in e]
        # initialize, tools/list, then the calls
        assert ids == [1, 2, 3, 4, 1, 2, 3]
        await session_manager.shutdown()

    @pytest.mark.asyncio
    async def test_disconnect_releases_outstanding_invocations(self, session_manager, connection_factory):
        await session_manager.connect("s", ADDRESS, "stdio")
        correlator = connection_factory.connections[0].correlator
        calls = [asyncio.create_task(session_manager.invoke("s", "slow", timeout=5.0)) for _ in range(3)]
        await eventually(lambda: correlator.pending_count == 3)

        assert await session_manager.disconnect("s") is True
        results = await asyncio.gather(*calls)

        assert [r.outcome for r in results] == [InvocationOutcome.CONNECTION_LOST] * 3
        assert correlator.pending_count == 0
        assert correlator.closed
        with pytest.raises(InspectorError) as exc_info:
            await session_manager.invoke("s", "echo")
        assert exc_info.value.code == "NOT_CONNECTED"

    @pytest.mark.asyncio
    async def test_invoke_not_connected(self, session_manager: SessionManager):
        session_manager.get_or_create("s")
        with pytest.raises(InspectorError) as exc_info:
            await session_manager.invoke("s", "echo")
        assert exc_info.value.code == "NOT_CONNECTED"

    @pytest.mark.asyncio
    async def test_get_tool_not_found(self, session_manager: SessionManager):
        await session_manager.connect("s", ADDRESS, "stdio")
        with pytest.raises(InspectorError) as exc_info:
            session_manager.get_tool("s", "nope")
        assert exc_info.value.code == "TOOL_NOT_FOUND"
        await session_manager.shutdown()

    @pytest.mark.asyncio
    async def test_upstream_notifications_relayed(self, session_manager, connection_factory):
        channel = RecordingChannel()
        await session_manager.attach_channel("s", channel)
        await session_manager.connect("s", ADDRESS, "stdio")

        connection_factory.last_transport.push(
            {
                "jsonrpc": "2.0",
                "method": "notifications/message",
                "params": {"level": "error", "data": "disk full"},
            }
        )
        # Round-trip an invocation so the receive loop has routed the push
        await session_manager.invoke("s", "echo", {"message": "x"})
        await session_manager.get("s").relay.flush()

        assert channel.of_type("ToolResponse")[0]["method"] == "notifications/message"
        assert channel.of_type("Error")[0]["message"] == "disk full"
        await session_manager.shutdown()

    @pytest.mark.asyncio
    async def test_upstream_drop_publishes_status(self, session_manager, connection_factory):
        channel = RecordingChannel()
        await session_manager.attach_channel("s", channel)
        await session_manager.connect("s", ADDRESS, "stdio")

        connection_factory.last_transport.drop("process exited with code 1")
        result = await session_manager.invoke("s", "slow", timeout=1.0)

        assert result.outcome == InvocationOutcome.CONNECTION_LOST
        await session_manager.get("s").relay.flush()
        last = channel.of_type("ConnectionStatus")[-1]
        assert last["connected"] is False
        assert last["error"] == "process exited with code 1"
        await session_manager.shutdown()


class TestSavedSessions:
    @pytest.mark.asyncio
    async def test_save_requires_connection(self, session_manager: SessionManager):
        session_manager.get_or_create("s")
        with pytest.raises(InspectorError) as exc_info:
            await session_manager.save_session("s", "mine")
        assert exc_info.value.code == "NOT_CONNECTED"

    @pytest.mark.asyncio
    async def test_save_load_delete(self, session_manager: SessionManager):
        await session_manager.connect("s", ADDRESS, "stdio")
        saved = await session_manager.save_session("s", "local", "my dev server")

        assert saved.connection_info.url == ADDRESS
        assert saved.connection_info.transport == TransportKind.STDIO
        assert [s.id for s in await session_manager.list_saved_sessions()] == [saved.id]
        assert (await session_manager.load_saved_session(saved.id)).name == "local"

        await session_manager.delete_saved_session(saved.id)
        with pytest.raises(InspectorError) as exc_info:
            await session_manager.load_saved_session(saved.id)
        assert exc_info.value.code == "SAVED_SESSION_NOT_FOUND"
        with pytest.raises(InspectorError):
            await session_manager.delete_saved_session(saved.id)
        await session_manager.shutdown()


class TestReaper:
    @pytest.fixture
    def manager(self, connection_factory) -> SessionManager:
        config = BridgeConfig(idle_timeout=10.0, connect_timeout=1.0, close_timeout=0.5)
        return SessionManager(config, InMemorySavedSessionStore(), connection_factory=connection_factory)

    @pytest.mark.asyncio
    async def test_idle_sessions_reaped(self, manager: SessionManager, connection_factory):
        await manager.connect("idle", ADDRESS, "stdio")
        manager.get_or_create("fresh")

        reaped = await manager.reap_idle(now=time.monotonic() + 5)
        assert reaped == []

        reaped = await manager.reap_idle(now=time.monotonic() + 60)
        assert sorted(reaped) == ["fresh", "idle"]
        assert manager.session_count == 0
        assert connection_factory.connections[0].state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_attached_sessions_kept(self, manager: SessionManager):
        await manager.attach_channel("watched", RecordingChannel())
        reaped = await manager.reap_idle(now=time.monotonic() + 60)
        assert reaped == []
        await manager.shutdown()

    @pytest.mark.asyncio
    async def test_disabled(self, session_manager: SessionManager):
        session_manager.config.idle_timeout = 0
        session_manager.get_or_create("s")
        assert await session_manager.reap_idle(now=time.monotonic() + 10_000) == []

    @pytest.mark.asyncio
    async def test_reaper_task_lifecycle(self, manager: SessionManager):
        manager.start_reaper()
        assert manager._reaper is not None
        await manager.shutdown()
        assert manager._reaper is None
