"""Session manager - owns every browser session and its upstream connection."""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from mcp_inspector.config.models import BridgeConfig
from mcp_inspector.errors import create_error
from mcp_inspector.logging.logger import InspectorLogger
from mcp_inspector.mcp.connection import UpstreamConnection
from mcp_inspector.mcp.types import ConnectionInfo, InvocationResult, Tool
from mcp_inspector.store import (
    InMemorySavedSessionStore,
    SavedConnection,
    SavedSession,
    SavedSessionStore,
)
from mcp_inspector.types import ConnectionState, LogLevel, TransportKind

from .events import ConnectionStatus, events_from_upstream
from .metrics import SessionMetrics
from .relay import EventChannel, NotificationRelay

DEFAULT_SESSION_ID = "default"

ConnectionFactory = Callable[..., UpstreamConnection]


@dataclass
class BrowserSession:
    """State held for one browser client."""

    id: str
    relay: NotificationRelay
    metrics: SessionMetrics
    connection: UpstreamConnection | None = None
    # Connection whose connect() is still in flight
    pending: UpstreamConnection | None = None
    generation: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: float = field(default_factory=time.monotonic)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def current(self) -> UpstreamConnection | None:
        return self.pending or self.connection

    def status(self) -> ConnectionStatus:
        current = self.current()
        return ConnectionStatus.from_info(current.info() if current else None)

    def release(self) -> UpstreamConnection | None:
        """Unbind the current connection and invalidate its generation."""
        current = self.current()
        self.pending = self.connection = None
        self.generation += 1
        return current


class SessionManager:
    """Single owner of the session id -> BrowserSession map.

    Binding changes for one session are serialized by that session's
    lock; different sessions never contend. The handshake itself runs
    outside the lock, so a disconnect or a newer connect can abort a
    connect that is still in flight.
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        store: SavedSessionStore | None = None,
        logger: InspectorLogger | None = None,
        connection_factory: ConnectionFactory = UpstreamConnection,
    ):
        """Initialize session manager.

        Args:
            config: Bridge settings
            store: Saved session store (defaults to in-memory)
            logger: Optional logger
            connection_factory: Builds upstream connections; replaceable in tests
        """
        self.config = config or BridgeConfig()
        self.store = store or InMemorySavedSessionStore()
        self._logger = logger
        self._connection_factory = connection_factory
        self._sessions: dict[str, BrowserSession] = {}
        self._reaper: asyncio.Task[None] | None = None

    def _log(self, level: LogLevel, message: str, **context: Any) -> None:
        if self._logger:
            self._logger.log(level, "session", message, context or None)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    # ─────────────────────────────────────────────────────────────────
    # Session lifecycle
    # ─────────────────────────────────────────────────────────────────

    def get_or_create(self, session_id: str = DEFAULT_SESSION_ID) -> BrowserSession:
        """Get a session, creating it on first use."""
        session = self._sessions.get(session_id)
        if session is None:
            metrics = SessionMetrics(window_seconds=self.config.metrics_window)
            relay = NotificationRelay(
                session_id,
                status_provider=lambda: self._current_status(session_id),
                buffer_size=self.config.relay_buffer_size,
                logger=self._logger,
            )
            session = BrowserSession(id=session_id, relay=relay, metrics=metrics)
            self._sessions[session_id] = session
            self._log(LogLevel.DEBUG, f"Session '{session_id}' created", session_id=session_id)
        session.touch()
        return session

    def _current_status(self, session_id: str) -> ConnectionStatus:
        session = self._sessions.get(session_id)
        return session.status() if session else ConnectionStatus(connected=False)

    def get(self, session_id: str) -> BrowserSession:
        """Get an existing session.

        Raises:
            InspectorError(SESSION_NOT_FOUND): If the session does not exist
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise create_error("SESSION_NOT_FOUND", session_id=session_id)
        session.touch()
        return session

    async def close_session(self, session_id: str) -> None:
        """Disconnect and forget a session.

        Raises:
            InspectorError(SESSION_NOT_FOUND): If the session does not exist
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise create_error("SESSION_NOT_FOUND", session_id=session_id)

        async with session.lock:
            connection = session.release()
            if connection is not None:
                await connection.disconnect("session closed")
        await session.relay.close()
        self._log(LogLevel.INFO, f"Session '{session_id}' closed", session_id=session_id)

    async def attach_channel(self, session_id: str, channel: EventChannel) -> BrowserSession:
        """Attach the browser's event channel, creating the session if needed."""
        session = self.get_or_create(session_id)
        await session.relay.attach(channel)
        return session

    async def detach_channel(self, session_id: str, channel: EventChannel) -> None:
        session = self._sessions.get(session_id)
        if session is not None:
            await session.relay.detach(channel)
            session.touch()

    # ─────────────────────────────────────────────────────────────────
    # Upstream connection
    # ─────────────────────────────────────────────────────────────────

    async def connect(
        self,
        session_id: str,
        address: str,
        transport: TransportKind | str,
    ) -> ConnectionInfo:
        """Connect a session to an upstream server.

        Any existing connection of the session, including one still
        connecting, is torn down first. A disconnect or newer connect
        issued meanwhile aborts this one.

        Raises:
            InspectorError(INVALID_TRANSPORT): Unknown transport kind
            InspectorError(CONNECT_FAILED): Connect failed; no connection
                remains bound to the session
        """
        try:
            kind = TransportKind(transport)
        except ValueError as e:
            raise create_error("INVALID_TRANSPORT", transport=transport) from e

        session = self.get_or_create(session_id)
        async with session.lock:
            previous = session.release()
            if previous is not None:
                await previous.disconnect("replaced by new connection")

            generation = session.generation
            connection = self._connection_factory(
                session_id,
                address,
                kind,
                config=self.config,
                logger=self._logger,
                on_status=lambda info: self._on_status(session, generation, info),
                on_notification=lambda envelope, tool: self._on_notification(
                    session, generation, envelope, tool
                ),
                generation=generation,
            )
            session.pending = connection

        try:
            info = await connection.connect()
        finally:
            if session.pending is connection:
                session.pending = None

        session.connection = connection
        session.touch()
        return info

    async def disconnect(self, session_id: str) -> bool:
        """Disconnect a session's upstream connection.

        Returns:
            True if a connection was closed

        Raises:
            InspectorError(SESSION_NOT_FOUND): If the session does not exist
        """
        session = self.get(session_id)
        async with session.lock:
            connection = session.release()
            if connection is None:
                return False
            await connection.disconnect("client request")
        # Events from the released generation are ignored, so report the end here
        session.relay.publish(
            ConnectionStatus(
                connected=False,
                state=ConnectionState.DISCONNECTED,
                url=connection.address,
                transport=connection.transport_kind,
            )
        )
        return True

    def status(self, session_id: str) -> ConnectionInfo | None:
        """Current or in-flight connection info, or None when nothing is bound."""
        current = self.get(session_id).current()
        return current.info() if current else None

    def _require_connection(self, session_id: str) -> UpstreamConnection:
        session = self.get(session_id)
        connection = session.connection
        if connection is None or not connection.connected:
            raise create_error("NOT_CONNECTED", session_id=session_id)
        return connection

    def list_tools(self, session_id: str) -> list[Tool]:
        """Cached tool catalog.

        Raises:
            InspectorError(NOT_CONNECTED): No live connection
        """
        return self._require_connection(session_id).list_tools()

    def get_tool(self, session_id: str, name: str) -> Tool:
        """Look up one tool in the catalog.

        Raises:
            InspectorError(NOT_CONNECTED): No live connection
            InspectorError(TOOL_NOT_FOUND): Tool not in the catalog
        """
        tool = self._require_connection(session_id).get_tool(name)
        if tool is None:
            raise create_error("TOOL_NOT_FOUND", tool_name=name, session_id=session_id)
        return tool

    async def invoke(
        self,
        session_id: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> InvocationResult:
        """Invoke a tool and publish updated metrics.

        Raises:
            InspectorError(NOT_CONNECTED): No live connection
        """
        connection = self._require_connection(session_id)
        session = self._sessions[session_id]

        result = await connection.invoke(tool_name, arguments, timeout)

        session.touch()
        session.metrics.record(result)
        session.relay.publish(session.metrics.snapshot())
        return result

    def _on_status(self, session: BrowserSession, generation: int, info: ConnectionInfo) -> None:
        # Stale generations must not overwrite the current status
        if generation != session.generation:
            return
        session.relay.publish(ConnectionStatus.from_info(info))

    def _on_notification(
        self,
        session: BrowserSession,
        generation: int,
        envelope: dict[str, Any],
        tool_name: str | None,
    ) -> None:
        if generation != session.generation:
            return
        for event in events_from_upstream(envelope, tool_name):
            session.relay.publish(event)

    # ─────────────────────────────────────────────────────────────────
    # Saved sessions
    # ─────────────────────────────────────────────────────────────────

    async def list_saved_sessions(self) -> list[SavedSession]:
        return await self.store.list()

    async def load_saved_session(self, saved_session_id: str) -> SavedSession:
        """Get a saved session's connection parameters.

        Raises:
            InspectorError(SAVED_SESSION_NOT_FOUND): Unknown id
        """
        saved = await self.store.get(saved_session_id)
        if saved is None:
            raise create_error("SAVED_SESSION_NOT_FOUND", saved_session_id=saved_session_id)
        return saved

    async def save_session(
        self,
        session_id: str,
        name: str,
        description: str | None = None,
    ) -> SavedSession:
        """Save the session's current connection parameters under a name.

        Raises:
            InspectorError(NOT_CONNECTED): Session has no connection
        """
        session = self.get(session_id)
        connection = session.connection
        if connection is None:
            raise create_error("NOT_CONNECTED", session_id=session_id)

        saved = SavedSession(
            name=name,
            description=description,
            connection_info=SavedConnection(
                url=connection.address,
                transport=connection.transport_kind,
            ),
        )
        await self.store.save(saved)
        self._log(LogLevel.INFO, f"Saved session '{name}' ({saved.id})", session_id=session_id)
        return saved

    async def delete_saved_session(self, saved_session_id: str) -> None:
        """Delete a saved session.

        Raises:
            InspectorError(SAVED_SESSION_NOT_FOUND): Unknown id
        """
        if not await self.store.delete(saved_session_id):
            raise create_error("SAVED_SESSION_NOT_FOUND", saved_session_id=saved_session_id)

    # ─────────────────────────────────────────────────────────────────
    # Housekeeping
    # ─────────────────────────────────────────────────────────────────

    async def reap_idle(self, now: float | None = None) -> list[str]:
        """Close sessions idle longer than the idle timeout.

        Sessions with an attached event channel are never reaped.

        Returns:
            IDs of the sessions closed
        """
        if self.config.idle_timeout <= 0:
            return []

        now = time.monotonic() if now is None else now
        expired = [
            s.id
            for s in self._sessions.values()
            if not s.relay.attached and now - s.last_activity > self.config.idle_timeout
        ]
        for session_id in expired:
            if session_id in self._sessions:
                await self.close_session(session_id)
        if expired:
            self._log(LogLevel.INFO, f"Reaped {len(expired)} idle sessions")
        return expired

    def start_reaper(self) -> None:
        """Start the background idle-session reaper."""
        if self._reaper is None and self.config.idle_timeout > 0:
            self._reaper = asyncio.create_task(self._reap_loop())

    async def _reap_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.reap_interval)
            try:
                await self.reap_idle()
            except Exception as e:
                self._log(LogLevel.ERROR, f"Idle session reaper failed: {e}")

    async def shutdown(self) -> None:
        """Stop the reaper and close every session."""
        if self._reaper is not None:
            self._reaper.cancel()
            await asyncio.wait({self._reaper})
            self._reaper = None

        for session_id in list(self._sessions):
            await self.close_session(session_id)
        self._log(LogLevel.INFO, "Session manager shut down")
