"""Upstream connection types."""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from mcp_inspector.types import ConnectionState, InvocationOutcome, TransportKind


@dataclass(frozen=True)
class Tool:
    """A tool exposed by the upstream server.

    Immutable; a reconnect replaces the whole catalog.
    """

    name: str
    description: str | None
    input_schema: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass(frozen=True)
class ServerInfo:
    """Upstream identity reported by the initialize handshake."""

    name: str | None = None
    version: str | None = None
    protocol_version: str | None = None
    capabilities: tuple[str, ...] = ()


@dataclass
class ConnectionInfo:
    """Snapshot of one session's upstream connection, for the API."""

    url: str
    transport: TransportKind
    state: ConnectionState
    connected: bool
    server_name: str | None = None
    server_version: str | None = None
    protocol_version: str | None = None
    tool_count: int = 0
    created_at: datetime | None = None
    error: str | None = None


@dataclass
class PendingRequest:
    """An in-flight request awaiting its correlated response."""

    id: int
    method: str
    future: asyncio.Future
    submitted_at: float  # loop.time() at dispatch
    deadline: float | None  # loop.time() after which the request expires
    tool_name: str | None = None
    progress_token: str | None = None
    timer: asyncio.TimerHandle | None = None
    resolved_at: float | None = None


@dataclass
class InvocationResult:
    """Outcome of one tool invocation.

    Exactly one outcome per dispatched invocation.
    """

    outcome: InvocationOutcome
    tool_name: str
    duration_ms: int
    result: Any = None
    error: str | None = None
    error_code: str | None = None
    request_id: int | None = None

    @property
    def success(self) -> bool:
        return self.outcome == InvocationOutcome.SUCCESS
