"""Shared types for the inspector bridge.

Import from here rather than submodules:
    from mcp_inspector.types import ConnectionState, TransportKind
"""

from .enums import (
    ConnectionState,
    InvocationOutcome,
    LogFormat,
    LogLevel,
    TransportKind,
)

__all__ = [
    "LogLevel",
    "LogFormat",
    "TransportKind",
    "ConnectionState",
    "InvocationOutcome",
]
