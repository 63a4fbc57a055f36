"""Saved session models."""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from mcp_inspector.types import TransportKind


class SavedConnection(BaseModel):
    """Connection parameters needed to reconnect."""

    url: str
    transport: TransportKind


class SavedSession(BaseModel):
    """A named, reusable set of connection parameters."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    connection_info: SavedConnection
