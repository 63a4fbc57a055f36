"""Saved session REST API models."""

from datetime import datetime

from pydantic import BaseModel, Field

from mcp_inspector.store import SavedConnection, SavedSession


class SavedSessionSummary(BaseModel):
    """Saved session list entry."""

    id: str
    name: str
    created_at: datetime
    description: str | None = None

    @classmethod
    def from_saved(cls, saved: SavedSession) -> "SavedSessionSummary":
        return cls(
            id=saved.id,
            name=saved.name,
            created_at=saved.created_at,
            description=saved.description,
        )


class SavedSessionDetail(BaseModel):
    """Saved session with its connection parameters."""

    id: str
    name: str
    created_at: datetime
    description: str | None = None
    connection_info: SavedConnection

    @classmethod
    def from_saved(cls, saved: SavedSession) -> "SavedSessionDetail":
        return cls(
            id=saved.id,
            name=saved.name,
            created_at=saved.created_at,
            description=saved.description,
            connection_info=saved.connection_info,
        )


class SaveSessionRequest(BaseModel):
    """Save the current connection parameters."""

    name: str = Field(min_length=1)
    description: str | None = None
