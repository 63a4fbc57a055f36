"""Saved session persistence."""

from mcp_inspector.config.models import StoreConfig

from .models import SavedConnection, SavedSession
from .store import InMemorySavedSessionStore, SavedSessionStore, SQLiteSavedSessionStore


def create_store(config: StoreConfig | None = None) -> SavedSessionStore:
    """Build the store selected by configuration."""
    if config and config.sqlite_path:
        return SQLiteSavedSessionStore(config.sqlite_path)
    return InMemorySavedSessionStore()


__all__ = [
    "SavedConnection",
    "SavedSession",
    "SavedSessionStore",
    "InMemorySavedSessionStore",
    "SQLiteSavedSessionStore",
    "create_store",
]
