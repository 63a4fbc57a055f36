"""Inspector logging - component-scoped colored or JSON logging."""

from .logger import (
    COMPONENTS,
    ConnectionLogger,
    InspectorLogger,
    InvocationLogger,
    LogConfig,
)

__all__ = [
    "COMPONENTS",
    "InspectorLogger",
    "ConnectionLogger",
    "InvocationLogger",
    "LogConfig",
]
