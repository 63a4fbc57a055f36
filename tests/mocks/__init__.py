"""Test doubles for the inspector bridge."""

from .channel import RecordingChannel
from .fake_transport import (
    DEFAULT_TOOLS,
    FakeConnectionFactory,
    FakeServer,
    FakeTransport,
    fake_transport_factory,
)

__all__ = [
    "DEFAULT_TOOLS",
    "FakeConnectionFactory",
    "FakeServer",
    "FakeTransport",
    "RecordingChannel",
    "fake_transport_factory",
]
