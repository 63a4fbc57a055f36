"""
Pytest configuration and shared fixtures for inspector tests.
"""

import io
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mcp_inspector.config import BridgeConfig  # noqa: E402
from mcp_inspector.logging import InspectorLogger, LogConfig  # noqa: E402
from mcp_inspector.session import SessionManager  # noqa: E402
from mcp_inspector.store import InMemorySavedSessionStore  # noqa: E402
from mcp_inspector.types import LogFormat, LogLevel  # noqa: E402
from tests.mocks import FakeConnectionFactory, FakeServer  # noqa: E402

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture
def log_output() -> io.StringIO:
    """Captured log stream."""
    return io.StringIO()


@pytest.fixture
def logger(log_output: io.StringIO) -> InspectorLogger:
    """JSON logger writing to log_output at DEBUG level."""
    return InspectorLogger(LogConfig(level=LogLevel.DEBUG, format=LogFormat.JSON, output=log_output))


# =============================================================================
# Bridge Fixtures
# =============================================================================


@pytest.fixture
def bridge_config() -> BridgeConfig:
    """Bridge settings with short timeouts for tests."""
    return BridgeConfig(request_timeout=2.0, connect_timeout=2.0, close_timeout=1.0)


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def connection_factory(fake_server: FakeServer) -> FakeConnectionFactory:
    """Connection factory whose default server is fake_server."""
    return FakeConnectionFactory({"fake://server": fake_server})


@pytest.fixture
def session_manager(
    bridge_config: BridgeConfig,
    connection_factory: FakeConnectionFactory,
) -> SessionManager:
    return SessionManager(
        bridge_config,
        InMemorySavedSessionStore(),
        connection_factory=connection_factory,
    )


# =============================================================================
# Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "subprocess: Tests that spawn a child process")
