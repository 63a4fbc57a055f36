"""Inspector configuration models."""

from dataclasses import dataclass, field

from mcp_inspector.types import LogFormat, LogLevel


@dataclass
class ServerConfig:
    """HTTP server configuration for the browser-facing API."""

    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    docs_enabled: bool = True
    title: str = "MCP Inspector"


@dataclass
class BridgeConfig:
    """Upstream connection and session behaviour."""

    request_timeout: float = 30.0  # Default per-invocation deadline (seconds)
    connect_timeout: float = 10.0  # Open + handshake + catalog fetch
    close_timeout: float = 5.0
    idle_timeout: float = 1800.0  # Sessions idle longer than this are reaped; 0 disables
    reap_interval: float = 60.0
    relay_buffer_size: int = 256
    metrics_window: float = 60.0
    client_name: str = "mcp-inspector"
    client_version: str = "0.1.0"
    protocol_version: str = "2025-03-26"


@dataclass
class StoreConfig:
    """Saved session store."""

    sqlite_path: str | None = None  # None = in-memory


@dataclass
class LoggingComponentsConfig:
    """Per-component log switches."""

    connection: bool = True
    invocation: bool = True
    session: bool = True
    relay: bool = True
    transport: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_params: bool = True
    show_results: bool = True
    truncate_at: int = 200
    components: LoggingComponentsConfig = field(default_factory=LoggingComponentsConfig)


@dataclass
class InspectorConfig:
    """Complete inspector configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
