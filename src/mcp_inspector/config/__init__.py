"""Inspector configuration."""

from .loader import (
    CONFIG_ENV_VAR,
    ConfigLoader,
    deep_merge,
    load_config,
    resolve_env_vars,
    validate_config,
)
from .models import (
    BridgeConfig,
    InspectorConfig,
    LoggingComponentsConfig,
    LoggingConfig,
    ServerConfig,
    StoreConfig,
)

__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigLoader",
    "load_config",
    "resolve_env_vars",
    "deep_merge",
    "validate_config",
    "InspectorConfig",
    "ServerConfig",
    "BridgeConfig",
    "StoreConfig",
    "LoggingConfig",
    "LoggingComponentsConfig",
]
