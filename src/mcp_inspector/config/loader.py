"""Inspector configuration loader.

YAML sections map onto the dataclasses in ``models``. String values may
reference environment variables; after expansion, scalars are coerced to
the field's declared type so ``port: ${INSPECTOR_PORT}`` yields an int.
"""

import logging
import os
import re
import typing
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from mcp_inspector.errors import create_error

from .models import InspectorConfig

CONFIG_ENV_VAR = "MCP_INSPECTOR_CONFIG"
LOCAL_CONFIG = Path("inspector-config.yaml")
HOME_CONFIG = Path(".mcp-inspector") / "config.yaml"

logger = logging.getLogger(__name__)

# ${VAR}, ${VAR:-default}, ${VAR:?message}
_ENV_REF = re.compile(r"\$\{([^}:]+)(?::([?-])([^}]*))?\}")


def resolve_env_vars(value: str) -> str:
    """Expand environment variable references in value.

    Raises:
        InspectorError(CONFIG_INVALID): If a required variable is not set
    """

    def substitute(match: re.Match[str]) -> str:
        name, operator, operand = match.groups()
        current = os.environ.get(name)
        if current is not None:
            return current
        if operator == "-":
            return operand or ""
        detail = operand if operator == "?" and operand else f"Required environment variable {name} not set"
        raise create_error("CONFIG_INVALID", detail=detail)

    return _ENV_REF.sub(substitute, value)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into a copy of base, recursing into nested mappings."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _expand(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: _expand(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand(item) for item in data]
    if isinstance(data, str):
        return resolve_env_vars(data)
    return data


def _coerce(annotation: Any, value: Any, where: str) -> Any:
    """Convert one raw value to annotation, raising ValueError with its location."""
    if value is None:
        return None

    members = [a for a in typing.get_args(annotation) if a is not type(None)]
    if typing.get_origin(annotation) in (typing.Union, type(int | None)) and members:
        return _coerce(members[0], value, where)

    if typing.get_origin(annotation) is list:
        if not isinstance(value, list):
            value = [value]
        (item_type,) = typing.get_args(annotation) or (Any,)
        return [_coerce(item_type, item, f"{where}[{i}]") for i, item in enumerate(value)]

    if is_dataclass(annotation):
        if not isinstance(value, dict):
            raise ValueError(f"{where} must be a mapping")
        return _build(annotation, value, where)

    if isinstance(annotation, type) and issubclass(annotation, Enum):
        try:
            return annotation(value)
        except ValueError:
            allowed = ", ".join(str(m.value) for m in annotation)
            raise ValueError(f"{where}: '{value}' is not one of {allowed}") from None

    if annotation is bool and isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    if annotation in (int, float) and not isinstance(value, bool):
        try:
            return annotation(value)
        except (TypeError, ValueError):
            raise ValueError(f"{where}: expected {annotation.__name__}, got {value!r}") from None
    if annotation is str and not isinstance(value, str):
        return str(value)
    return value


def _build(cls: Any, raw: dict[str, Any], where: str) -> Any:
    hints = typing.get_type_hints(cls)
    known = {f.name for f in fields(cls)}
    for key in raw.keys() - known:
        logger.warning("Ignoring unknown config key '%s'", f"{where}.{key}" if where else key)
    kwargs = {
        name: _coerce(hints[name], raw[name], f"{where}.{name}" if where else name)
        for name in known
        if name in raw
    }
    return cls(**kwargs)


def validate_config(config: InspectorConfig) -> None:
    """Reject values the bridge cannot run with.

    Raises:
        InspectorError(CONFIG_INVALID): On the first invalid value
    """
    bridge = config.bridge
    problems = []
    if not 0 < config.server.port < 65536:
        problems.append(f"server.port must be 1-65535, got {config.server.port}")
    for name in ("request_timeout", "connect_timeout", "close_timeout", "reap_interval", "metrics_window"):
        if getattr(bridge, name) <= 0:
            problems.append(f"bridge.{name} must be positive")
    if bridge.idle_timeout < 0:
        problems.append("bridge.idle_timeout must be 0 (disabled) or positive")
    if bridge.relay_buffer_size < 1:
        problems.append("bridge.relay_buffer_size must be at least 1")
    if problems:
        raise create_error("CONFIG_INVALID", detail="; ".join(problems))


class ConfigLoader:
    """Load inspector configuration from YAML."""

    def __init__(self) -> None:
        self._config: InspectorConfig | None = None
        self._config_path: Path | None = None

    @property
    def config_path(self) -> Path | None:
        """Path the current config was loaded from, if any."""
        return self._config_path

    def load(
        self,
        path: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> InspectorConfig:
        """Load configuration.

        Search order:
        1. Explicit path argument
        2. MCP_INSPECTOR_CONFIG environment variable
        3. ./inspector-config.yaml
        4. ~/.mcp-inspector/config.yaml

        Falls back to defaults when no file is found.

        Args:
            path: Optional explicit config path
            overrides: Values merged over the file contents (e.g. CLI flags)

        Raises:
            InspectorError(CONFIG_INVALID): If the file is missing, unparsable
                or holds invalid values
        """
        config_path = Path(path) if path else self._find_config()
        data = self._read(config_path) if config_path is not None else {}
        if overrides:
            data = deep_merge(data, overrides)

        self._config = self.load_from_dict(data)
        self._config_path = config_path
        if config_path is not None:
            logger.info("Loaded configuration from %s", config_path)
        return self._config

    def load_from_dict(self, data: dict[str, Any]) -> InspectorConfig:
        """Build and validate config from a plain dictionary."""
        try:
            config = _build(InspectorConfig, _expand(data), "")
        except ValueError as e:
            raise create_error("CONFIG_INVALID", detail=str(e)) from e
        validate_config(config)
        return config

    def get(self) -> InspectorConfig:
        """Get the loaded config, loading defaults on first use."""
        if self._config is None:
            self._config = InspectorConfig()
        return self._config

    def _read(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            raise create_error("CONFIG_INVALID", detail=f"Config file not found: {path}")
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise create_error("CONFIG_INVALID", detail=f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise create_error("CONFIG_INVALID", detail=f"Top level of {path} must be a mapping")
        return data

    def _find_config(self) -> Path | None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path)
        for candidate in (LOCAL_CONFIG, Path.home() / HOME_CONFIG):
            if candidate.exists():
                return candidate
        return None


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> InspectorConfig:
    """Convenience function to load config."""
    return ConfigLoader().load(path, overrides=overrides)
