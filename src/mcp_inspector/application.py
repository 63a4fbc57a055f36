"""Inspector application - wires config, logging, storage and the API.

Initialization order:

1. Config loading
2. Logger setup
3. Saved session store
4. Session manager
5. FastAPI app
"""

import sys
from typing import Any, TextIO

from fastapi import FastAPI

from mcp_inspector.api import create_app
from mcp_inspector.config import ConfigLoader, InspectorConfig
from mcp_inspector.logging import COMPONENTS, InspectorLogger, LogConfig
from mcp_inspector.session import SessionManager
from mcp_inspector.store import SavedSessionStore, create_store


class InspectorApplication:
    """Inspector application orchestrator."""

    def __init__(
        self,
        config_path: str | None = None,
        log_output: TextIO | None = None,
        overrides: dict[str, Any] | None = None,
    ):
        """Initialize application.

        Args:
            config_path: Path to config file (optional)
            log_output: Output stream for logs (default: sys.stdout)
            overrides: Config values applied over the file (e.g. CLI flags)
        """
        self._config_path = config_path
        self._log_output = log_output or sys.stdout
        self._overrides = overrides
        self._initialized = False

        # Components (initialized in initialize())
        self.config_loader: ConfigLoader | None = None
        self.config: InspectorConfig | None = None
        self.logger: InspectorLogger | None = None
        self.store: SavedSessionStore | None = None
        self.session_manager: SessionManager | None = None
        self.app: FastAPI | None = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> FastAPI:
        """Build every component and return the FastAPI app.

        Raises:
            InspectorError(CONFIG_INVALID): If the config file is invalid
        """
        if self._initialized and self.app is not None:
            return self.app

        # 1. Config
        self.config_loader = ConfigLoader()
        self.config = self.config_loader.load(self._config_path, overrides=self._overrides)

        # 2. Logger
        logging_config = self.config.logging
        log_config = LogConfig(
            level=logging_config.level,
            format=logging_config.format,
            show_params=logging_config.show_params,
            show_results=logging_config.show_results,
            truncate_at=logging_config.truncate_at,
            components={name: getattr(logging_config.components, name) for name in COMPONENTS},
            output=self._log_output,
        )
        self.logger = InspectorLogger(log_config)

        # 3. Saved session store
        self.store = create_store(self.config.store)

        # 4. Sessions
        self.session_manager = SessionManager(self.config.bridge, self.store, logger=self.logger)

        # 5. API
        self.app = create_app(self.session_manager, self.config.server, logger=self.logger)

        self._initialized = True
        return self.app

    async def shutdown(self) -> None:
        """Close every session."""
        if not self._initialized:
            return

        if self.session_manager:
            await self.session_manager.shutdown()

        self._initialized = False
