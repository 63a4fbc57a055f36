"""Command line entry point: ``mcp-inspector`` / ``python -m mcp_inspector``."""

import argparse
import asyncio
import sys
from typing import Any

import uvicorn

from mcp_inspector import __version__
from mcp_inspector.application import InspectorApplication
from mcp_inspector.errors import InspectorError
from mcp_inspector.types import LogLevel


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-inspector",
        description="Browser bridge for inspecting MCP servers",
    )
    parser.add_argument("-c", "--config", help="Path to YAML config file")
    parser.add_argument("--host", help="Bind address (overrides server.host)")
    parser.add_argument("--port", type=int, help="Bind port (overrides server.port)")
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        type=str.upper,
        help="Log level (overrides logging.level)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Map CLI flags onto the config structure."""
    overrides: dict[str, Any] = {}
    server: dict[str, Any] = {}
    if args.host:
        server["host"] = args.host
    if args.port is not None:
        server["port"] = args.port
    if server:
        overrides["server"] = server
    if args.log_level:
        overrides["logging"] = {"level": args.log_level}
    return overrides


async def serve(application: InspectorApplication) -> None:
    app = application.initialize()
    assert application.config is not None
    server_config = application.config.server

    config = uvicorn.Config(
        app,
        host=server_config.host,
        port=server_config.port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    finally:
        await application.shutdown()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    application = InspectorApplication(
        config_path=args.config,
        overrides=overrides_from_args(args) or None,
    )
    try:
        asyncio.run(serve(application))
    except InspectorError as e:
        print(f"Error: {e.message}" + (f": {e.detail}" if e.detail else ""), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
