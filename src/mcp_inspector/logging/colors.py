"""ANSI colors for the colored log format (256-color palette)."""

from mcp_inspector.types import LogLevel

RESET = "\033[0m"

GREEN = "\033[38;5;82m"
RED = "\033[38;5;196m"
YELLOW = "\033[38;5;226m"
ORANGE = "\033[38;5;208m"
LIGHT_BLUE = "\033[38;5;153m"
CYAN = "\033[38;5;51m"
MAGENTA = "\033[38;5;201m"

LEVEL_COLORS = {
    LogLevel.DEBUG: LIGHT_BLUE,
    LogLevel.INFO: CYAN,
    LogLevel.WARN: YELLOW,
    LogLevel.ERROR: RED,
}

# Keyed by root component name
COMPONENT_COLORS = {
    "connection": GREEN,
    "invocation": CYAN,
    "session": MAGENTA,
    "relay": LIGHT_BLUE,
    "transport": ORANGE,
}


def paint(text: str, color: str) -> str:
    return f"{color}{text}{RESET}"
