"""Tests for the inspector logger."""

import io
import json

from mcp_inspector.logging import InspectorLogger, LogConfig
from mcp_inspector.types import LogFormat, LogLevel


def json_logger(**kwargs) -> tuple[InspectorLogger, io.StringIO]:
    output = io.StringIO()
    config = LogConfig(format=LogFormat.JSON, output=output, **kwargs)
    return InspectorLogger(config), output


def records(output: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in output.getvalue().splitlines()]


class TestInspectorLogger:
    """Tests for level and component filtering."""

    def test_json_record(self):
        logger, output = json_logger()
        logger.log(LogLevel.INFO, "session", "Session created", {"session_id": "s1"})

        (record,) = records(output)
        assert record["level"] == "INFO"
        assert record["component"] == "session"
        assert record["message"] == "Session created"
        assert record["session_id"] == "s1"
        assert record["timestamp"].endswith("Z")

    def test_level_filter(self):
        logger, output = json_logger(level=LogLevel.WARN)
        logger.log(LogLevel.INFO, "session", "hidden")
        logger.log(LogLevel.ERROR, "session", "shown")
        assert [r["message"] for r in records(output)] == ["shown"]

    def test_component_switch_applies_to_dotted_names(self):
        """Test that transport.stdio is silenced by the transport switch."""
        logger, output = json_logger(components={"transport": False, "session": True})
        logger.log(LogLevel.INFO, "transport.stdio", "hidden")
        logger.log(LogLevel.INFO, "session", "shown")
        assert [r["message"] for r in records(output)] == ["shown"]

    def test_colored_output(self):
        output = io.StringIO()
        logger = InspectorLogger(LogConfig(output=output, truncate_at=10))
        logger.log(LogLevel.INFO, "relay", "hello", {"long": "x" * 50})
        text = output.getvalue()
        assert "[RELAY]" in text
        assert "hello" in text
        assert "..." in text


class TestConnectionLogger:
    def test_lifecycle_events(self):
        logger, output = json_logger(level=LogLevel.DEBUG)
        connection = logger.connection("s1", "http://x/mcp", "http")
        connection.connecting()
        connection.connected(3, "srv")
        connection.disconnected("closed", released=2)

        logged = records(output)
        assert all(r["component"] == "connection" for r in logged)
        assert all(r["session_id"] == "s1" for r in logged)
        assert len(logged) == 3

    def test_invocation_events(self):
        logger, output = json_logger(level=LogLevel.DEBUG)
        invocation = logger.connection("s1", "addr", "stdio").invocation()
        invocation.calling("echo", 1, {"message": "hi"})
        invocation.result("echo", {"content": []}, 12)
        invocation.error("slow", "DEADLINE_EXCEEDED", "timed out", 30000)
        invocation.late_response(9)

        logged = records(output)
        assert len(logged) == 4
        assert all(r["component"] == "invocation" for r in logged)


class TestLogConfig:
    def test_missing_components_default_on(self):
        config = LogConfig(components={"relay": False})
        assert config.components["relay"] is False
        assert config.components["connection"] is True
        assert set(config.components) >= {"connection", "invocation", "session", "relay", "transport"}

    def test_enabled(self):
        logger = InspectorLogger(LogConfig(level=LogLevel.INFO, components={"relay": False}))
        assert logger.enabled(LogLevel.INFO, "session")
        assert not logger.enabled(LogLevel.DEBUG, "session")
        assert not logger.enabled(LogLevel.ERROR, "relay")
