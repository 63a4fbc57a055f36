"""Stdio transport - spawns the upstream server as a child process.

Envelopes are exchanged as newline-delimited JSON on the child's
stdin/stdout. The child's stderr is forwarded to the transport log.
"""

import asyncio
import os
import shlex
from typing import Any

from mcp_inspector.errors import create_error
from mcp_inspector.mcp.protocol import JSONRPCMessage
from mcp_inspector.types import LogLevel, TransportKind

from .base import TransportAdapter, TransportClosed

# asyncio.StreamReader line limit; tool catalogs can be large
_STREAM_LIMIT = 16 * 1024 * 1024


class StdioTransport(TransportAdapter):
    """Upstream reached through a child process's standard streams."""

    kind = TransportKind.STDIO

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._process: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._write_lock = asyncio.Lock()

    def _parse_command(self) -> list[str]:
        try:
            parts = shlex.split(self.address)
        except ValueError as e:
            raise create_error(
                "CONNECT_FAILED",
                address=self.address,
                detail=f"Invalid command: {e}",
            ) from e
        if not parts:
            raise create_error("CONNECT_FAILED", address=self.address, detail="Empty command")
        return parts

    async def open(self) -> None:
        """Spawn the child process.

        Raises:
            InspectorError(CONNECT_FAILED): If the command cannot be started
        """
        command = self._parse_command()
        env = {**os.environ, **self.config.env} if self.config.env else None

        try:
            self._process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                limit=_STREAM_LIMIT,
            )
        except OSError as e:
            raise create_error(
                "CONNECT_FAILED",
                address=self.address,
                detail=f"Cannot start '{command[0]}': {e}",
            ) from e

        self._opened = True
        self._reader_task = asyncio.create_task(self._read_stdout())
        self._stderr_task = asyncio.create_task(self._read_stderr())
        self._log(LogLevel.DEBUG, "Spawned upstream process", pid=self._process.pid)

    async def send(self, envelope: dict[str, Any]) -> None:
        self._ensure_open()
        assert self._process is not None and self._process.stdin is not None

        line = JSONRPCMessage.dumps(envelope).encode("utf-8") + b"\n"
        async with self._write_lock:
            try:
                self._process.stdin.write(line)
                await self._process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                self._fail(f"stdin closed: {e}")
                raise self._closed_error() from e

    def _closed_error(self) -> Exception:
        return TransportClosed(self.close_reason or "process exited")

    async def _read_stdout(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        stdout = self._process.stdout

        try:
            while True:
                line = await stdout.readline()
                if not line:
                    break
                line = line.strip()
                if not line:
                    continue
                try:
                    envelope = JSONRPCMessage.parse(line)
                except ValueError:
                    # Servers sometimes print banners on stdout
                    self._log(LogLevel.DEBUG, f"Ignoring non-JSON output: {line[:200]!r}")
                    continue
                self._deliver(envelope)
        except (ValueError, asyncio.LimitOverrunError) as e:
            self._fail(f"stdout read failed: {e}")
            return

        returncode = await self._process.wait()
        self._fail(f"process exited with code {returncode}")

    async def _read_stderr(self) -> None:
        assert self._process is not None and self._process.stderr is not None
        async for raw in self._process.stderr:
            text = raw.decode("utf-8", errors="replace").rstrip()
            if text:
                self._log(LogLevel.DEBUG, f"stderr: {text}")

    async def _shutdown(self) -> None:
        process = self._process
        current = asyncio.current_task()

        if process is not None and process.returncode is None:
            if process.stdin is not None and not process.stdin.is_closing():
                process.stdin.close()
            try:
                await asyncio.wait_for(process.wait(), timeout=self.config.close_timeout)
            except TimeoutError:
                self._log(LogLevel.WARN, "Process did not exit, terminating")
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=self.config.close_timeout)
                except TimeoutError:
                    process.kill()
                    await process.wait()

        for task in (self._reader_task, self._stderr_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
