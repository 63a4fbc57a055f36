"""Request correlator - matches upstream responses to in-flight requests."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from mcp_inspector.errors import InspectorError, create_error
from mcp_inspector.logging.logger import InvocationLogger
from mcp_inspector.types import InvocationOutcome

from .protocol import JSONRPCMessage
from .transports.base import TransportClosed
from .types import InvocationResult, PendingRequest

SendFunc = Callable[[dict[str, Any]], Awaitable[None]]

_OUTCOME_BY_CODE = {
    "DEADLINE_EXCEEDED": InvocationOutcome.DEADLINE_EXCEEDED,
    "CONNECTION_LOST": InvocationOutcome.CONNECTION_LOST,
    "UPSTREAM_ERROR": InvocationOutcome.UPSTREAM_ERROR,
}


def content_text(result: Any) -> str:
    """Concatenate the text items of a tools/call result."""
    if not isinstance(result, dict):
        return "" if result is None else str(result)

    parts = []
    for item in result.get("content") or []:
        if isinstance(item, dict) and item.get("type") == "text":
            parts.append(str(item.get("text", "")))
        elif isinstance(item, str):
            parts.append(item)
    return "\n".join(parts)


def _normalize_id(value: Any) -> Any:
    # Some servers echo numeric ids back as strings
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


class RequestCorrelator:
    """Pending-request table for one upstream connection.

    Ids start at 1 and increase monotonically. Every way an entry can end
    (response, deadline, connection loss) removes it from the table and
    resolves its future in the same synchronous step, so an entry is
    resolved exactly once and anything arriving afterwards is discarded.

    The table is confined to the event loop that owns the connection.
    """

    def __init__(
        self,
        send: SendFunc,
        default_timeout: float = 30.0,
        logger: InvocationLogger | None = None,
    ):
        """Initialize correlator.

        Args:
            send: Coroutine that hands an envelope to the transport
            default_timeout: Deadline used when a call gives none (seconds)
            logger: Optional invocation logger
        """
        self._send = send
        self.default_timeout = default_timeout
        self._logger = logger
        self._pending: dict[int, PendingRequest] = {}
        self._next_id = 1
        self._closed_reason: str | None = None
        self.dispatched = 0
        self.resolved = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed_reason is not None

    def _register(
        self,
        method: str,
        params: dict[str, Any] | None,
        timeout: float | None,
        tool_name: str | None = None,
        track_progress: bool = False,
    ) -> tuple[PendingRequest, dict[str, Any]]:
        loop = asyncio.get_running_loop()
        request_id = self._next_id
        self._next_id += 1

        params = dict(params) if params is not None else None
        progress_token = None
        if track_progress:
            progress_token = f"progress-{request_id}"
            params = params or {}
            params["_meta"] = {**params.get("_meta", {}), "progressToken": progress_token}

        now = loop.time()
        timeout = self.default_timeout if timeout is None else timeout
        entry = PendingRequest(
            id=request_id,
            method=method,
            future=loop.create_future(),
            submitted_at=now,
            deadline=now + timeout if timeout > 0 else None,
            tool_name=tool_name,
            progress_token=progress_token,
        )
        if entry.deadline is not None:
            entry.timer = loop.call_at(entry.deadline, self._expire, request_id, timeout)

        self._pending[request_id] = entry
        self.dispatched += 1
        return entry, JSONRPCMessage.request(method, params, id=request_id)

    async def _await(self, entry: PendingRequest, envelope: dict[str, Any]) -> dict[str, Any]:
        """Send the envelope and wait for whichever resolution comes first."""
        try:
            try:
                await self._send(envelope)
            except TransportClosed as e:
                self._settle(entry.id, exception=self._connection_lost(str(e)))
            return await entry.future
        finally:
            # Caller cancelled: drop the entry so it cannot be resolved later
            if self._pending.pop(entry.id, None) is not None and entry.timer:
                entry.timer.cancel()

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and wait for its result.

        Returns:
            The response's ``result`` member

        Raises:
            InspectorError(DEADLINE_EXCEEDED): No response before the deadline
            InspectorError(CONNECTION_LOST): Connection closed first
            InspectorError(UPSTREAM_ERROR): Peer answered with a JSON-RPC error
        """
        if self._closed_reason is not None:
            raise self._connection_lost(self._closed_reason)

        entry, envelope = self._register(method, params, timeout)
        response = await self._await(entry, envelope)

        if JSONRPCMessage.is_error(response):
            error = JSONRPCMessage.get_error(response)
            raise create_error(
                "UPSTREAM_ERROR",
                upstream_message=error.get("message", "unknown error"),
                detail=f"JSON-RPC error {error.get('code')} for '{method}'",
                data=error,
            )
        return response.get("result")

    async def invoke(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> InvocationResult:
        """Call a tool and report exactly one outcome.

        Never raises for deadline, connection loss or upstream failure;
        those are reported through ``InvocationResult.outcome``.
        """
        if self._closed_reason is not None:
            error = self._connection_lost(self._closed_reason)
            return self._failed(tool_name, None, error, 0)

        entry, envelope = self._register(
            "tools/call",
            {"name": tool_name, "arguments": arguments or {}},
            timeout,
            tool_name=tool_name,
            track_progress=True,
        )
        if self._logger:
            self._logger.calling(tool_name, entry.id, arguments)

        try:
            response = await self._await(entry, envelope)
        except InspectorError as e:
            return self._failed(tool_name, entry.id, e, self._duration_ms(entry))

        duration_ms = self._duration_ms(entry)

        if JSONRPCMessage.is_error(response):
            error = JSONRPCMessage.get_error(response)
            inspector_error = create_error(
                "UPSTREAM_ERROR",
                upstream_message=error.get("message", "unknown error"),
                data=error,
            )
            return self._failed(tool_name, entry.id, inspector_error, duration_ms, result=error)

        result = response.get("result")
        if isinstance(result, dict) and result.get("isError"):
            message = content_text(result) or "tool reported an error"
            inspector_error = create_error("UPSTREAM_ERROR", upstream_message=message)
            return self._failed(tool_name, entry.id, inspector_error, duration_ms, result=result)

        if self._logger:
            self._logger.result(tool_name, result, duration_ms)
        return InvocationResult(
            outcome=InvocationOutcome.SUCCESS,
            tool_name=tool_name,
            duration_ms=duration_ms,
            result=result,
            request_id=entry.id,
        )

    def _failed(
        self,
        tool_name: str,
        request_id: int | None,
        error: InspectorError,
        duration_ms: int,
        result: Any = None,
    ) -> InvocationResult:
        if self._logger:
            self._logger.error(tool_name, error.code, error.message, duration_ms)
        return InvocationResult(
            outcome=_OUTCOME_BY_CODE.get(error.code, InvocationOutcome.CONNECTION_LOST),
            tool_name=tool_name,
            duration_ms=duration_ms,
            result=result,
            error=error.message,
            error_code=error.code,
            request_id=request_id,
        )

    def _duration_ms(self, entry: PendingRequest) -> int:
        end = entry.resolved_at
        if end is None:
            end = asyncio.get_running_loop().time()
        return max(0, int((end - entry.submitted_at) * 1000))

    def resolve(self, envelope: dict[str, Any]) -> bool:
        """Route a response envelope to its pending request.

        Returns:
            True if a pending request was matched; False for late,
            duplicate or unknown ids
        """
        request_id = _normalize_id(envelope.get("id"))
        if isinstance(request_id, int) and self._settle(request_id, result=envelope):
            return True
        if self._logger:
            self._logger.late_response(request_id)
        return False

    def fail_all(self, reason: str) -> int:
        """Release every pending request with CONNECTION_LOST and close.

        Returns:
            Number of requests released
        """
        self._closed_reason = reason
        released = 0
        for request_id in list(self._pending):
            if self._settle(request_id, exception=self._connection_lost(reason)):
                released += 1
        return released

    def find_tool_by_progress_token(self, token: Any) -> str | None:
        """Name of the pending tool call that registered this progress token."""
        for entry in self._pending.values():
            if entry.progress_token is not None and entry.progress_token == token:
                return entry.tool_name
        return None

    def _expire(self, request_id: int, timeout: float) -> None:
        entry = self._pending.get(request_id)
        if entry is None:
            return
        self._settle(
            request_id,
            exception=create_error(
                "DEADLINE_EXCEEDED",
                method=entry.method,
                timeout_seconds=timeout,
                tool_name=entry.tool_name,
            ),
        )

    def _settle(
        self,
        request_id: Any,
        result: dict[str, Any] | None = None,
        exception: InspectorError | None = None,
    ) -> bool:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return False
        if entry.timer is not None:
            entry.timer.cancel()
        entry.resolved_at = asyncio.get_running_loop().time()
        if not entry.future.done():
            if exception is not None:
                entry.future.set_exception(exception)
            else:
                entry.future.set_result(result)
        self.resolved += 1
        return True

    def _connection_lost(self, reason: str) -> InspectorError:
        return create_error("CONNECTION_LOST", detail=f"Connection closed: {reason}")
