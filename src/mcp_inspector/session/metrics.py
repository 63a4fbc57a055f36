"""Rolling invocation metrics for a browser session."""

import time
from collections import deque
from dataclasses import dataclass, field

from mcp_inspector.mcp.types import InvocationResult

from .events import MetricsUpdate


@dataclass
class _Sample:
    at: float
    duration_ms: int
    failed: bool


@dataclass
class SessionMetrics:
    """Invocation counters over a sliding time window."""

    window_seconds: float = 60.0
    total_requests: int = 0
    total_errors: int = 0
    _samples: deque[_Sample] = field(default_factory=deque)

    def record(self, result: InvocationResult, now: float | None = None) -> None:
        now = time.monotonic() if now is None else now
        self.total_requests += 1
        if not result.success:
            self.total_errors += 1
        self._samples.append(_Sample(now, result.duration_ms, not result.success))
        self._prune(now)

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._samples and self._samples[0].at < cutoff:
            self._samples.popleft()

    def snapshot(self, now: float | None = None) -> MetricsUpdate:
        """Current metrics as a browser event."""
        now = time.monotonic() if now is None else now
        self._prune(now)

        count = len(self._samples)
        if count:
            average_latency = sum(s.duration_ms for s in self._samples) / count
            error_rate = sum(1 for s in self._samples if s.failed) / count
        else:
            average_latency = 0.0
            error_rate = 0.0

        return MetricsUpdate(
            requests_per_second=count / self.window_seconds if self.window_seconds > 0 else 0.0,
            average_latency_ms=round(average_latency, 2),
            error_rate=round(error_rate, 4),
            total_requests=self.total_requests,
        )
