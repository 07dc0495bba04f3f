"""In-process counters for the HTTP gateway and tool dispatcher (single process only)."""

from __future__ import annotations

from collections import Counter, defaultdict, deque
from threading import Lock
from typing import Deque, Dict, Optional

RECENT_WINDOW = 100


def _summary(samples) -> Dict[str, float]:
    if not samples:
        return {"count": 0, "avg_ms": 0.0, "max_ms": 0.0}
    return {
        "count": len(samples),
        "avg_ms": round(sum(samples) / len(samples), 2),
        "max_ms": round(max(samples), 2),
    }


class MetricsRecorder:
    def __init__(self, window: int = RECENT_WINDOW) -> None:
        self._lock = Lock()
        self._window = window
        self._requests = 0
        self._request_ms: Deque[float] = deque(maxlen=window)
        self._tool_success: Counter[str] = Counter()
        self._tool_error: Counter[str] = Counter()
        self._tool_ms: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=self._window))
        self._upstream: Counter[str] = Counter()

    def record_request(self, duration_ms: float) -> None:
        with self._lock:
            self._requests += 1
            self._request_ms.append(duration_ms)

    def record_tool(self, tool: str, *, success: bool, duration_ms: Optional[float] = None) -> None:
        with self._lock:
            if success:
                self._tool_success[tool] += 1
            else:
                self._tool_error[tool] += 1
            if duration_ms is not None:
                self._tool_ms[tool].append(duration_ms)

    def record_upstream(self, outcome: str) -> None:
        """Count one upstream call by HTTP status or failure kind."""
        with self._lock:
            self._upstream[outcome] += 1

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "requests": self._requests,
                "request_latency": _summary(list(self._request_ms)),
                "tool_success": dict(self._tool_success),
                "tool_error": dict(self._tool_error),
                "tool_latency": {tool: _summary(list(samples)) for tool, samples in self._tool_ms.items()},
                "upstream": dict(self._upstream),
            }

    def reset(self) -> None:
        with self._lock:
            self._requests = 0
            self._request_ms.clear()
            self._tool_success.clear()
            self._tool_error.clear()
            self._tool_ms.clear()
            self._upstream.clear()


default_metrics = MetricsRecorder()
