from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock

ACCESS_DENIAL_STATUSES = (401, 403, 429)


@dataclass
class RouteMetric:
    requests: int = 0
    duration_ms: float = 0.0
    server_errors: int = 0
    denials: Counter = field(default_factory=Counter)


class InMemoryRequestMetrics:
    """Per-route counters; 401/403/429 are tracked apart from server errors."""

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], RouteMetric] = {}
        self._lock = Lock()

    def observe(self, endpoint: str, method: str, status_code: int, duration_ms: float) -> None:
        with self._lock:
            metric = self._routes.setdefault((endpoint, method), RouteMetric())
            metric.requests += 1
            metric.duration_ms += duration_ms
            if status_code >= 500:
                metric.server_errors += 1
            elif status_code in ACCESS_DENIAL_STATUSES:
                metric.denials[status_code] += 1

    def snapshot(self) -> dict[str, dict]:
        with self._lock:
            return {
                f"{method} {endpoint}": {
                    "requests": metric.requests,
                    "avg_duration_ms": round(metric.duration_ms / metric.requests, 2) if metric.requests else 0.0,
                    "server_errors": metric.server_errors,
                    "denials": {str(code): metric.denials[code] for code in ACCESS_DENIAL_STATUSES},
                }
                for (endpoint, method), metric in self._routes.items()
            }

    def reset(self) -> None:
        with self._lock:
            self._routes.clear()


request_metrics = InMemoryRequestMetrics()
