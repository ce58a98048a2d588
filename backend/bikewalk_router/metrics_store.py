from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import UTC, datetime
from threading import Lock

ROUTE_OUTCOMES: tuple[str, ...] = ("ok", "no_route", "engine_error", "coords_degraded")


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class EndpointStats:
    request_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0

    def observe(self, duration_ms: float, error: bool) -> None:
        self.request_count += 1
        self.error_count += int(error)
        self.total_duration_ms += duration_ms
        if duration_ms > self.max_duration_ms:
            self.max_duration_ms = duration_ms

    def as_dict(self) -> dict[str, float | int]:
        avg = self.total_duration_ms / self.request_count if self.request_count else 0.0
        return {
            "request_count": self.request_count,
            "error_count": self.error_count,
            "avg_duration_ms": round(avg, 3),
            "max_duration_ms": round(self.max_duration_ms, 3),
        }


class MetricsStore:
    """In-process request counters keyed by ``"METHOD /path"``, plus route outcomes."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._created_at = _now()
        self._endpoints: dict[str, EndpointStats] = {}
        self._outcomes: Counter[str] = Counter()

    def record(self, endpoint: str, *, duration_ms: float, error: bool = False) -> None:
        key = endpoint.strip() or "unknown"
        with self._lock:
            self._endpoints.setdefault(key, EndpointStats()).observe(max(float(duration_ms), 0.0), error)

    def record_route_outcome(self, outcome: str) -> None:
        if outcome not in ROUTE_OUTCOMES:
            raise ValueError(f"unknown route outcome: {outcome}")
        with self._lock:
            self._outcomes[outcome] += 1

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            endpoints = {key: self._endpoints[key].as_dict() for key in sorted(self._endpoints)}
            return {
                "created_at": self._created_at,
                "total_requests": sum(s.request_count for s in self._endpoints.values()),
                "total_errors": sum(s.error_count for s in self._endpoints.values()),
                "endpoints": endpoints,
                "route_outcomes": {name: self._outcomes[name] for name in ROUTE_OUTCOMES},
            }

    def reset(self) -> None:
        with self._lock:
            self._created_at = _now()
            self._endpoints = {}
            self._outcomes = Counter()


METRICS = MetricsStore()


def record_request(endpoint: str, *, duration_ms: float, error: bool = False) -> None:
    METRICS.record(endpoint, duration_ms=duration_ms, error=error)


def record_route_outcome(outcome: str) -> None:
    METRICS.record_route_outcome(outcome)


def metrics_snapshot() -> dict[str, object]:
    return METRICS.snapshot()


def reset_metrics() -> None:
    METRICS.reset()
