"""
Telemetry for the Area Profile API
In-process counters: request outcomes and per-source availability/latency.
"""

import time
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class SourceStats:
    """Aggregated outcomes for one source slot."""
    calls: int = 0
    available: int = 0
    absent: int = 0
    disabled: int = 0
    total_duration_ms: int = 0

    def as_dict(self) -> Dict[str, Any]:
        timed_calls = self.calls - self.disabled
        return {
            "calls": self.calls,
            "available": self.available,
            "absent": self.absent,
            "disabled": self.disabled,
            "availability_pct": round(self.available / timed_calls * 100, 1) if timed_calls else None,
            "avg_duration_ms": round(self.total_duration_ms / timed_calls, 1) if timed_calls else None,
        }


@dataclass
class RequestMetrics:
    """Metrics for a single profile request."""
    timestamp: float
    postcode: str
    found: bool
    response_time: float
    sources_available: int = 0


class TelemetryCollector:
    """Collects telemetry for area profile requests."""

    def __init__(self, max_requests: int = 10000):
        self.max_requests = max_requests
        self.requests: List[RequestMetrics] = []
        self.sources: Dict[str, SourceStats] = {}
        self.errors: Counter = Counter()
        self.lock = threading.Lock()
        self.start_time = time.time()

    def record_request(self, metrics: RequestMetrics) -> None:
        """Record metrics for a single request."""
        with self.lock:
            self.requests.append(metrics)
            if len(self.requests) > self.max_requests:
                self.requests = self.requests[-self.max_requests:]

    def record_source(self, source: str, available: bool, duration_ms: int, error: str = None) -> None:
        """Record the outcome of one adapter call."""
        with self.lock:
            stats = self.sources.setdefault(source, SourceStats())
            stats.calls += 1
            if error == "disabled":
                stats.disabled += 1
                return
            stats.total_duration_ms += duration_ms
            if available:
                stats.available += 1
            else:
                stats.absent += 1

    def record_error(self, error_type: str) -> None:
        """Record an error occurrence."""
        with self.lock:
            self.errors[error_type] += 1

    def get_overall_stats(self) -> Dict[str, Any]:
        """Get overall system statistics."""
        with self.lock:
            total = len(self.requests)
            found = sum(1 for r in self.requests if r.found)
            avg_response_time = (
                sum(r.response_time for r in self.requests) / total if total else None
            )
            return {
                "uptime_seconds": round(time.time() - self.start_time, 1),
                "total_requests": total,
                "not_found": total - found,
                "avg_response_time": round(avg_response_time, 3) if avg_response_time is not None else None,
                "errors": dict(self.errors),
                "sources": {name: stats.as_dict() for name, stats in sorted(self.sources.items())},
            }

    def reset(self) -> None:
        with self.lock:
            self.requests.clear()
            self.sources.clear()
            self.errors.clear()
            self.start_time = time.time()


telemetry_collector = TelemetryCollector()


def record_request_metrics(postcode: str, found: bool, response_time: float, sources_available: int = 0) -> None:
    """Record metrics for a profile request."""
    telemetry_collector.record_request(RequestMetrics(
        timestamp=time.time(),
        postcode=postcode,
        found=found,
        response_time=response_time,
        sources_available=sources_available,
    ))


def record_source_outcome(source: str, available: bool, duration_ms: int, error: str = None) -> None:
    telemetry_collector.record_source(source, available, duration_ms, error)


def record_error(error_type: str) -> None:
    telemetry_collector.record_error(error_type)


def get_telemetry_stats() -> Dict[str, Any]:
    """Get telemetry statistics."""
    return telemetry_collector.get_overall_stats()


def reset_telemetry() -> None:
    telemetry_collector.reset()
