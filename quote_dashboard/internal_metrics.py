from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from time import perf_counter

from quote_dashboard.schemas.quote import Provenance


@dataclass
class ProviderMetrics:
    fetch_calls: int = 0
    successful_fetches: int = 0
    failed_fetches: int = 0
    latency_total_ms: float = 0.0
    errors_by_type: dict[str, int] = field(default_factory=dict)

    def avg_latency_ms(self) -> float:
        if self.fetch_calls == 0:
            return 0.0
        return self.latency_total_ms / self.fetch_calls


class Stopwatch:
    def __init__(self):
        self._started = perf_counter()

    def elapsed_ms(self) -> float:
        return (perf_counter() - self._started) * 1000


@dataclass
class RequestMetrics:
    count: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0
    last_ms: float = 0.0


class MetricsCollector:
    """Provider fetch latency, HTTP request latency and quotes served per provenance."""

    def __init__(self):
        self._provider = ProviderMetrics()
        self._requests = RequestMetrics()
        self._served: dict[str, int] = {p.value: 0 for p in Provenance}
        self._lock = Lock()

    def record_fetch(self, success: bool, latency_ms: float, error: Exception | None = None):
        with self._lock:
            m = self._provider
            m.fetch_calls += 1
            m.latency_total_ms += max(latency_ms, 0.0)
            if success:
                m.successful_fetches += 1
            else:
                m.failed_fetches += 1
                kind = type(error).__name__ if error is not None else "Unknown"
                m.errors_by_type[kind] = m.errors_by_type.get(kind, 0) + 1

    def record_served(self, source: Provenance, count: int = 1):
        with self._lock:
            self._served[source.value] += count

    def record_request(self, latency_ms: float):
        with self._lock:
            r = self._requests
            r.count += 1
            r.total_ms += latency_ms
            r.last_ms = latency_ms
            r.max_ms = max(r.max_ms, latency_ms)

    def request_status(self) -> dict[str, float | int]:
        with self._lock:
            r = self._requests
            average = 0.0 if r.count == 0 else r.total_ms / r.count
            return {
                "request_count": r.count,
                "average_ms": round(average, 3),
                "max_ms": round(r.max_ms, 3),
                "last_ms": round(r.last_ms, 3),
            }

    def provider_status(self) -> dict[str, float | int | dict]:
        with self._lock:
            m = self._provider
            failure_rate = 0.0 if m.fetch_calls == 0 else (m.failed_fetches / m.fetch_calls)
            return {
                "fetch_calls": m.fetch_calls,
                "successful_fetches": m.successful_fetches,
                "failed_fetches": m.failed_fetches,
                "failure_rate": round(failure_rate, 4),
                "average_latency_ms": round(m.avg_latency_ms(), 3),
                "errors_by_type": dict(m.errors_by_type),
            }

    def global_metrics(self) -> dict[str, float | int | dict]:
        with self._lock:
            served = dict(self._served)
        total = sum(served.values())
        cache_hit_rate = 0.0 if total == 0 else served[Provenance.CACHED.value] / total
        fallback_rate = 0.0 if total == 0 else served[Provenance.FALLBACK.value] / total
        return {
            "quotes_served": total,
            "served_by_source": served,
            "cache_hit_rate": round(cache_hit_rate, 4),
            "fallback_rate": round(fallback_rate, 4),
            "provider": self.provider_status(),
            "requests": self.request_status(),
        }
