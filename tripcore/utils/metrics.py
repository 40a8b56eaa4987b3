"""Prometheus metrics for lookups and scheduling."""

from prometheus_client import Counter, Histogram

# Lookup metrics
lookup_latency_ms = Histogram(
    "tripcore_lookup_latency_ms",
    "External lookup latency in milliseconds",
    ["resolver", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000],
)

lookup_fallbacks_total = Counter(
    "tripcore_lookup_fallbacks_total",
    "Lookups replaced by a placeholder",
    ["resolver", "reason"],
)

# Scheduler metrics
scheduler_events_total = Counter(
    "tripcore_scheduler_events_total",
    "Scheduler events by kind",
    ["kind"],
)


class PrometheusLookupMetrics:
    """Prometheus-based lookup metrics implementation."""

    def record_latency(self, resolver: str, outcome: str, latency_ms: float) -> None:
        """Record lookup latency."""
        lookup_latency_ms.labels(resolver=resolver, outcome=outcome).observe(latency_ms)

    def inc_fallback(self, resolver: str, reason: str) -> None:
        """Increment fallback counter."""
        lookup_fallbacks_total.labels(resolver=resolver, reason=reason).inc()
