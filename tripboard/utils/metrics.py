"""Prometheus metrics for store operations and external providers."""

from prometheus_client import Counter, Histogram

store_operations_total = Counter(
    "store_operations_total",
    "Total tree store operations",
    ["op", "outcome"],
)

provider_latency_ms = Histogram(
    "provider_latency_ms",
    "External provider call latency in milliseconds",
    ["provider", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000],
)

geocode_results_total = Counter(
    "geocode_results_total",
    "Geocoding enrichment results per activity",
    ["outcome"],
)

budget_recalculations_total = Counter(
    "budget_recalculations_total",
    "Total budget recalculations",
)


class PrometheusMetrics:
    """Prometheus-based metrics implementation."""

    def record_store_op(self, op: str, outcome: str) -> None:
        """Increment store operation counter."""
        store_operations_total.labels(op=op, outcome=outcome).inc()

    def record_provider_latency(self, provider: str, outcome: str, latency_ms: float) -> None:
        """Record provider call latency."""
        provider_latency_ms.labels(provider=provider, outcome=outcome).observe(latency_ms)

    def inc_geocode(self, outcome: str) -> None:
        """Increment geocode result counter."""
        geocode_results_total.labels(outcome=outcome).inc()

    def inc_budget_recalculation(self) -> None:
        """Increment budget recalculation counter."""
        budget_recalculations_total.inc()


metrics = PrometheusMetrics()
