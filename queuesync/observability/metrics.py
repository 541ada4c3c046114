"""
Prometheus metrics collection.
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)

from queuesync.constants import (
    METRIC_QUEUE_LENGTH,
    METRIC_QUEUE_VERSION,
    METRIC_DELTAS_APPLIED,
    METRIC_DELTAS_REJECTED,
    METRIC_DELTAS_EVICTED,
    METRIC_SYNC_PLANS,
    METRIC_WS_CONNECTIONS,
    METRIC_API_REQUESTS,
    METRIC_API_LATENCY,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the queue server.

    Collects metrics for:
    - Queue length and version
    - Applied, rejected and evicted deltas
    - Sync plans served
    - WebSocket connections
    - API requests
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_length = Gauge(
            METRIC_QUEUE_LENGTH,
            "Number of media items in the queue",
            registry=self._registry,
        )

        self.queue_version = Gauge(
            METRIC_QUEUE_VERSION,
            "Current queue version",
            registry=self._registry,
        )

        self.deltas_applied = Counter(
            METRIC_DELTAS_APPLIED,
            "Total number of deltas applied",
            ["action"],
            registry=self._registry,
        )

        self.deltas_rejected = Counter(
            METRIC_DELTAS_REJECTED,
            "Total number of proposed deltas rejected",
            ["reason"],
            registry=self._registry,
        )

        self.deltas_evicted = Counter(
            METRIC_DELTAS_EVICTED,
            "Total number of deltas evicted from the delta log",
            registry=self._registry,
        )

        self.sync_plans = Counter(
            METRIC_SYNC_PLANS,
            "Total number of sync plans served",
            ["kind"],
            registry=self._registry,
        )

        # WebSocket connections gauge (by role)
        self.ws_connections = Gauge(
            METRIC_WS_CONNECTIONS,
            "Number of open WebSocket connections",
            ["role"],
            registry=self._registry,
        )

        # API requests counter
        self.api_requests = Counter(
            METRIC_API_REQUESTS,
            "Total number of API requests",
            ["method", "endpoint", "status"],
            registry=self._registry,
        )

        # API latency histogram
        self.api_latency = Histogram(
            METRIC_API_LATENCY,
            "API request latency in seconds",
            ["method", "endpoint"],
            buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0),
            registry=self._registry,
        )

    def record_delta_applied(self, action: str, evicted: int = 0) -> None:
        """Record an applied delta and any log entries it evicted."""
        self.deltas_applied.labels(action=action).inc()
        if evicted:
            self.deltas_evicted.inc(evicted)

    def record_delta_rejected(self, reason: str) -> None:
        """Record a rejected proposal."""
        self.deltas_rejected.labels(reason=reason).inc()

    def record_sync_plan(self, kind: str) -> None:
        """Record a sync plan served to a client."""
        self.sync_plans.labels(kind=kind).inc()

    def update_queue_state(self, length: int, version: int) -> None:
        """Update queue length and version gauges."""
        self.queue_length.set(length)
        self.queue_version.set(version)

    def update_ws_connections(self, role: str, count: int) -> None:
        """Update the open connection count for a client role."""
        self.ws_connections.labels(role=role).set(count)

    def record_api_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration_seconds: float,
    ) -> None:
        """Record an API request."""
        self.api_requests.labels(
            method=method,
            endpoint=endpoint,
            status=str(status),
        ).inc()
        self.api_latency.labels(method=method, endpoint=endpoint).observe(
            duration_seconds
        )

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
