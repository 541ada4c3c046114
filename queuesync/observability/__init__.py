"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from queuesync.observability.logging import (
    connection_context,
    setup_logging,
)
from queuesync.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from queuesync.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "connection_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
]
