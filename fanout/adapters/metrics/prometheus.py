"""Prometheus metrics adapter.

Implements MetricsSink with prometheus_client counters registered on a
private CollectorRegistry, so every instance (and every test) starts
from zero.
"""

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

from fanout.core.ports import MetricsSink


class PrometheusMetrics(MetricsSink):
    """Request counters exported in the Prometheus text format."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.requests_received = Counter(
            "webhook_requests_received",
            "The total number of requests received",
            ["webhook", "status"],
            registry=self.registry,
        )
        self.requests_forwarded = Counter(
            "webhook_requests_forwarded",
            "The total number of requests forwarded",
            ["webhook", "target", "status"],
            registry=self.registry,
        )
        self.requests_processed = Counter(
            "webhook_requests_processed",
            "The total number of requests processed",
            ["webhook", "target", "success"],
            registry=self.registry,
        )

    def request_received(self, route: str, status: int) -> None:
        self.requests_received.labels(webhook=route, status=str(status)).inc()

    def request_forwarded(self, route: str, target: str, status: int) -> None:
        self.requests_forwarded.labels(
            webhook=route, target=target, status=str(status)
        ).inc()

    def request_processed(self, route: str, target: str, success: bool) -> None:
        self.requests_processed.labels(
            webhook=route, target=target, success=str(success).lower()
        ).inc()

    def render(self) -> bytes:
        """Return the current counters in the exposition format."""
        return generate_latest(self.registry)
