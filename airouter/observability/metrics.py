"""
airouter - Prometheus Metrics

Metrics exposed:
- airouter_routing_decisions_total: routing decisions by provider and reason tag
- airouter_provider_attempts_total: provider attempts by outcome and error class
- airouter_provider_latency_seconds: histogram of provider call latency
- airouter_fallbacks_total: fallback attempts by from/to provider
- airouter_provider_reachable: 1 if the provider is currently reachable
- airouter_credit_exhausted: 1 while the remote credit flag is set

Usage:
    from airouter.observability.metrics import get_metrics, metrics_endpoint

    metrics = get_metrics()
    metrics.record_routing_decision(provider="local", reason="primary_provider")

    @app.get("/metrics")
    async def metrics():
        return metrics_endpoint()
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)
from fastapi import Response


class MetricsCollector:
    """
    Router metrics backed by prometheus_client.

    Each collector registers its series on one registry; use
    ``get_metrics()`` for the process-wide instance on the default registry
    and pass a fresh ``CollectorRegistry`` in tests.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.routing_decisions = Counter(
            "airouter_routing_decisions_total",
            "Total routing decisions",
            labelnames=["provider", "reason"],
            registry=registry,
        )

        self.provider_attempts = Counter(
            "airouter_provider_attempts_total",
            "Total provider execution attempts",
            labelnames=["provider", "outcome", "error_class"],
            registry=registry,
        )

        # Local inference can take tens of seconds
        self.provider_latency = Histogram(
            "airouter_provider_latency_seconds",
            "Provider call latency in seconds",
            labelnames=["provider"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 60.0, float("inf")),
            registry=registry,
        )

        self.fallback_attempts = Counter(
            "airouter_fallbacks_total",
            "Total fallback attempts",
            labelnames=["from_provider", "to_provider"],
            registry=registry,
        )

        self.provider_reachable = Gauge(
            "airouter_provider_reachable",
            "Provider reachability (1 = reachable)",
            labelnames=["provider"],
            registry=registry,
        )

        self.credit_exhausted = Gauge(
            "airouter_credit_exhausted",
            "Remote provider credit exhaustion flag (1 = exhausted)",
            registry=registry,
        )

    def record_routing_decision(self, provider: str, reason: str):
        """Record a routing decision. Only the tag before ':' is used as label."""
        self.routing_decisions.labels(
            provider=provider,
            reason=reason.split(":", 1)[0],
        ).inc()

    def record_attempt(
        self,
        provider: str,
        success: bool,
        latency_ms: int,
        error_class: Optional[str] = None,
    ):
        """Record a single provider attempt."""
        self.provider_attempts.labels(
            provider=provider,
            outcome="success" if success else "failure",
            error_class=error_class or "none",
        ).inc()
        self.provider_latency.labels(provider=provider).observe(latency_ms / 1000)

    def record_fallback(self, from_provider: str, to_provider: str):
        self.fallback_attempts.labels(
            from_provider=from_provider,
            to_provider=to_provider,
        ).inc()

    def set_provider_reachable(self, provider: str, reachable: bool):
        self.provider_reachable.labels(provider=provider).set(1 if reachable else 0)

    def set_credit_exhausted(self, exhausted: bool):
        self.credit_exhausted.set(1 if exhausted else 0)


_metrics_instance: Optional[MetricsCollector] = None


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> MetricsCollector:
    """
    Setup metrics collection.

    Safe to call multiple times - returns the existing instance when it
    already uses the same registry.
    """
    global _metrics_instance

    if _metrics_instance is not None and _metrics_instance.registry is registry:
        return _metrics_instance

    _metrics_instance = MetricsCollector(registry)
    return _metrics_instance


def get_metrics() -> MetricsCollector:
    """Get the process-wide metrics collector, creating it on first use."""
    if _metrics_instance is None:
        return setup_metrics()
    return _metrics_instance


def metrics_endpoint() -> Response:
    """Prometheus text-format response for the default registry."""
    return Response(
        content=generate_latest(get_metrics().registry),
        media_type=CONTENT_TYPE_LATEST,
    )
