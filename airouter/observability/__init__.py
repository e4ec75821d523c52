"""
airouter - Observability Module

- Prometheus metrics for routing decisions, provider attempts and health
- Structured JSON logging with per-request context

Usage:
    from airouter.observability import get_logger, get_metrics

    logger = get_logger(__name__)
    metrics = get_metrics()
"""

from .metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
    metrics_endpoint,
)
from .logging import (
    JSONFormatter,
    LogContext,
    StructuredLogger,
    get_logger,
    setup_logging,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "setup_metrics",
    "metrics_endpoint",
    # Logging
    "JSONFormatter",
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "setup_logging",
]
