"""
airouter - Routing Module

Cost-aware routing between a local and a remote provider:
- Request classification (specialized vs standard)
- Health-aware provider selection
- Single-fallback execution
- Usage and savings statistics
"""

from .router import AIRouter
from .classifier import RequestClassifier
from .engine import RoutingEngine
from .health import HealthTracker
from .orchestrator import ExecutionOrchestrator
from .stats import Statistics, StatisticsAggregator

__all__ = [
    "AIRouter",
    "RequestClassifier",
    "RoutingEngine",
    "HealthTracker",
    "ExecutionOrchestrator",
    "Statistics",
    "StatisticsAggregator",
]
