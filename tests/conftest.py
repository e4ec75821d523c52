"""
airouter - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Fake provider adapters and a controllable clock for unit tests
"""

import asyncio
import os
import logging
from typing import List, Optional

import pytest
from prometheus_client import CollectorRegistry

from airouter.adapters.base import AdapterConfig, BaseAdapter, ProbeResult
from airouter.core.models import Provider, ProviderReply, RequestContext
from airouter.observability.metrics import MetricsCollector
from airouter.routing.health import HealthTracker


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


# ============================================================
# Pytest Markers
# ============================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )

    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# Clock
# ============================================================

class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def health(clock):
    """Health tracker with remote reachable, local not yet probed, no auto-recovery."""
    return HealthTracker(recovery_seconds=0, remote_reachable=True, clock=clock)


@pytest.fixture
def healthy(health):
    """Health tracker with both providers reachable."""
    health.mark_probe(Provider.LOCAL, True)
    return health


# ============================================================
# Fake Provider Adapters
# ============================================================

class FakeAdapter(BaseAdapter):
    """
    Scripted adapter that never touches the network.

    Set ``error`` to make every call fail, ``delay`` to make calls slow.
    """

    def __init__(
        self,
        provider: Provider,
        text: str = "",
        error: Optional[Exception] = None,
        delay: float = 0.0,
        models: Optional[List[str]] = None,
        timeout: float = 30.0,
    ):
        self.provider = provider
        super().__init__(AdapterConfig(
            base_url="http://fake",
            default_model=f"{provider.value}-model",
            timeout=timeout,
        ))
        self.text = text or f"reply from {provider.value}"
        self.error = error
        self.delay = delay
        self.models = models if models is not None else [self.default_model]
        self.calls: List[RequestContext] = []

    async def generate(self, ctx: RequestContext, request_id: str = "") -> ProviderReply:
        self.calls.append(ctx)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ProviderReply(
            text=self.text,
            model=ctx.model if ctx.model and self.provider is Provider.REMOTE else self.default_model,
            usage={"input_tokens": 3, "output_tokens": 5},
        )

    async def list_models(self) -> List[str]:
        if self.error is not None:
            raise self.error
        return list(self.models)

    async def probe(self) -> ProbeResult:
        return ProbeResult(
            provider=self.provider,
            available=self.error is None,
            error=str(self.error) if self.error else None,
            models=list(self.models) if self.provider is Provider.LOCAL else [],
        )


@pytest.fixture
def local_adapter():
    return FakeAdapter(Provider.LOCAL)


@pytest.fixture
def remote_adapter():
    return FakeAdapter(Provider.REMOTE)


# ============================================================
# Requests / Metrics
# ============================================================

def make_ctx(text: str = "Hello there", **kwargs) -> RequestContext:
    """Single-turn user request."""
    return RequestContext.from_messages([{"role": "user", "content": text}], **kwargs)


@pytest.fixture
def metrics():
    """Metrics collector on an isolated registry."""
    return MetricsCollector(CollectorRegistry())


# ============================================================
# Logging Configuration
# ============================================================

@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    yield
